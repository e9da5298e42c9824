"""Tests for the linkage detectors: fee payers, signers, counterparties and PDAs."""

import pytest

from privacyscan.analyzer.context import PDAInteraction
from privacyscan.analyzer.detector_counterparty import (
    classify_concentration,
    counterparty_of,
    detect_counterparty_reuse,
    detect_pda_reuse,
)
from privacyscan.analyzer.detector_fee_payer import detect_fee_payer_reuse
from privacyscan.analyzer.detector_signer import detect_signer_overlap
from privacyscan.analyzer.models import Label
from privacyscan.constants import Severity, TargetType
from tests.factories import BASE_TIME, TARGET, make_context, make_instruction, make_transfer, make_tx

RELAYER = "Re1ayer111111111111111111111111111111111111"
FRIEND = "Friend1111111111111111111111111111111111111"
PROGRAM = "Prog1111111111111111111111111111111111111111"


def ids(findings):
    return [f.id for f in findings]


class TestFeePayerReuse:
    """Tests for detect_fee_payer_reuse."""

    def test_self_paying_wallet_has_no_findings(self):
        """A wallet that pays every fee itself is not linked to anyone."""
        context = make_context(transactions=[make_tx(f"s{i}") for i in range(3)])
        assert detect_fee_payer_reuse(context) == []

    def test_no_transaction_records(self, empty_context):
        """Without records there is nothing to judge."""
        assert detect_fee_payer_reuse(empty_context) == []

    def test_external_payer_is_medium(self):
        """Mixed self-paid and relayed transactions flag the relayer."""
        context = make_context(
            transactions=[make_tx("s1"), make_tx("s2", payer=RELAYER), make_tx("s3", payer=RELAYER)]
        )
        findings = detect_fee_payer_reuse(context)
        assert ids(findings) == ["fee-payer-external"]
        assert findings[0].severity == Severity.MEDIUM
        assert findings[0].evidence[0].severity == Severity.HIGH
        assert RELAYER in findings[0].evidence[0].description

    def test_labelled_external_payer_is_high(self):
        """A known entity paying fees escalates the finding."""
        context = make_context(
            transactions=[make_tx("s1"), make_tx("s2", payer=RELAYER)],
            labels=[Label(address=RELAYER, name="Relay Service", type="other")],
        )
        findings = detect_fee_payer_reuse(context)
        assert findings[0].severity == Severity.HIGH
        assert "Relay Service" in findings[0].reason

    def test_never_self_pays(self):
        """All fees paid by others is the strongest fee payer signal."""
        context = make_context(transactions=[make_tx(f"s{i}", payer=RELAYER) for i in range(3)])
        findings = detect_fee_payer_reuse(context)
        assert ids(findings) == ["fee-payer-never-self"]
        assert findings[0].severity == Severity.HIGH
        assert findings[0].confidence == pytest.approx(0.95)

    def test_transaction_target_is_skipped(self):
        """A single transaction has no fee payer history."""
        context = make_context(
            target_type=TargetType.TRANSACTION,
            transactions=[make_tx("s1", payer=RELAYER)],
        )
        assert detect_fee_payer_reuse(context) == []

    def test_program_target_flags_operator_payer(self):
        """A payer funding several different signers looks like an operator."""
        context = make_context(
            target=PROGRAM,
            target_type=TargetType.PROGRAM,
            transactions=[
                make_tx("s1", payer=RELAYER, signers={"UserA"}),
                make_tx("s2", payer=RELAYER, signers={"UserB"}),
            ],
        )
        assert ids(detect_fee_payer_reuse(context)) == ["fee-payer-never-self", "fee-payer-multi-signer"]


class TestSignerOverlap:
    """Tests for detect_signer_overlap."""

    def test_repeated_co_signer(self):
        """A co-signer on every transaction is HIGH and the signer set repeats."""
        context = make_context(transactions=[make_tx(f"s{i}", signers={TARGET, FRIEND}) for i in range(4)])
        findings = detect_signer_overlap(context)
        assert ids(findings) == ["signer-repeated", "signer-set-reuse"]
        assert findings[0].severity == Severity.HIGH
        assert "4/4" in findings[0].evidence[0].description

    def test_signer_set_example_is_smallest_signature(self):
        """The example link does not depend on record order."""
        context = make_context(
            transactions=[make_tx(sig, signers={TARGET, FRIEND}) for sig in ("zz", "aa", "mm")]
        )
        reuse = [f for f in detect_signer_overlap(context) if f.id == "signer-set-reuse"][0]
        assert reuse.evidence[0].reference.endswith("/aa")

    def test_single_transaction(self):
        """Overlap needs at least two transactions."""
        context = make_context(transactions=[make_tx("s1", signers={TARGET, FRIEND})])
        assert detect_signer_overlap(context) == []

    def test_authority_hub_for_program(self):
        """A signer co-signing with three different wallets is a hub."""
        context = make_context(
            target=PROGRAM,
            target_type=TargetType.PROGRAM,
            transactions=[make_tx(f"s{i}", payer="Hub", signers={"Hub", f"User{i}"}) for i in range(3)],
        )
        assert "signer-authority-hub" in ids(detect_signer_overlap(context))


class TestCounterpartyReuse:
    """Tests for detect_counterparty_reuse."""

    def test_concentrated_counterparty_is_high(self):
        """Three of five transfers to one address is a HIGH concentration."""
        transfers = [make_transfer(FRIEND, sig=f"s{i}") for i in range(3)]
        transfers += [make_transfer("OtherA", sig="s3"), make_transfer("OtherB", sig="s4")]
        findings = detect_counterparty_reuse(make_context(transfers=transfers))
        assert ids(findings) == ["counterparty-reuse"]
        assert findings[0].severity == Severity.HIGH
        assert findings[0].evidence[0].reference == FRIEND

    def test_self_transfers_are_ignored(self):
        """Transfers to the target itself are not counterparties."""
        transfers = [make_transfer(TARGET, sig=f"s{i}") for i in range(4)]
        assert detect_counterparty_reuse(make_context(transfers=transfers)) == []

    def test_program_wallet_only(self):
        """Programs are not scanned for counterparty reuse."""
        transfers = [make_transfer(FRIEND, sig=f"s{i}") for i in range(4)]
        context = make_context(target_type=TargetType.PROGRAM, transfers=transfers)
        assert detect_counterparty_reuse(context) == []

    def test_counterparty_program_combo(self):
        """The same counterparty through the same program twice is a combo."""
        transfers = [make_transfer(FRIEND, sig=f"s{i}") for i in range(2)]
        instructions = [make_instruction(PROGRAM, f"s{i}") for i in range(2)]
        findings = detect_counterparty_reuse(make_context(transfers=transfers, instructions=instructions))
        assert ids(findings) == ["counterparty-program-combo"]

    def test_counterparty_of_handles_direction(self):
        """The other side is picked regardless of direction."""
        assert counterparty_of(make_transfer(FRIEND), TARGET) == FRIEND
        assert counterparty_of(make_transfer(TARGET, sender=FRIEND), TARGET) == FRIEND
        assert counterparty_of(make_transfer(TARGET), TARGET) is None

    @pytest.mark.parametrize(
        "concentration,groups,expected",
        [
            (0.6, 1, Severity.HIGH),
            (0.1, 5, Severity.HIGH),
            (0.4, 1, Severity.MEDIUM),
            (0.1, 3, Severity.MEDIUM),
            (0.2, 1, Severity.LOW),
        ],
    )
    def test_classify_concentration(self, concentration, groups, expected):
        assert classify_concentration(concentration, groups) == expected


class TestPdaReuse:
    """Tests for detect_pda_reuse."""

    def make_interactions(self, count, pda="PdaAccount1"):
        return [PDAInteraction(pda=pda, program_id=PROGRAM, signature=f"s{i}") for i in range(count)]

    def test_single_use_is_silent(self):
        context = make_context(pda_interactions=self.make_interactions(1))
        assert detect_pda_reuse(context) == []

    def test_light_reuse_is_low(self):
        context = make_context(pda_interactions=self.make_interactions(2))
        findings = detect_pda_reuse(context)
        assert ids(findings) == ["pda-reuse"]
        assert findings[0].severity == Severity.LOW

    def test_heavy_reuse_is_medium(self):
        context = make_context(pda_interactions=self.make_interactions(6))
        findings = detect_pda_reuse(context)
        assert findings[0].severity == Severity.MEDIUM
        assert findings[0].evidence[0].severity == Severity.MEDIUM


def test_rich_context_links_through_relayer(rich_context):
    """The shared fixture's relayer pays every fee."""
    assert ids(detect_fee_payer_reuse(rich_context)) == ["fee-payer-never-self"]
    assert rich_context.time_range.earliest == BASE_TIME

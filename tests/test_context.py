"""Tests for the scan context, data models and shared statistics helpers."""

import dataclasses
import math
from collections import Counter

import pytest

from privacyscan.analyzer.context import ScanContext
from privacyscan.analyzer.models import Evidence, Finding
from privacyscan.analyzer.stats import gap_stats, ranked, top_share, truncate, utc_day, utc_hour, utc_weekday
from privacyscan.constants import FindingCategory, Severity, TargetType
from tests.factories import BASE_TIME, make_context, make_instruction, make_tx


def make_payload(**overrides):
    payload = {
        "target": "Wallet1",
        "targetType": "wallet",
        "transactionCount": 2,
        "timeRange": {"earliest": BASE_TIME, "latest": BASE_TIME + 60},
        "counterparties": ["Friend"],
        "transfers": [
            {"from": "Wallet1", "to": "Friend", "amount": 1.25, "signature": "s1", "blockTime": BASE_TIME},
        ],
        "instructions": [
            {"programId": "Prog", "category": "swap", "signature": "s1", "accounts": ["A", "B"], "data": {"type": "swap"}},
        ],
        "transactions": [
            {"signature": "s1", "feePayer": "Wallet1", "signers": ["Wallet1"], "priorityFee": 0},
            {"signature": "s2", "feePayer": "Wallet1", "signers": ["Wallet1"], "blockTime": BASE_TIME + 60},
        ],
        "tokenAccountEvents": [
            {"type": "close", "tokenAccount": "Ata", "owner": "Wallet1", "signature": "s2", "rentRefund": 0.002},
        ],
        "pdaInteractions": [{"pda": "Pda", "programId": "Prog", "signature": "s1"}],
        "labels": {"Friend": {"name": "Binance", "type": "exchange"}},
    }
    payload.update(overrides)
    return payload


class TestScanContextFromDict:
    """Tests for ScanContext.from_dict."""

    def test_camel_case_payload(self):
        context = ScanContext.from_dict(make_payload())
        assert context.target_type == TargetType.WALLET
        assert context.transaction_count == 2
        assert context.transfers[0].to_address == "Friend"
        assert context.transfers[0].block_time == BASE_TIME
        assert context.instructions[0].accounts == ("A", "B")
        assert context.instructions[0].data["type"] == "swap"
        assert context.transactions[0].priority_fee == 0
        assert context.token_account_events[0].rent_refund == 0.002
        assert context.pda_interactions[0].program_id == "Prog"
        assert context.labels["Friend"].name == "Binance"
        assert context.counterparties == frozenset({"Friend"})

    def test_absent_optionals_stay_none(self):
        context = ScanContext.from_dict(make_payload())
        assert context.transactions[0].block_time is None
        assert context.transactions[1].priority_fee is None
        assert context.transactions[1].compute_units_used is None

    def test_label_list_form(self):
        labels = [{"address": "Friend", "name": "Binance"}, {"address": "NoName"}]
        context = ScanContext.from_dict(make_payload(labels=labels))
        assert list(context.labels) == ["Friend"]
        assert context.labels["Friend"].type == "other"

    @pytest.mark.parametrize("alias,expected", [("account", TargetType.WALLET), ("tx", TargetType.TRANSACTION)])
    def test_target_type_aliases(self, alias, expected):
        assert ScanContext.from_dict(make_payload(targetType=alias)).target_type == expected

    def test_unknown_target_type(self):
        with pytest.raises(ValueError):
            ScanContext.from_dict(make_payload(targetType="planet"))

    def test_missing_target(self):
        payload = make_payload()
        del payload["target"]
        with pytest.raises(KeyError):
            ScanContext.from_dict(payload)


class TestImmutability:
    """The context cannot be changed by a detector."""

    def test_frozen_fields(self):
        context = make_context()
        with pytest.raises(dataclasses.FrozenInstanceError):
            context.target = "other"

    def test_labels_are_read_only(self, exchange_label):
        context = make_context(labels=[exchange_label])
        with pytest.raises(TypeError):
            context.labels["new"] = exchange_label

    def test_instruction_data_is_read_only(self):
        inst = make_instruction("Prog", "s", data={"type": "swap"}, accounts=["A"])
        assert inst.accounts == ("A",)
        with pytest.raises(TypeError):
            inst.data["type"] = "other"

    def test_derived_sets(self):
        context = make_context(transactions=[make_tx("s1", payer="P", signers={"A", "B"})])
        assert context.fee_payers == frozenset({"P"})
        assert context.signers == frozenset({"A", "B"})
        assert context.find_transaction("s1").fee_payer == "P"
        assert context.find_transaction("missing") is None


class TestModels:
    """Tests for Finding and Severity."""

    def test_confidence_out_of_range(self):
        with pytest.raises(ValueError):
            Finding(
                id="x",
                name="X",
                severity=Severity.LOW,
                confidence=1.5,
                category=FindingCategory.BEHAVIORAL,
                reason="r",
                impact="i",
                mitigation="m",
            )

    def test_evidence_becomes_tuple(self):
        finding = Finding(
            id="x",
            name="X",
            severity=Severity.LOW,
            confidence=0.5,
            category=FindingCategory.BEHAVIORAL,
            reason="r",
            impact="i",
            mitigation="m",
            evidence=[Evidence(description="e", severity=Severity.LOW)],
        )
        assert isinstance(finding.evidence, tuple)
        assert finding.category == "behavioral"
        assert finding.to_dict()["evidence"] == [{"description": "e", "severity": "LOW"}]

    def test_severity_ordering(self):
        assert Severity.HIGH > Severity.MEDIUM > Severity.LOW
        assert max([Severity.LOW, Severity.HIGH, Severity.MEDIUM]) == Severity.HIGH
        assert str(Severity.HIGH) == "HIGH"


class TestStats:
    """Tests for the shared statistics helpers."""

    def test_ranked_breaks_ties_on_key(self):
        assert ranked(Counter({"b": 2, "a": 2, "c": 3})) == [("c", 3), ("a", 2), ("b", 2)]

    def test_gap_stats_sorts_and_skips_unknown(self):
        stats = gap_stats([300, None, 100, 200])
        assert stats.gaps == (100.0, 100.0)
        assert stats.cv == 0.0

    def test_gap_stats_needs_two(self):
        assert gap_stats([None, 5]) is None

    def test_gap_stats_zero_mean(self):
        assert math.isinf(gap_stats([5, 5]).cv)

    def test_top_share(self):
        assert top_share(Counter({"a": 3, "b": 1}), 4) == 0.75
        assert top_share(Counter(), 0) == 0.0

    def test_truncate(self):
        assert truncate("ABCDEFGHIJKL") == "ABCDEFGH..."
        assert truncate("ABCDEFGHIJKLMNOPQRSTUVWXYZ", 4, 4) == "ABCD...WXYZ"
        assert truncate("") == ""

    def test_utc_helpers(self):
        assert utc_hour(BASE_TIME) == 22
        assert utc_weekday(BASE_TIME) == 1
        assert utc_day(BASE_TIME) == "2023-11-14"

"""Tests for aggregation and report assembly."""

import random

from privacyscan.analyzer.aggregation import aggregate, collect_mitigations, overall_risk
from privacyscan.analyzer.detector_engine import PrivacyEvaluator
from privacyscan.analyzer.models import Evidence, Finding, Label
from privacyscan.analyzer.report import build_report, referenced_entities, summarize
from privacyscan.constants import (
    BONFIDA_NAME_SERVICE,
    MEMO_PROGRAM,
    METAPLEX_PROGRAM,
    REPORT_VERSION,
    FindingCategory,
    Severity,
    TargetType,
)
from privacyscan.pipeline.scanner import scan
from tests.factories import BASE_TIME, make_context, make_instruction, make_transfer, make_tx

JUPITER = "JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4"
MAGIC_EDEN = "M2mx93ekt1fmXSVkTrUL9xVFHkmME8HTUi5Cyc5aF7K"
RELAYER = "Relayer111111111111111111111111111111111111"


def make_finding(finding_id, severity, mitigation="Rotate addresses."):
    return Finding(
        id=finding_id,
        name=finding_id.title(),
        severity=severity,
        confidence=0.8,
        category=FindingCategory.LINKABILITY,
        reason="reason",
        impact="impact",
        mitigation=mitigation,
        evidence=[Evidence(description="seen", severity=severity, reference="ref")],
    )


class TestAggregation:
    """Tests for overall risk and mitigation collection."""

    def test_no_findings_is_low(self):
        assert aggregate([]) == (Severity.LOW, [])

    def test_highest_severity_wins(self):
        findings = [make_finding("a", Severity.LOW), make_finding("b", Severity.MEDIUM)]
        assert overall_risk(findings) == Severity.MEDIUM

    def test_mitigations_deduplicated_and_ranked(self):
        """Shared text ranks by its most severe source, first-seen within a level."""
        findings = [
            make_finding("a", Severity.LOW, "Use fresh wallets."),
            make_finding("b", Severity.HIGH, "Pay your own fees."),
            make_finding("c", Severity.MEDIUM, "Use fresh wallets."),
            make_finding("d", Severity.HIGH, "Avoid memos."),
        ]
        assert collect_mitigations(findings) == ["Pay your own fees.", "Avoid memos.", "Use fresh wallets."]

    def test_empty_mitigation_is_skipped(self):
        assert collect_mitigations([make_finding("a", Severity.HIGH, "")]) == []


class TestReport:
    """Tests for build_report and serialization."""

    def test_summary_counts(self):
        findings = [make_finding("a", Severity.HIGH), make_finding("b", Severity.LOW), make_finding("c", Severity.LOW)]
        summary = summarize(findings, transactions_analyzed=9)
        assert (summary.total_findings, summary.high, summary.medium, summary.low) == (3, 1, 0, 2)
        assert summary.transactions_analyzed == 9

    def test_known_entities_are_referenced_only(self, exchange_label):
        """Labels never touched by a transfer or instruction stay out of the report."""
        program = Label(address="AProgram1111", name="Jupiter", type="protocol")
        unused = Label(address="BUnused11111", name="Coinbase", type="exchange")
        context = make_context(
            transfers=[make_transfer(exchange_label.address)],
            instructions=[make_instruction(program.address, "sig")],
            labels=[exchange_label, program, unused],
        )
        assert referenced_entities(context) == (program, exchange_label)

    def test_report_to_dict(self, exchange_label):
        context = make_context(
            transfers=[make_transfer(exchange_label.address)],
            labels=[exchange_label],
            transaction_count=1,
        )
        findings = [make_finding("a", Severity.MEDIUM)]
        risk, mitigations = aggregate(findings)
        data = build_report(context, findings, risk, mitigations, timestamp=42).to_dict()
        assert list(data) == [
            "version",
            "timestamp",
            "targetType",
            "target",
            "overallRisk",
            "findings",
            "summary",
            "mitigations",
            "knownEntities",
        ]
        assert data["version"] == REPORT_VERSION
        assert data["targetType"] == "wallet"
        assert data["overallRisk"] == "MEDIUM"
        assert data["summary"] == {"totalFindings": 1, "high": 0, "medium": 1, "low": 0, "transactionsAnalyzed": 1}
        assert data["findings"][0]["evidence"] == [{"description": "seen", "severity": "MEDIUM", "reference": "ref"}]
        assert data["knownEntities"] == [{"address": exchange_label.address, "name": "Binance", "type": "exchange"}]

    def test_empty_report(self, empty_context):
        report = scan(empty_context, evaluator=PrivacyEvaluator(), timestamp=0)
        data = report.to_dict()
        assert data["overallRisk"] == "LOW"
        assert data["findings"] == []
        assert data["mitigations"] == []
        assert data["knownEntities"] == []

    def test_scan_is_deterministic(self, rich_context):
        """Same context and timestamp produce the same report."""
        first = scan(rich_context, timestamp=7).to_dict()
        second = scan(rich_context, timestamp=7).to_dict()
        assert first == second

    def test_record_order_does_not_change_report(self, rich_context):
        reordered = make_context(
            transfers=reversed(rich_context.transfers),
            transactions=reversed(rich_context.transactions),
            labels=rich_context.labels.values(),
        )
        assert scan(reordered, timestamp=7).to_dict() == scan(rich_context, timestamp=7).to_dict()

    def test_shuffled_instructions_do_not_change_report(self, rich_context):
        """Shuffling whole transactions leaves every detector family's output unchanged."""
        labels = list(rich_context.labels.values()) + [
            Label(address=JUPITER, name="Jupiter", type="protocol"),
            Label(address=MAGIC_EDEN, name="Magic Eden", type="protocol"),
        ]
        instructions = []
        for i in range(7):
            sig = f"ix{i}"
            instructions.append(make_instruction(JUPITER, sig, data={"type": "swap"}))
            instructions.append(make_instruction(MEMO_PROGRAM, sig, category="memo", data=f"https://site{i}.example"))
            instructions.append(make_instruction(METAPLEX_PROGRAM, sig, data={"type": "mintTo"}))
        instructions.append(make_instruction(BONFIDA_NAME_SERVICE, "name0"))
        instructions += [make_instruction(MAGIC_EDEN, f"nft{i}") for i in range(2)]
        extra_sigs = sorted({inst.signature for inst in instructions})
        transactions = list(rich_context.transactions) + [
            make_tx(sig, payer=RELAYER, time=BASE_TIME + 600 + n * 60) for n, sig in enumerate(extra_sigs)
        ]

        signatures = [tx.signature for tx in transactions]
        random.Random(11).shuffle(signatures)
        position = {sig: n for n, sig in enumerate(signatures)}
        shuffled = make_context(
            transfers=sorted(rich_context.transfers, key=lambda t: position[t.signature]),
            # Stable sort: instructions inside one transaction keep their order.
            instructions=sorted(instructions, key=lambda inst: position[inst.signature]),
            transactions=sorted(transactions, key=lambda tx: position[tx.signature]),
            labels=reversed(labels),
        )
        ordered = make_context(
            transfers=rich_context.transfers,
            instructions=instructions,
            transactions=transactions,
            labels=labels,
        )

        report = scan(ordered, timestamp=7).to_dict()
        assert scan(shuffled, timestamp=7).to_dict() == report
        found = {finding["id"] for finding in report["findings"]}
        assert {
            "memo-descriptive-content",
            "nft-metadata-exposure",
            "domain-name-linkage",
            "address-high-diversity",
            "instruction-sequence-pattern",
            "amount-round-numbers",
        } <= found

    def test_transaction_target_type(self):
        context = make_context(target="5sig", target_type=TargetType.TRANSACTION)
        report = scan(context, timestamp=1)
        assert report.to_dict()["targetType"] == "transaction"

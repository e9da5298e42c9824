"""Scan context factories shared by the test modules."""

from __future__ import annotations

from privacyscan.analyzer.context import (
    Instruction,
    ScanContext,
    TimeRange,
    TokenAccountEvent,
    TransactionRecord,
    Transfer,
)
from privacyscan.constants import TargetType

TARGET = "TargetWa11et1111111111111111111111111111111"
BASE_TIME = 1_700_000_000  # 2023-11-14 22:13:20 UTC


def make_context(
    *,
    target: str = TARGET,
    target_type: TargetType | str = TargetType.WALLET,
    transfers=(),
    instructions=(),
    transactions=(),
    token_account_events=(),
    pda_interactions=(),
    labels=(),
    transaction_count: int | None = None,
    time_range: TimeRange | None = None,
) -> ScanContext:
    """Build a context, deriving counts and time range from the records when not given."""
    transfers = tuple(transfers)
    transactions = tuple(transactions)
    if transaction_count is None:
        signatures = {t.signature for t in transfers} | {tx.signature for tx in transactions}
        transaction_count = len(signatures)
    if time_range is None:
        times = [t.block_time for t in transfers if t.block_time is not None]
        times += [tx.block_time for tx in transactions if tx.block_time is not None]
        time_range = TimeRange(min(times), max(times)) if times else TimeRange()
    counterparties = set()
    for t in transfers:
        other = t.to_address if t.from_address == target else t.from_address
        if other != target:
            counterparties.add(other)
    return ScanContext(
        target=target,
        target_type=target_type,
        transfers=transfers,
        instructions=tuple(instructions),
        transactions=transactions,
        token_account_events=tuple(token_account_events),
        pda_interactions=tuple(pda_interactions),
        counterparties=frozenset(counterparties),
        labels={label.address: label for label in labels},
        time_range=time_range,
        transaction_count=transaction_count,
    )


def make_transfer(to: str, amount: float = 1.5, sig: str = "sig", time: int | None = None, sender: str = TARGET):
    return Transfer(from_address=sender, to_address=to, amount=amount, signature=sig, block_time=time)


def make_tx(sig: str, payer: str = TARGET, signers=None, time: int | None = None, **kwargs) -> TransactionRecord:
    return TransactionRecord(
        signature=sig,
        fee_payer=payer,
        signers=frozenset(signers if signers is not None else {payer}),
        block_time=time,
        **kwargs,
    )


def make_instruction(program: str, sig: str, category: str = "program-interaction", **kwargs) -> Instruction:
    return Instruction(program_id=program, category=category, signature=sig, **kwargs)


def make_token_event(kind: str, account: str, owner: str, sig: str, time: int | None = None, refund=None):
    return TokenAccountEvent(
        type=kind,
        token_account=account,
        owner=owner,
        signature=sig,
        block_time=time,
        rent_refund=refund,
    )

"""Normalized scan context shared by every detector.

The context is produced upstream (collector + normalizer + label lookup) and
is read-only for the whole scan. Sequences are stored as tuples, sets as
frozensets and mappings behind ``MappingProxyType`` so a detector cannot
mutate what the next one reads.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

from ..constants import TargetType
from .models import Label

InstructionData = Union[str, Mapping[str, Any], None]


def _freeze_data(data: Any) -> InstructionData:
    if data is None or isinstance(data, str):
        return data
    if isinstance(data, Mapping):
        return MappingProxyType(dict(data))
    return None


@dataclass(frozen=True)
class Transfer:
    """A normalized value movement."""

    from_address: str
    to_address: str
    amount: float
    signature: str
    token: Optional[str] = None  # None for SOL, mint address for SPL tokens
    block_time: Optional[int] = None


@dataclass(frozen=True)
class Instruction:
    """A categorized instruction."""

    program_id: str
    category: str
    signature: str
    block_time: Optional[int] = None
    accounts: Optional[tuple[str, ...]] = None
    data: InstructionData = None

    def __post_init__(self):
        if self.accounts is not None and not isinstance(self.accounts, tuple):
            object.__setattr__(self, "accounts", tuple(self.accounts))
        object.__setattr__(self, "data", _freeze_data(self.data))


@dataclass(frozen=True)
class TransactionRecord:
    """Transaction-level metadata: who paid, who signed, what it cost."""

    signature: str
    fee_payer: str
    signers: frozenset[str] = field(default_factory=frozenset)
    block_time: Optional[int] = None
    priority_fee: Optional[int] = None
    compute_units_used: Optional[int] = None
    memo: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.signers, frozenset):
            object.__setattr__(self, "signers", frozenset(self.signers))


@dataclass(frozen=True)
class TokenAccountEvent:
    """Creation or closure of a token account."""

    type: str  # "create" | "close"
    token_account: str
    owner: str
    signature: str
    mint: Optional[str] = None
    block_time: Optional[int] = None
    rent_refund: Optional[float] = None  # SOL refunded on close


@dataclass(frozen=True)
class PDAInteraction:
    """An interaction with a program-derived address."""

    pda: str
    program_id: str
    signature: str


@dataclass(frozen=True)
class TimeRange:
    earliest: Optional[int] = None
    latest: Optional[int] = None


@dataclass(frozen=True)
class ScanContext:
    """Everything a detector is allowed to look at."""

    target: str
    target_type: TargetType
    transfers: tuple[Transfer, ...] = ()
    instructions: tuple[Instruction, ...] = ()
    transactions: tuple[TransactionRecord, ...] = ()
    token_account_events: tuple[TokenAccountEvent, ...] = ()
    pda_interactions: tuple[PDAInteraction, ...] = ()
    counterparties: frozenset[str] = field(default_factory=frozenset)
    labels: Mapping[str, Label] = field(default_factory=dict)
    time_range: TimeRange = field(default_factory=TimeRange)
    transaction_count: int = 0

    def __post_init__(self):
        if not isinstance(self.target_type, TargetType):
            object.__setattr__(self, "target_type", TargetType.from_string(self.target_type))
        for name in ("transfers", "instructions", "transactions", "token_account_events", "pda_interactions"):
            value = getattr(self, name)
            if not isinstance(value, tuple):
                object.__setattr__(self, name, tuple(value or ()))
        if not isinstance(self.counterparties, frozenset):
            object.__setattr__(self, "counterparties", frozenset(self.counterparties or ()))
        if not isinstance(self.labels, MappingProxyType):
            object.__setattr__(self, "labels", MappingProxyType(dict(self.labels or {})))

    @property
    def fee_payers(self) -> frozenset[str]:
        return frozenset(tx.fee_payer for tx in self.transactions if tx.fee_payer)

    @property
    def signers(self) -> frozenset[str]:
        return frozenset(s for tx in self.transactions for s in tx.signers)

    @property
    def programs(self) -> frozenset[str]:
        return frozenset(inst.program_id for inst in self.instructions)

    def find_transaction(self, signature: str) -> Optional[TransactionRecord]:
        """Return the first transaction record carrying ``signature``."""
        for tx in self.transactions:
            if tx.signature == signature:
                return tx
        return None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScanContext":
        """Build a context from the upstream JSON shape (camelCase keys).

        Absent optional fields stay ``None``; they are never coerced to zero.
        """
        labels: dict[str, Label] = {}
        raw_labels = data.get("labels") or {}
        if isinstance(raw_labels, Mapping):
            raw_labels = [dict(value, address=value.get("address", key)) for key, value in raw_labels.items()]
        for entry in raw_labels:
            if not isinstance(entry, Mapping):
                continue
            address = entry.get("address")
            name = entry.get("name")
            if not address or not name:
                continue
            labels[address] = Label(
                address=address,
                name=name,
                type=entry.get("type") or "other",
                description=entry.get("description"),
            )

        time_range = data.get("timeRange") or data.get("time_range") or {}
        return cls(
            target=data["target"],
            target_type=TargetType.from_string(_pick(data, "targetType", "target_type")),
            transfers=tuple(_transfer(item) for item in data.get("transfers") or ()),
            instructions=tuple(_instruction(item) for item in data.get("instructions") or ()),
            transactions=tuple(
                _transaction(item) for item in _pick(data, "transactions", "transactionRecords") or ()
            ),
            token_account_events=tuple(
                _token_event(item) for item in _pick(data, "tokenAccountEvents", "token_account_events") or ()
            ),
            pda_interactions=tuple(
                PDAInteraction(
                    pda=item["pda"],
                    program_id=_pick(item, "programId", "program_id"),
                    signature=item.get("signature", ""),
                )
                for item in _pick(data, "pdaInteractions", "pda_interactions") or ()
            ),
            counterparties=frozenset(data.get("counterparties") or ()),
            labels=labels,
            time_range=TimeRange(
                earliest=time_range.get("earliest"),
                latest=time_range.get("latest"),
            ),
            transaction_count=int(_pick(data, "transactionCount", "transaction_count") or 0),
        )


def _pick(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _transfer(item: Mapping[str, Any]) -> Transfer:
    return Transfer(
        from_address=_pick(item, "from", "from_address") or "",
        to_address=_pick(item, "to", "to_address") or "",
        amount=float(item.get("amount") or 0),
        signature=item.get("signature", ""),
        token=item.get("token"),
        block_time=_pick(item, "blockTime", "block_time"),
    )


def _instruction(item: Mapping[str, Any]) -> Instruction:
    accounts = item.get("accounts")
    return Instruction(
        program_id=_pick(item, "programId", "program_id") or "",
        category=item.get("category") or "unknown",
        signature=item.get("signature", ""),
        block_time=_pick(item, "blockTime", "block_time"),
        accounts=tuple(accounts) if accounts is not None else None,
        data=item.get("data"),
    )


def _transaction(item: Mapping[str, Any]) -> TransactionRecord:
    return TransactionRecord(
        signature=item.get("signature", ""),
        fee_payer=_pick(item, "feePayer", "fee_payer") or "",
        signers=frozenset(item.get("signers") or ()),
        block_time=_pick(item, "blockTime", "block_time"),
        priority_fee=_pick(item, "priorityFee", "priority_fee"),
        compute_units_used=_pick(item, "computeUnitsUsed", "compute_units_used"),
        memo=item.get("memo"),
    )


def _token_event(item: Mapping[str, Any]) -> TokenAccountEvent:
    return TokenAccountEvent(
        type=item.get("type", ""),
        token_account=_pick(item, "tokenAccount", "token_account") or "",
        owner=item.get("owner", ""),
        signature=item.get("signature", ""),
        mint=item.get("mint"),
        block_time=_pick(item, "blockTime", "block_time"),
        rent_refund=_pick(item, "rentRefund", "rent_refund"),
    )

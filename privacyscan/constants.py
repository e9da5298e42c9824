"""Centralized constants for privacyscan.

This module contains enums and well-known identifiers shared by the
detectors, the aggregator and the report builder.
"""

from enum import Enum, IntEnum

# Report schema version, bumped whenever the serialized report changes shape.
REPORT_VERSION = "1.0.0"


class Severity(IntEnum):
    """Finding severity levels with ranking for comparison."""

    LOW = 1
    MEDIUM = 2
    HIGH = 3

    def __str__(self) -> str:
        return self.name


class TargetType(str, Enum):
    """Kind of target a scan was run against."""

    WALLET = "wallet"  # A single account
    TRANSACTION = "transaction"  # One transaction signature
    PROGRAM = "program"  # A program id

    @classmethod
    def from_string(cls, value: str | None) -> "TargetType":
        """Convert a target type string, accepting the common aliases."""
        aliases = {
            "wallet": cls.WALLET,
            "account": cls.WALLET,
            "transaction": cls.TRANSACTION,
            "single-transaction": cls.TRANSACTION,
            "tx": cls.TRANSACTION,
            "program": cls.PROGRAM,
        }
        key = (value or "").strip().lower()
        if key not in aliases:
            raise ValueError(f"Unknown target type: {value!r}")
        return aliases[key]


class FindingCategory(str, Enum):
    """Coarse grouping tags for findings (never used for severity math)."""

    LINKABILITY = "linkability"
    BEHAVIORAL = "behavioral"
    INFORMATION_LEAK = "information-leak"
    IDENTITY_LINKAGE = "identity-linkage"
    EXPOSURE = "exposure"
    TRACEABILITY = "traceability"


# Well-known program ids
SYSTEM_PROGRAM = "11111111111111111111111111111111"
TOKEN_PROGRAM = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
ASSOCIATED_TOKEN_PROGRAM = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"
COMPUTE_BUDGET_PROGRAM = "ComputeBudget111111111111111111111111111111"
MEMO_PROGRAM = "MemoSq4gqABAXKb96qnH8TysNcWxMyWCqXgDLGmfcHr"
MEMO_PROGRAM_V1 = "Memo1UhkJRfHyvLMcVucJwxXeuD728EqVDDwQDxFMNo"
METAPLEX_PROGRAM = "metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s"
BONFIDA_NAME_SERVICE = "namesLPneVptA9Z5rqUDD9tMTWEJwofgaYwp8cawRkX"

MEMO_PROGRAMS = frozenset({MEMO_PROGRAM, MEMO_PROGRAM_V1})

# Infrastructure programs that nearly every wallet touches.
SYSTEM_PROGRAMS = frozenset(
    {
        SYSTEM_PROGRAM,
        TOKEN_PROGRAM,
        ASSOCIATED_TOKEN_PROGRAM,
        COMPUTE_BUDGET_PROGRAM,
    }
)
COMMON_PROGRAMS = SYSTEM_PROGRAMS | {MEMO_PROGRAM}

EXPLORER_TX_URL = "https://solscan.io/tx/{}"
EXPLORER_ACCOUNT_URL = "https://solscan.io/account/{}"

SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400

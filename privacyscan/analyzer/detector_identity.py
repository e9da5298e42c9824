"""Identity metadata exposure: NFT creation and .sol domain registration."""

from __future__ import annotations

import re
from typing import Mapping

from ..constants import BONFIDA_NAME_SERVICE, METAPLEX_PROGRAM, FindingCategory, Severity
from .context import Instruction, ScanContext
from .models import Evidence, Finding
from .stats import truncate, tx_url

CREATOR_ACTION_RE = re.compile(r"create|mint|update", re.IGNORECASE)


def is_creator_action(inst: Instruction) -> bool:
    """True for Metaplex create/mint/update calls, or when the type is unknown."""
    if isinstance(inst.data, Mapping):
        kind = inst.data.get("type")
        return isinstance(kind, str) and bool(CREATOR_ACTION_RE.search(kind))
    return True


def detect_identity_metadata(context: ScanContext) -> list[Finding]:
    findings: list[Finding] = []

    if not context.instructions:
        return findings

    instructions = sorted(context.instructions, key=lambda inst: inst.signature)
    creations = [
        inst
        for inst in instructions
        if inst.program_id == METAPLEX_PROGRAM and is_creator_action(inst)
    ]
    if creations:
        findings.append(
            Finding(
                id="nft-metadata-exposure",
                name="NFT Creation Links Wallet to Creator Identity",
                severity=Severity.MEDIUM,
                confidence=0.75,
                category=FindingCategory.EXPOSURE,
                reason=(
                    f"This wallet has {len(creations)} interaction(s) with the Metaplex NFT program. "
                    "On-chain metadata of NFTs you created or updated permanently links your wallet "
                    "to that content."
                ),
                impact=(
                    "NFT metadata is public and permanent. Creating NFTs ties your wallet address "
                    "to your creator identity."
                ),
                mitigation=(
                    "Use a dedicated wallet for NFT creation that is not connected to your other activities."
                ),
                evidence=[
                    Evidence(
                        description=f"Metaplex interaction in tx {truncate(inst.signature)}",
                        severity=Severity.MEDIUM,
                        reference=tx_url(inst.signature),
                    )
                    for inst in creations[:5]
                ],
            )
        )

    names = [inst for inst in instructions if inst.program_id == BONFIDA_NAME_SERVICE]
    if names:
        findings.append(
            Finding(
                id="domain-name-linkage",
                name=".sol Domain Name Links Wallet to Identity",
                severity=Severity.HIGH,
                confidence=0.9,
                category=FindingCategory.EXPOSURE,
                reason=(
                    f"This wallet interacted with the Solana Name Service {len(names)} time(s). A "
                    "registered .sol domain publicly ties the wallet to a human-readable name."
                ),
                impact=(
                    "A .sol domain creates a direct, permanent and public link between your wallet "
                    "and a human-readable identity."
                ),
                mitigation=(
                    "Use a separate wallet for domain registration. Do not register a .sol domain "
                    "on a wallet you want to keep private."
                ),
                evidence=[
                    Evidence(
                        description=f"Name Service interaction in tx {truncate(inst.signature)}",
                        severity=Severity.HIGH,
                        reference=tx_url(inst.signature),
                    )
                    for inst in names[:5]
                ],
            )
        )

    return findings

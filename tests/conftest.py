"""Global pytest configuration and shared fixtures."""

from __future__ import annotations

import os

import pytest

from privacyscan.analyzer.context import ScanContext
from privacyscan.analyzer.models import Label
from tests.factories import BASE_TIME, make_context, make_transfer, make_tx

# Keep a developer's .env from changing config tests.
for _name in (
    "PRIVACYSCAN_LABELS_PATH",
    "PRIVACYSCAN_DISABLED_DETECTORS",
    "PRIVACYSCAN_LOG_LEVEL",
    "PRIVACYSCAN_CONFIG_DIR",
    "PRIVACYSCAN_JSON_INDENT",
):
    os.environ.pop(_name, None)


@pytest.fixture
def empty_context() -> ScanContext:
    """No transfers, instructions, records or labels."""
    return make_context()


@pytest.fixture
def exchange_label() -> Label:
    return Label(address="ExchangeHotWa11et111111111111111111111111111", name="Binance", type="exchange")


@pytest.fixture
def rich_context(exchange_label) -> ScanContext:
    """A busy wallet that trips several detectors at once."""
    transfers = [
        make_transfer("Friend1111111111111111111111111111111111111", 2.0, f"sig{i}", BASE_TIME + i * 60)
        for i in range(4)
    ]
    transfers.append(make_transfer(exchange_label.address, 10.0, "sig4", BASE_TIME + 240))
    relayer = "Relayer111111111111111111111111111111111111"
    transactions = [make_tx(t.signature, payer=relayer, time=t.block_time) for t in transfers]
    return make_context(transfers=transfers, transactions=transactions, labels=[exchange_label])

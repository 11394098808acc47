"""Общие fixtures: in-memory коллабораторы и ledger."""

import pytest

from vaultledger.collaborators import InMemoryAssetTransfer, InMemoryYieldSource
from vaultledger.core.math import BASE_UNIT
from vaultledger.ledger import VaultLedger

ADDRESSES = {
    "yield_pool": "0x794a61358D6845594F94dc1DB02A252b5b4814aD",
    "wrapped_asset": "0x4200000000000000000000000000000000000006",
    "claim_token": "0xe50fA9b3c56FfB159cB0FCA61F5c9D750e8128c8",
}

ALICE = "alice"
BOB = "bob"
KEEPER = "keeper"


@pytest.fixture
def asset():
    """Asset с начальными native балансами депозиторов (по 100 единиц)."""
    asset = InMemoryAssetTransfer()
    for account in (ALICE, BOB):
        asset.fund(account, 100 * BASE_UNIT)
    return asset


@pytest.fixture
def yield_source(asset):
    return InMemoryYieldSource(asset)


@pytest.fixture
def ledger(asset, yield_source):
    return VaultLedger(ADDRESSES, yield_source, asset, clock=lambda: 1_700_000_000_000)

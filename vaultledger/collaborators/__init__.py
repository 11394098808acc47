"""Collaborators — внешние зависимости ledger (yield протокол, base asset)."""

from .interfaces import AssetTransfer, YieldSource
from .memory import (
    VAULT_ACCOUNT,
    CollaboratorError,
    InMemoryAssetTransfer,
    InMemoryYieldSource,
)

__all__ = [
    "YieldSource",
    "AssetTransfer",
    "VAULT_ACCOUNT",
    "CollaboratorError",
    "InMemoryAssetTransfer",
    "InMemoryYieldSource",
]

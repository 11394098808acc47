"""
Domain models and value objects.

Contains ledger errors, events and state snapshots.
"""

from vaultledger.core.domain.errors import (
    ExternalSupplyFailed,
    ExternalWithdrawFailed,
    InsufficientBalance,
    InvalidAddress,
    InvalidAmount,
    LedgerInvariantViolation,
    NoIdleFunds,
    TransferFailed,
    VaultError,
)
from vaultledger.core.domain.events import (
    Deposited,
    LedgerEvent,
    Supplied,
    VaultEvent,
    Withdrawn,
)
from vaultledger.core.domain.vault_state import VaultAddresses, VaultSnapshot

__all__ = [
    # Errors
    "VaultError",
    "InvalidAmount",
    "InsufficientBalance",
    "NoIdleFunds",
    "InvalidAddress",
    "ExternalSupplyFailed",
    "ExternalWithdrawFailed",
    "TransferFailed",
    "LedgerInvariantViolation",
    # Events
    "VaultEvent",
    "Deposited",
    "Supplied",
    "Withdrawn",
    "LedgerEvent",
    # State
    "VaultAddresses",
    "VaultSnapshot",
]

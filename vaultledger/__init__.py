"""
vaultledger — pooled custody ledger

Принимает депозиты base asset, направляет пул во внешний yield протокол
и выплачивает каждому депозитору пропорциональную долю стоимости пула.
"""

from vaultledger.collaborators import (
    AssetTransfer,
    InMemoryAssetTransfer,
    InMemoryYieldSource,
    YieldSource,
)
from vaultledger.core.domain import (
    Deposited,
    ExternalSupplyFailed,
    ExternalWithdrawFailed,
    InsufficientBalance,
    InvalidAddress,
    InvalidAmount,
    LedgerInvariantViolation,
    NoIdleFunds,
    Supplied,
    TransferFailed,
    VaultAddresses,
    VaultError,
    VaultSnapshot,
    Withdrawn,
)
from vaultledger.core.math import BASE_UNIT
from vaultledger.ledger import LedgerConfig, VaultLedger, WithdrawalReceipt

__version__ = "0.1.0"

__all__ = [
    "VaultLedger",
    "LedgerConfig",
    "WithdrawalReceipt",
    "VaultAddresses",
    "VaultSnapshot",
    "YieldSource",
    "AssetTransfer",
    "InMemoryAssetTransfer",
    "InMemoryYieldSource",
    "Deposited",
    "Supplied",
    "Withdrawn",
    "VaultError",
    "InvalidAmount",
    "InsufficientBalance",
    "NoIdleFunds",
    "InvalidAddress",
    "ExternalSupplyFailed",
    "ExternalWithdrawFailed",
    "TransferFailed",
    "LedgerInvariantViolation",
    "BASE_UNIT",
]

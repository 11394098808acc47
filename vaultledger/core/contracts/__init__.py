"""
Contract Validation Module

Модуль для валидации JSON контрактов vaultledger (снапшоты и события).
"""

from .validators import (
    ContractValidator,
    SchemaLoader,
    VaultEventValidator,
    VaultSnapshotValidator,
    validate_vault_event,
    validate_vault_snapshot,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "VaultSnapshotValidator",
    "VaultEventValidator",
    # Functions
    "validate_vault_snapshot",
    "validate_vault_event",
]

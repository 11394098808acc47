"""Ledger — pooled custody ledger и маршрутизация выплат.

- deposit / supply_to_yield_source / withdraw
- пропорциональная оценка долей (principal + накопленный доход)
- атомарность операций и события для внешних наблюдателей
"""

from .vault_ledger import (
    EventSubscriber,
    LedgerConfig,
    VaultLedger,
    WithdrawalReceipt,
)

__all__ = [
    "VaultLedger",
    "LedgerConfig",
    "WithdrawalReceipt",
    "EventSubscriber",
]

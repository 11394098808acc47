"""
Capability interfaces внешних коллабораторов ledger.

- YieldSource: внешний yield протокол (supply / withdraw / balance_held)
- AssetTransfer: приём, wrap и отправка base asset

Ledger зависит только от этих Protocol и не знает о конкретной реализации.
Реализация сигнализирует о сбое исключением и не должна перемещать средства
в вызове, который завершился исключением.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class YieldSource(Protocol):
    """Claim ledger во внешнем yield протоколе, в base units."""

    def supply(self, amount: int) -> None:
        """Внести wrapped asset в протокол (1:1 к base asset)."""
        ...

    def withdraw(self, amount: int) -> int:
        """Вывести wrapped asset из протокола, вернуть фактически выведенную сумму."""
        ...

    def balance_held(self) -> int:
        """Текущий claim ledger в протоколе (растёт с накоплением дохода)."""
        ...


@runtime_checkable
class AssetTransfer(Protocol):
    """Операции с base asset в native и wrapped форме."""

    def receive(self, sender: str, amount: int) -> None:
        """Принять входящий native base asset от депозитора."""
        ...

    def wrap(self, amount: int) -> None:
        """Конвертировать native base asset ledger в wrapped форму."""
        ...

    def send(self, to: str, amount: int, wrapped: bool = False) -> None:
        """Отправить base asset получателю в native или wrapped форме."""
        ...

"""
In-memory коллабораторы — детерминированные реализации YieldSource и AssetTransfer.

Используются в тестах и симуляциях вместо реального протокола:
- InMemoryAssetTransfer: native/wrapped балансы по аккаунтам
- InMemoryYieldSource: claim ledger в пуле, ручное начисление дохода

Failure injection: fail_next(operation): следующий вызов операции
завершится CollaboratorError без перемещения средств.
"""

from typing import Dict, Set

# Аккаунт ledger внутри in-memory asset
VAULT_ACCOUNT = "vault"

BPS_DENOMINATOR = 10_000


class CollaboratorError(RuntimeError):
    """Сбой in-memory коллаборатора."""


class _FailureInjection:
    def __init__(self):
        self._pending: Dict[str, int] = {}

    def fail_next(self, operation: str, times: int = 1) -> None:
        """Следующие `times` вызовов `operation` завершатся ошибкой."""
        self._pending[operation] = self._pending.get(operation, 0) + times

    def _maybe_fail(self, operation: str) -> None:
        remaining = self._pending.get(operation, 0)
        if remaining > 0:
            self._pending[operation] = remaining - 1
            raise CollaboratorError(f"injected failure: {operation}")


class InMemoryAssetTransfer(_FailureInjection):
    """
    Base asset с native и wrapped формой.

    Балансы ведутся по аккаунтам, средства ledger хранятся на аккаунте `holder`.
    Wrap односторонний: unwrap не поддерживается.
    """

    def __init__(self, holder: str = VAULT_ACCOUNT):
        super().__init__()
        self.holder = holder
        self._native: Dict[str, int] = {}
        self._wrapped: Dict[str, int] = {}
        # Получатели, отклоняющие native переводы
        self.rejecting_recipients: Set[str] = set()

    # -------------------------------------------------------------------------
    # Балансы
    # -------------------------------------------------------------------------

    def fund(self, account: str, amount: int, wrapped: bool = False) -> None:
        """Начислить аккаунту средства извне (faucet)."""
        if amount < 0:
            raise ValueError(f"amount cannot be negative: {amount}")
        book = self._wrapped if wrapped else self._native
        book[account] = book.get(account, 0) + amount

    def balance_of(self, account: str, wrapped: bool = False) -> int:
        book = self._wrapped if wrapped else self._native
        return book.get(account, 0)

    def _move(self, book: Dict[str, int], source: str, target: str, amount: int) -> None:
        available = book.get(source, 0)
        if amount > available:
            raise CollaboratorError(
                f"insufficient funds on {source}: requested {amount}, available {available}"
            )
        book[source] = available - amount
        book[target] = book.get(target, 0) + amount

    # -------------------------------------------------------------------------
    # AssetTransfer
    # -------------------------------------------------------------------------

    def receive(self, sender: str, amount: int) -> None:
        self._maybe_fail("receive")
        self._move(self._native, sender, self.holder, amount)

    def wrap(self, amount: int) -> None:
        self._maybe_fail("wrap")
        available = self._native.get(self.holder, 0)
        if amount > available:
            raise CollaboratorError(
                f"cannot wrap {amount}: native balance is {available}"
            )
        self._native[self.holder] = available - amount
        self._wrapped[self.holder] = self._wrapped.get(self.holder, 0) + amount

    def send(self, to: str, amount: int, wrapped: bool = False) -> None:
        if wrapped:
            self._maybe_fail("send_wrapped")
            self._move(self._wrapped, self.holder, to, amount)
            return

        self._maybe_fail("send_native")
        if to in self.rejecting_recipients:
            raise CollaboratorError(f"recipient {to} rejected native transfer")
        self._move(self._native, self.holder, to, amount)


class InMemoryYieldSource(_FailureInjection):
    """
    Yield протокол поверх InMemoryAssetTransfer.

    supply забирает wrapped asset с аккаунта ledger в пул,
    withdraw возвращает wrapped asset ledger.
    Доход начисляется вручную: accrue / accrue_bps.
    """

    def __init__(self, asset: InMemoryAssetTransfer, pool_account: str = "yield_pool"):
        super().__init__()
        self.asset = asset
        self.pool_account = pool_account
        self._claim = 0
        # Недостача при следующем withdraw (эмуляция частичного вывода)
        self.withdraw_shortfall = 0

    def supply(self, amount: int) -> None:
        self._maybe_fail("supply")
        self.asset._move(self.asset._wrapped, self.asset.holder, self.pool_account, amount)
        self._claim += amount

    def withdraw(self, amount: int) -> int:
        self._maybe_fail("withdraw")
        if amount > self._claim:
            raise CollaboratorError(
                f"cannot withdraw {amount}: claim is {self._claim}"
            )
        returned = amount - min(self.withdraw_shortfall, amount)
        self.withdraw_shortfall = 0
        self.asset._move(self.asset._wrapped, self.pool_account, self.asset.holder, returned)
        self._claim -= amount
        return returned

    def balance_held(self) -> int:
        return self._claim

    def accrue(self, amount: int) -> None:
        """
        Начислить доход на claim ledger.

        Отрицательная сумма эмулирует убыток протокола.
        """
        if amount >= 0:
            self.asset.fund(self.pool_account, amount, wrapped=True)
        else:
            loss = min(-amount, self._claim)
            self.asset._move(self.asset._wrapped, self.pool_account, "yield_pool_loss", loss)
            amount = -loss
        self._claim += amount

    def accrue_bps(self, bps: int) -> int:
        """Начислить доход в basis points от текущего claim, вернуть начисленную сумму."""
        amount = self._claim * bps // BPS_DENOMINATOR
        self.accrue(amount)
        return amount

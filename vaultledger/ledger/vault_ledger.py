"""VaultLedger — пул депозитов с маршрутизацией во внешний yield source.

Операции:
- deposit: bookkeeping, средства остаются idle
- supply_to_yield_source: весь idle balance → wrap → yield source (может вызвать любой)
- withdraw: пропорциональная выплата principal + доход, idle или yield source

Idle balance = native idle + wrapped idle. Wrapped idle появляется только
после сбоя supply, когда wrap уже выполнен (wrap односторонний), или когда
yield source не принял обратно средства, выведенные неудавшимся withdraw.

Инварианты:
- total_principal == Σ principal_deposited (точно, без округления)
- payout = floor(total_vault_value * amount / total_principal), округление в пользу пула
- Effects before interactions: bookkeeping меняется до вызова коллабораторов
- Каждая мутирующая операция атомарна: при исключении состояние ledger
  восстанавливается, события операции отбрасываются. Исключения: уже
  выполненные переводы (доставленная native часть выплаты, завершённые
  re-entrant операции, средства, не принятые обратно yield source)
  остаются в учёте
"""

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from vaultledger.collaborators.interfaces import AssetTransfer, YieldSource
from vaultledger.core.domain.errors import (
    ExternalSupplyFailed,
    ExternalWithdrawFailed,
    InsufficientBalance,
    InvalidAddress,
    LedgerInvariantViolation,
    NoIdleFunds,
    TransferFailed,
)
from vaultledger.core.domain.events import Deposited, Supplied, VaultEvent, Withdrawn
from vaultledger.core.domain.vault_state import VaultAddresses, VaultSnapshot
from vaultledger.core.math.shares import interest_over, proportional_share, validate_amount

logger = logging.getLogger(__name__)

EventSubscriber = Callable[[VaultEvent], None]


@dataclass(frozen=True)
class LedgerConfig:
    """Конфигурация ledger.

    - prune_empty_records: удалять записи депозиторов с нулевым principal
      (удалённая запись неотличима от никогда не созданной)
    - event_history_limit: сколько последних событий хранить (None: все)
    """
    prune_empty_records: bool = False
    event_history_limit: Optional[int] = None

    def __post_init__(self) -> None:
        limit = self.event_history_limit
        if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit < 0):
            raise ValueError(f"event_history_limit must be a non-negative int or None, got {limit!r}")


@dataclass(frozen=True)
class WithdrawalReceipt:
    """Результат withdraw."""

    depositor: str
    principal_amount: int
    payout: int

    # Маршрутизация выплаты
    native_paid: int
    wrapped_paid: int
    pulled_from_yield: int


@dataclass
class _Checkpoint:
    principals: Dict[str, int]
    total_principal: int
    idle_native: int
    idle_wrapped: int
    events_len: int
    unpublished_len: int
    next_sequence: int


class VaultLedger:
    """Pooled custody ledger.

    Все мутирующие операции выполняются под одним ledger-wide RLock.
    Re-entrant вызов из коллаборатора (в том же потоке) видит уже
    обновлённый bookkeeping.
    """

    def __init__(
        self,
        addresses: Union[VaultAddresses, Mapping[str, Optional[str]]],
        yield_source: YieldSource,
        asset_transfer: AssetTransfer,
        config: Optional[LedgerConfig] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        """
        Args:
            addresses: handles yield pool, wrapped asset и claim token
            yield_source: внешний yield протокол
            asset_transfer: операции с base asset
            config: конфигурация ledger
            clock: источник времени событий (UTC ms)

        Raises:
            InvalidAddress: если любой handle пустой или коллаборатор не задан
        """
        if isinstance(addresses, VaultAddresses):
            self._addresses = addresses
        else:
            try:
                self._addresses = VaultAddresses.model_validate(dict(addresses))
            except ValidationError as e:
                raise InvalidAddress(f"Invalid vault addresses: {e}") from e

        if yield_source is None:
            raise InvalidAddress("yield_source must not be null")
        if asset_transfer is None:
            raise InvalidAddress("asset_transfer must not be null")

        self._yield = yield_source
        self._asset = asset_transfer
        self.config = config or LedgerConfig()
        self._clock = clock or (lambda: int(time.time() * 1000))

        self._principals: Dict[str, int] = {}
        self._total_principal = 0
        self._idle_native = 0
        self._idle_wrapped = 0

        self._lock = threading.RLock()
        # Checkpoints открытых единиц работы, внешняя первой
        self._checkpoints: List[_Checkpoint] = []
        self._events: List[VaultEvent] = []
        self._unpublished: List[VaultEvent] = []
        self._next_sequence = 0
        self._subscribers: List[EventSubscriber] = []

    # =========================================================================
    # MUTATING OPERATIONS
    # =========================================================================

    def deposit(self, depositor: str, amount: int) -> None:
        """Принять депозит; средства остаются idle.

        Raises:
            InvalidAmount: amount <= 0 или не int
            InvalidAddress: пустой идентификатор депозитора
            TransferFailed: asset не смог принять средства
        """
        depositor = self._validate_identity(depositor, "depositor")
        validate_amount(amount)

        with self._unit_of_work("deposit"):
            # Средства должны поступить до записи principal
            self._call_external(TransferFailed, "receive", self._asset.receive, depositor, amount)

            self._principals[depositor] = self._principals.get(depositor, 0) + amount
            self._total_principal += amount
            self._idle_native += amount

            self._emit(Deposited, depositor=depositor, amount=amount)

        logger.info(
            "Deposit committed: depositor=%s amount=%d", depositor, amount,
            extra={"operation": "deposit", "depositor": depositor, "amount": amount},
        )

    def supply_to_yield_source(self, caller: str = "anonymous") -> int:
        """Направить весь idle balance во внешний yield source.

        Две фазы, каждая атомарна: wrap native idle, затем supply всего
        wrapped idle. Если supply не удался после wrap, средства остаются
        в wrapped idle и войдут в следующий supply.

        Returns:
            Сумма supply

        Raises:
            NoIdleFunds: idle balance == 0
            ExternalSupplyFailed: сбой wrap или supply
        """
        caller = self._validate_identity(caller, "caller")

        with self._lock:
            if self._idle_native + self._idle_wrapped == 0:
                raise NoIdleFunds("No idle funds to supply")

            if self._idle_native > 0:
                with self._unit_of_work("wrap"):
                    native = self._idle_native
                    self._idle_native = 0
                    self._idle_wrapped += native
                    self._call_external(ExternalSupplyFailed, "wrap", self._asset.wrap, native)

            with self._unit_of_work("supply"):
                amount = self._idle_wrapped
                self._idle_wrapped = 0
                self._call_external(ExternalSupplyFailed, "supply", self._yield.supply, amount)

                self._emit(Supplied, amount=amount, caller=caller)

        logger.info(
            "Supply committed: amount=%d caller=%s", amount, caller,
            extra={"operation": "supply", "amount": amount},
        )
        return amount

    def withdraw(self, depositor: str, amount: int) -> WithdrawalReceipt:
        """Вывести `amount` principal, выплата равна пропорциональной доле стоимости пула.

        Маршрутизация (по порядку, пока выплата не покрыта):
        1. native idle → native форма
        2. wrapped idle → wrapped форма
        3. вывод из yield source → wrapped форма (unwrap не выполняется)

        Native часть отправляется первой. Если wrapped часть не ушла после
        доставки native части, доставленная часть фиксируется как вывод
        principal, округлённого вверх, остальное откатывается
        (TransferFailed.receipt описывает зафиксированную часть).

        Raises:
            InvalidAmount: amount <= 0 или не int
            InsufficientBalance: amount > principal депозитора
            ExternalWithdrawFailed: сбой или недостача при выводе из yield source
            TransferFailed: сбой отправки выплаты
        """
        depositor = self._validate_identity(depositor, "depositor")
        validate_amount(amount)

        partial_failure: Optional[TransferFailed] = None

        with self._unit_of_work("withdraw"):
            available = self._principals.get(depositor, 0)
            if amount > available:
                raise InsufficientBalance(depositor, amount, available)

            payout = proportional_share(self.total_vault_value(), amount, self._total_principal)

            # Effects
            self._set_principal(depositor, available - amount)
            self._total_principal -= amount

            native_paid = min(self._idle_native, payout)
            from_wrapped_idle = min(self._idle_wrapped, payout - native_paid)
            shortfall = payout - native_paid - from_wrapped_idle
            wrapped_paid = from_wrapped_idle + shortfall

            self._idle_native -= native_paid
            self._idle_wrapped -= from_wrapped_idle

            # Interactions
            pulled = 0
            if shortfall > 0:
                pulled = self._pull_from_yield_source(shortfall)

            native_delivered = False
            try:
                if native_paid > 0:
                    self._call_external(
                        TransferFailed, "native send", self._asset.send, depositor, native_paid
                    )
                    native_delivered = True
                if wrapped_paid > 0:
                    self._call_external(
                        TransferFailed, "wrapped send", self._asset.send, depositor, wrapped_paid, True
                    )
            except TransferFailed as e:
                if pulled > 0:
                    self._return_to_yield_source(pulled)
                if not native_delivered:
                    raise
                partial_failure = e

                # Native часть уже у депозитора: списать соответствующий principal
                charged = -(-amount * native_paid // payout)
                self._set_principal(depositor, self._principals.get(depositor, 0) + amount - charged)
                self._total_principal += amount - charged
                self._idle_wrapped += from_wrapped_idle
                amount, payout, wrapped_paid, pulled = charged, native_paid, 0, 0

            self._emit(Withdrawn, depositor=depositor, principal_amount=amount, payout_value=payout)

        receipt = WithdrawalReceipt(
            depositor=depositor,
            principal_amount=amount,
            payout=payout,
            native_paid=native_paid,
            wrapped_paid=wrapped_paid,
            pulled_from_yield=pulled,
        )
        extra = {"operation": "withdraw", "depositor": depositor, "amount": amount, "payout": payout}

        if partial_failure is not None:
            logger.error(
                "Withdraw partially delivered: depositor=%s principal=%d native=%d, wrapped leg failed: %s",
                depositor, amount, native_paid, partial_failure,
                extra=extra,
            )
            raise TransferFailed(
                f"wrapped send failed after native payout of {native_paid} was delivered; "
                f"{amount} principal withdrawn: {partial_failure}",
                receipt=receipt,
            ) from partial_failure

        logger.info(
            "Withdraw committed: depositor=%s principal=%d payout=%d native=%d wrapped=%d",
            depositor, amount, payout, native_paid, wrapped_paid,
            extra=extra,
        )
        return receipt

    # =========================================================================
    # VALUATION QUERIES
    # =========================================================================

    def total_vault_value(self) -> int:
        """idle balance + claim в yield source."""
        with self._lock:
            return self._idle_native + self._idle_wrapped + self._yield.balance_held()

    def user_value(self, depositor: str) -> int:
        """Доля депозитора в стоимости пула (floor); 0 при пустом ledger."""
        with self._lock:
            if self._total_principal == 0:
                return 0
            return proportional_share(
                self.total_vault_value(),
                self._principals.get(depositor, 0),
                self._total_principal,
            )

    def user_interest(self, depositor: str) -> int:
        """Накопленный доход депозитора: max(0, user_value - principal)."""
        with self._lock:
            return interest_over(self.user_value(depositor), self._principals.get(depositor, 0))

    def get_idle_balance(self) -> int:
        """Native idle + wrapped idle."""
        with self._lock:
            return self._idle_native + self._idle_wrapped

    def get_idle_wrapped_balance(self) -> int:
        with self._lock:
            return self._idle_wrapped

    def get_yield_source_balance(self) -> int:
        with self._lock:
            return self._yield.balance_held()

    def principal_of(self, depositor: str) -> int:
        with self._lock:
            return self._principals.get(depositor, 0)

    @property
    def total_principal(self) -> int:
        with self._lock:
            return self._total_principal

    @property
    def addresses(self) -> VaultAddresses:
        return self._addresses

    def depositors(self) -> Dict[str, int]:
        """Копия principal по депозиторам (включая нулевые записи, если не pruned)."""
        with self._lock:
            return dict(self._principals)

    def snapshot(self) -> VaultSnapshot:
        with self._lock:
            yield_balance = self._yield.balance_held()
            idle = self._idle_native + self._idle_wrapped
            return VaultSnapshot(
                addresses=self._addresses,
                total_principal=self._total_principal,
                idle_balance=idle,
                idle_wrapped_balance=self._idle_wrapped,
                yield_source_balance=yield_balance,
                total_vault_value=idle + yield_balance,
                depositors=dict(self._principals),
            )

    def check_invariants(self) -> None:
        """
        Raises:
            LedgerInvariantViolation: total_principal != Σ principal
        """
        with self._lock:
            principal_sum = sum(self._principals.values())
            if principal_sum != self._total_principal:
                raise LedgerInvariantViolation(
                    f"total_principal {self._total_principal} != sum of principals {principal_sum}"
                )
            negative = [d for d, p in self._principals.items() if p < 0]
            if negative:
                raise LedgerInvariantViolation(f"Negative principal for {negative}")

    # =========================================================================
    # EVENTS
    # =========================================================================

    def events(self) -> Tuple[VaultEvent, ...]:
        with self._lock:
            return tuple(self._events)

    def subscribe(self, callback: EventSubscriber) -> Callable[[], None]:
        """Подписка на события; возвращает функцию отписки.

        Подписчик вызывается после commit операции. Исключение подписчика
        логируется и не откатывает операцию.
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    # =========================================================================
    # INTERNALS
    # =========================================================================

    @contextmanager
    def _unit_of_work(self, operation: str) -> Iterator[None]:
        """Атомарная единица работы: checkpoint → операция → commit или restore.

        Вложенная (re-entrant) единица, завершившаяся успешно, необратима:
        её переводы уже выполнены, поэтому её изменения переносятся в
        checkpoints внешних единиц и переживают их откат.
        """
        with self._lock:
            checkpoint = self._checkpoint()
            self._checkpoints.append(checkpoint)
            try:
                yield
            except Exception as e:
                self._checkpoints.pop()
                self._restore(checkpoint)
                logger.warning(
                    "%s rolled back: %s: %s", operation, type(e).__name__, e,
                    extra={"operation": operation},
                )
                if not self._checkpoints:
                    self._commit()
                raise

            self._checkpoints.pop()
            if self._checkpoints:
                self._carry_into_outer(checkpoint)
            else:
                self._commit()

    def _checkpoint(self) -> _Checkpoint:
        return _Checkpoint(
            principals=dict(self._principals),
            total_principal=self._total_principal,
            idle_native=self._idle_native,
            idle_wrapped=self._idle_wrapped,
            events_len=len(self._events),
            unpublished_len=len(self._unpublished),
            next_sequence=self._next_sequence,
        )

    def _restore(self, checkpoint: _Checkpoint) -> None:
        self._principals = dict(checkpoint.principals)
        self._total_principal = checkpoint.total_principal
        self._idle_native = checkpoint.idle_native
        self._idle_wrapped = checkpoint.idle_wrapped
        del self._events[checkpoint.events_len:]
        del self._unpublished[checkpoint.unpublished_len:]
        self._next_sequence = checkpoint.next_sequence

    def _carry_into_outer(self, inner: _Checkpoint) -> None:
        """Перенести изменения завершённой вложенной единицы в checkpoints внешних.

        События выпускаются только в конце операции, после всех внешних
        вызовов, поэтому события после `inner` принадлежат вложенной единице.
        """
        depositors = set(inner.principals) | set(self._principals)
        for outer in self._checkpoints:
            for depositor in depositors:
                delta = self._principals.get(depositor, 0) - inner.principals.get(depositor, 0)
                value = outer.principals.get(depositor, 0) + delta
                if depositor in self._principals or value != 0:
                    outer.principals[depositor] = value
                else:
                    outer.principals.pop(depositor, None)
            outer.total_principal += self._total_principal - inner.total_principal
            outer.idle_native += self._idle_native - inner.idle_native
            outer.idle_wrapped += self._idle_wrapped - inner.idle_wrapped
            outer.events_len += len(self._events) - inner.events_len
            outer.unpublished_len += len(self._unpublished) - inner.unpublished_len
            outer.next_sequence += self._next_sequence - inner.next_sequence

    def _commit(self) -> None:
        limit = self.config.event_history_limit
        if limit is not None and len(self._events) > limit:
            del self._events[: len(self._events) - limit]

        pending, self._unpublished = self._unpublished, []
        for event in pending:
            for subscriber in list(self._subscribers):
                try:
                    subscriber(event)
                except Exception:
                    logger.exception("Event subscriber failed on %s #%d", event.kind, event.sequence)

    def _emit(self, event_cls: type, **fields) -> None:
        event = event_cls(sequence=self._next_sequence, ts_utc_ms=self._clock(), **fields)
        self._next_sequence += 1
        self._events.append(event)
        self._unpublished.append(event)

    def _set_principal(self, depositor: str, principal: int) -> None:
        if principal == 0 and self.config.prune_empty_records:
            self._principals.pop(depositor, None)
        else:
            self._principals[depositor] = principal

    def _pull_from_yield_source(self, amount: int) -> int:
        returned = self._call_external(
            ExternalWithdrawFailed, "yield source withdraw", self._yield.withdraw, amount
        )
        if returned != amount:
            if returned > 0:
                self._return_to_yield_source(returned)
            raise ExternalWithdrawFailed(
                f"Yield source returned {returned}, expected {amount}"
            )
        return returned

    def _return_to_yield_source(self, amount: int) -> None:
        """Вернуть выведенные в рамках операции средства в yield source.

        Если протокол их не принял, средства остаются у ledger в wrapped
        форме: они учитываются как wrapped idle (в том числе после отката)
        и уходят в yield source со следующим supply.
        """
        try:
            self._yield.supply(amount)
        except Exception:
            logger.exception(
                "Failed to return %d to yield source, keeping it as wrapped idle", amount,
                extra={"operation": "withdraw", "amount": amount},
            )
            self._idle_wrapped += amount
            for checkpoint in self._checkpoints:
                checkpoint.idle_wrapped += amount

    @staticmethod
    def _call_external(error_cls: type, action: str, fn: Callable, *args):
        try:
            return fn(*args)
        except Exception as e:
            raise error_cls(f"{action} failed: {e}") from e

    @staticmethod
    def _validate_identity(value: str, name: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise InvalidAddress(f"{name} must be a non-empty string, got {value!r}")
        return value

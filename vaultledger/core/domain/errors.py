"""
Ошибки VaultLedger

Таксономия:
- Локальные (ошибка входных данных, состояние не меняется):
  InvalidAmount, InsufficientBalance, NoIdleFunds, InvalidAddress
- Внешние (сбой коллаборатора, операция откатывается целиком):
  ExternalSupplyFailed, ExternalWithdrawFailed, TransferFailed
  (кроме уже доставленной части выплаты, см. TransferFailed.receipt)
- Критические:
  LedgerInvariantViolation

Автоматических повторов нет: политика retry на стороне вызывающего.
"""


class VaultError(Exception):
    """Базовый класс всех ошибок VaultLedger."""


class InvalidAmount(VaultError):
    """Нулевая, отрицательная или нецелая сумма."""


class InsufficientBalance(VaultError):
    """
    Запрошен вывод principal больше, чем принадлежит депозитору.

    Attributes:
        depositor: Идентификатор депозитора
        requested: Запрошенный principal
        available: Principal депозитора на момент запроса
    """

    def __init__(self, depositor: str, requested: int, available: int):
        self.depositor = depositor
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient balance for {depositor}: "
            f"requested {requested}, available {available}"
        )


class NoIdleFunds(VaultError):
    """Supply вызван при нулевом idle balance."""


class InvalidAddress(VaultError):
    """Пустой адрес/handle коллаборатора при создании ledger."""


class ExternalSupplyFailed(VaultError):
    """Сбой wrap или supply во внешнем протоколе."""


class ExternalWithdrawFailed(VaultError):
    """
    Сбой вывода из внешнего протокола.

    Включает случай, когда протокол вернул сумму, отличную от запрошенной.
    """


class TransferFailed(VaultError):
    """
    Сбой приёма или отправки base asset (native или wrapped).

    Attributes:
        receipt: WithdrawalReceipt уже доставленной части выплаты, если
            native часть дошла до депозитора до сбоя wrapped части (иначе None)
    """

    def __init__(self, message: str, receipt=None):
        self.receipt = receipt
        super().__init__(message)


class LedgerInvariantViolation(VaultError):
    """
    Нарушение инварианта total_principal == Σ principal_deposited.

    При возникновении ledger считается повреждённым: требуется ручной аудит.
    """

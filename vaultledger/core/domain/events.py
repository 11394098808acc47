"""
Events — события ledger для внешних наблюдателей (indexers, UI)

Immutable Pydantic модели. Соответствуют схеме contracts/schema/vault_event.json.

События публикуются только после успешного завершения операции:
откат операции удаляет её события из истории.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


# =============================================================================
# BASE
# =============================================================================


class VaultEvent(BaseModel):
    """Общие поля всех событий ledger."""

    sequence: int = Field(..., ge=0, description="Монотонный номер события в ledger")
    ts_utc_ms: int = Field(..., ge=0, description="Время события (UTC, миллисекунды)")

    model_config = {"frozen": True}


# =============================================================================
# EVENTS
# =============================================================================


class Deposited(VaultEvent):
    """Депозитор внёс base asset (funds остаются idle)."""

    kind: Literal["Deposited"] = "Deposited"
    depositor: str = Field(..., min_length=1, description="Идентификатор депозитора")
    amount: int = Field(..., gt=0, description="Внесённая сумма (base units)")


class Supplied(VaultEvent):
    """Весь idle balance направлен во внешний yield source."""

    kind: Literal["Supplied"] = "Supplied"
    amount: int = Field(..., gt=0, description="Сумма supply (base units)")
    caller: str = Field(..., min_length=1, description="Кто инициировал supply")


class Withdrawn(VaultEvent):
    """
    Депозитор вывел часть principal.

    payout_value может превышать principal_amount (накопленный доход)
    или быть меньше (убыток внешнего протокола).
    """

    kind: Literal["Withdrawn"] = "Withdrawn"
    depositor: str = Field(..., min_length=1, description="Идентификатор депозитора")
    principal_amount: int = Field(..., gt=0, description="Выведенный principal (base units)")
    payout_value: int = Field(..., ge=0, description="Выплаченная стоимость (base units)")


LedgerEvent = Annotated[
    Union[Deposited, Supplied, Withdrawn],
    Field(discriminator="kind"),
]

"""
VaultState — адреса коллабораторов и снапшот состояния ledger

Immutable Pydantic модели.
VaultSnapshot полностью совместим с contracts/schema/vault_snapshot.json.
"""

from pydantic import BaseModel, Field, field_validator, model_validator


# =============================================================================
# ADDRESSES
# =============================================================================


class VaultAddresses(BaseModel):
    """
    Handles трёх внешних коллабораторов, обязательные при создании ledger.

    - yield_pool: пул внешнего yield протокола
    - wrapped_asset: wrapper base asset (native → wrapped)
    - claim_token: receipt token, отслеживающий claim ledger в пуле
    """

    yield_pool: str = Field(..., description="Адрес пула yield source")
    wrapped_asset: str = Field(..., description="Адрес wrapped base asset")
    claim_token: str = Field(..., description="Адрес receipt token (claim tracker)")

    model_config = {"frozen": True}

    @field_validator("yield_pool", "wrapped_asset", "claim_token", mode="before")
    @classmethod
    def validate_not_empty(cls, v: object) -> object:
        """Адрес не может быть None или пустой строкой."""
        if v is None:
            raise ValueError("address must not be null")
        if isinstance(v, str):
            v = v.strip()
            if not v:
                raise ValueError("address must not be empty")
        return v


# =============================================================================
# SNAPSHOT
# =============================================================================


class VaultSnapshot(BaseModel):
    """
    Снапшот состояния ledger.

    Содержит:
    - Адреса коллабораторов
    - Bookkeeping (total_principal, principal по депозиторам)
    - Стоимость (idle, yield claim, total value)
    """

    schema_version: str = Field("1", pattern="^1$", description="Версия схемы снапшота")
    addresses: VaultAddresses

    total_principal: int = Field(..., ge=0, description="Σ principal всех депозиторов")
    idle_balance: int = Field(..., ge=0, description="Base asset, не направленный в yield source")
    idle_wrapped_balance: int = Field(
        0, ge=0, description="Часть idle_balance в wrapped форме (после сбоя supply)"
    )
    yield_source_balance: int = Field(..., ge=0, description="Claim ledger в yield source")
    total_vault_value: int = Field(..., ge=0, description="idle_balance + yield_source_balance")

    depositors: dict[str, int] = Field(
        default_factory=dict, description="principal_deposited по депозиторам"
    )

    model_config = {"frozen": True}

    @field_validator("depositors")
    @classmethod
    def validate_principals(cls, v: dict[str, int]) -> dict[str, int]:
        """Principal депозитора не может быть отрицательным."""
        for depositor, principal in v.items():
            if principal < 0:
                raise ValueError(f"principal of {depositor} is negative: {principal}")
        return v

    @model_validator(mode="after")
    def validate_totals(self) -> "VaultSnapshot":
        """Проверка согласованности агрегатов."""
        if self.idle_wrapped_balance > self.idle_balance:
            raise ValueError(
                f"idle_wrapped_balance {self.idle_wrapped_balance} exceeds idle_balance {self.idle_balance}"
            )
        if self.total_vault_value != self.idle_balance + self.yield_source_balance:
            raise ValueError(
                f"total_vault_value {self.total_vault_value} != idle_balance "
                f"{self.idle_balance} + yield_source_balance {self.yield_source_balance}"
            )
        principal_sum = sum(self.depositors.values())
        if self.total_principal != principal_sum:
            raise ValueError(
                f"total_principal {self.total_principal} != sum of depositor principals {principal_sum}"
            )
        return self

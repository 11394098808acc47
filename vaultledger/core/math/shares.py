"""
Shares — целочисленная арифметика пропорциональных долей

Единственный допустимый способ преобразований между:
- principal (вклад депозитора, base units)
- value (доля текущей стоимости пула, base units)
- interest (накопленный доход, base units)

Все суммы: целые числа в минимальных единицах base asset.
Float запрещён: округление только вниз (floor), в пользу пула.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Деление на ноль никогда не происходит (whole == 0 → 0)
2. floor(value * part / whole) <= value для part <= whole
3. Погрешность доли не превышает ROUNDING_TOLERANCE на одну операцию
"""

from typing import Final

from vaultledger.core.domain.errors import InvalidAmount


# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Одна целая единица base asset в минимальных единицах (18 знаков)
BASE_UNIT: Final[int] = 10**18

# Максимальная погрешность floor-деления на одну операцию (base units)
ROUNDING_TOLERANCE: Final[int] = 1


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def validate_amount(amount: int, name: str = "amount") -> int:
    """
    Проверка суммы операции (deposit/withdraw).

    Args:
        amount: Сумма в base units
        name: Имя параметра для сообщения об ошибке

    Returns:
        amount без изменений

    Raises:
        InvalidAmount: Если сумма не int, bool, ноль или отрицательная
    """
    # bool является подклассом int
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(f"{name} must be an integer amount of base units, got {amount!r}")

    if amount <= 0:
        raise InvalidAmount(f"{name} must be greater than 0, got {amount}")

    return amount


def _require_non_negative(value: int, name: str) -> None:
    if value < 0:
        raise ValueError(f"{name} cannot be negative: {value}")


# =============================================================================
# ДОЛИ
# =============================================================================


def proportional_share(total_value: int, part: int, whole: int) -> int:
    """
    Пропорциональная доля стоимости пула.

    share = floor(total_value * part / whole)

    Умножение выполняется до деления, поэтому промежуточный результат
    точен (int без переполнения). При whole == 0 возвращается 0.

    Args:
        total_value: Полная стоимость пула (idle + yield claim)
        part: Principal депозитора (или выводимая часть principal)
        whole: Суммарный principal всех депозиторов

    Returns:
        Доля стоимости в base units (floor)

    Raises:
        ValueError: Если любой аргумент отрицательный

    Examples:
        >>> proportional_share(110, 1, 2)
        55
        >>> proportional_share(100, 1, 3)
        33
        >>> proportional_share(100, 5, 0)
        0
    """
    _require_non_negative(total_value, "total_value")
    _require_non_negative(part, "part")
    _require_non_negative(whole, "whole")

    if whole == 0:
        return 0

    return (total_value * part) // whole


def interest_over(value: int, principal: int) -> int:
    """
    Накопленный доход: max(0, value - principal).

    Убыток внешнего протокола не отображается как отрицательный доход.
    """
    return max(0, value - principal)

"""
Core math modules для vaultledger

Целочисленные примитивы для оценки долей пула.
"""

from vaultledger.core.math.shares import (
    BASE_UNIT,
    ROUNDING_TOLERANCE,
    interest_over,
    proportional_share,
    validate_amount,
)

__all__ = [
    # Constants
    "BASE_UNIT",
    "ROUNDING_TOLERANCE",
    # Functions
    "interest_over",
    "proportional_share",
    "validate_amount",
]

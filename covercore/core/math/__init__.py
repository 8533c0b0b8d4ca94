"""
Core math modules для covercore

Целочисленные примитивы с явными правилами округления и переполнения.
"""

from covercore.core.math.fixed_point import (
    # Constants
    ONE_DAY,
    ONE_ETHER,
    ONE_YEAR,
    UINT32_MAX,
    UINT96_MAX,
    # Division
    div_ceil,
    saturating_sub,
    # Safe cast
    safe_cast_uint32,
    safe_cast_uint96,
    # Validation
    validate_at_most,
    validate_non_negative_int,
    validate_positive_int,
)

__all__ = [
    # Constants
    "ONE_DAY",
    "ONE_ETHER",
    "ONE_YEAR",
    "UINT32_MAX",
    "UINT96_MAX",
    # Division
    "div_ceil",
    "saturating_sub",
    # Safe cast
    "safe_cast_uint32",
    "safe_cast_uint96",
    # Validation
    "validate_at_most",
    "validate_non_negative_int",
    "validate_positive_int",
]

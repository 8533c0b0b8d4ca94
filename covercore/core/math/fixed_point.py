"""
Fixed Point — целочисленные примитивы для расчётов протокола

Модуль заменяет float-арифметику на целочисленную с явными правилами
округления. Все премии и цены должны совпадать бит-в-бит с независимой
эталонной реализацией, поэтому:

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. По умолчанию деление — floor (//), ceil только там, где это указано явно
   (div_ceil: price bump, округление до allocation unit)
2. Переполнение uint32 — всегда исключение, никогда не wrap/clamp
3. Вычитание в беззнаковом домене не уходит ниже нуля (saturating_sub)
4. Деление на ноль не маскируется fallback-значением, а пробрасывается
"""

from typing import Final

from covercore.core.errors import AllocationOverflowError

# =============================================================================
# ГРАНИЦЫ ЦЕЛЫХ ТИПОВ
# =============================================================================

UINT32_MAX: Final[int] = 2**32 - 1
UINT96_MAX: Final[int] = 2**96 - 1

# 1 ether в wei (18 decimals)
ONE_ETHER: Final[int] = 10**18

ONE_DAY: Final[int] = 24 * 60 * 60
ONE_YEAR: Final[int] = 365 * ONE_DAY


# =============================================================================
# ДЕЛЕНИЕ
# =============================================================================


def div_ceil(numerator: int, denominator: int) -> int:
    """
    Целочисленное деление с округлением вверх.

    Args:
        numerator: Числитель (>= 0)
        denominator: Знаменатель (> 0)

    Returns:
        ceil(numerator / denominator)

    Raises:
        ZeroDivisionError: Если denominator == 0
        ValueError: Если аргументы отрицательные

    Examples:
        >>> div_ceil(10, 3)
        4
        >>> div_ceil(9, 3)
        3
        >>> div_ceil(1, 10**16)
        1
    """
    if numerator < 0 or denominator < 0:
        raise ValueError(
            f"div_ceil expects non-negative operands, got {numerator}, {denominator}"
        )
    if denominator == 0:
        raise ZeroDivisionError("div_ceil: division by zero")

    return (numerator + denominator - 1) // denominator


def saturating_sub(a: int, b: int) -> int:
    """
    Вычитание в беззнаковом домене: max(a - b, 0).

    Examples:
        >>> saturating_sub(2000, 50)
        1950
        >>> saturating_sub(50, 2000)
        0
    """
    return a - b if a > b else 0


# =============================================================================
# SAFE CAST
# =============================================================================


def safe_cast_uint32(value: int) -> int:
    """
    Проверка, что значение помещается в uint32.

    Args:
        value: Целое значение

    Returns:
        value без изменений

    Raises:
        AllocationOverflowError: Если value > 2**32 - 1 (или отрицательное)
    """
    if value < 0 or value > UINT32_MAX:
        raise AllocationOverflowError()
    return value


def safe_cast_uint96(value: int) -> int:
    """Проверка, что значение помещается в uint96 (цены продуктов)."""
    if value < 0 or value > UINT96_MAX:
        raise OverflowError("SafeCast: value doesn't fit in 96 bits")
    return value


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def validate_non_negative_int(value: int, name: str) -> None:
    """
    Валидация, что значение — неотрицательное целое.

    Raises:
        TypeError: Если value не int (bool тоже отвергается)
        ValueError: Если value < 0
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")

    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")


def validate_positive_int(value: int, name: str) -> None:
    """
    Валидация, что значение — положительное целое.

    Raises:
        TypeError: Если value не int
        ValueError: Если value <= 0
    """
    validate_non_negative_int(value, name)

    if value == 0:
        raise ValueError(f"{name} must be positive, got {value}")


def validate_at_most(value: int, name: str, max_value: int) -> None:
    """Валидация верхней границы (включительно)."""
    if value > max_value:
        raise ValueError(f"{name} must be <= {max_value}, got {value}")

"""
Units — централизованный модуль конверсии единиц и временных окон

Единственный допустимый способ преобразований между:
- NXM в wei (18 decimals)
- allocation units (0.01 NXM, 2 decimals)
- timestamp → tranche id / bucket id

ЗАПРЕЩЕНО смешивать единицы без явного конвертера из этого модуля.
"""

from typing import Final

from covercore.core.math.fixed_point import ONE_DAY, div_ceil


# =============================================================================
# ALLOCATION UNITS
# =============================================================================

# 1 allocation unit = 0.01 NXM
NXM_PER_ALLOCATION_UNIT: Final[int] = 10**16

# 1 NXM = 100 allocation units
ALLOCATION_UNITS_PER_NXM: Final[int] = 100


# =============================================================================
# ВРЕМЕННЫЕ ОКНА
# =============================================================================

# Длительность транша (окно обязательства стейкера)
TRANCHE_DURATION: Final[int] = 91 * ONE_DAY

# Длительность bucket (гранулярность экспирации аллокаций)
BUCKET_DURATION: Final[int] = 28 * ONE_DAY

# Количество одновременно активных траншей
MAX_ACTIVE_TRANCHES: Final[int] = 8


# =============================================================================
# КОНВЕРТЕРЫ
# =============================================================================


def nxm_to_allocation_units(amount_nxm: int, unit: int = NXM_PER_ALLOCATION_UNIT) -> int:
    """
    Конверсия: NXM (wei) → allocation units, с округлением вверх.

    Любое ненулевое количество меньше одной allocation unit
    оплачивается как одна allocation unit.

    Args:
        amount_nxm: Количество NXM в wei
        unit: Размер allocation unit в NXM wei

    Returns:
        div_ceil(amount_nxm, unit)
    """
    return div_ceil(amount_nxm, unit)


def allocation_units_to_nxm(units: int) -> int:
    """Конверсия: allocation units → NXM (wei)."""
    return units * NXM_PER_ALLOCATION_UNIT


def tranche_id_at(timestamp: int, tranche_duration: int = TRANCHE_DURATION) -> int:
    """Tranche id, которому принадлежит timestamp."""
    return timestamp // tranche_duration


def bucket_id_at(timestamp: int, bucket_duration: int = BUCKET_DURATION) -> int:
    """Bucket id, которому принадлежит timestamp."""
    return timestamp // bucket_duration


def expiration_bucket_id(
    now: int,
    period: int,
    bucket_duration: int = BUCKET_DURATION,
) -> int:
    """
    Bucket, в начале которого аллокация истекает.

    Аллокация, заканчивающаяся посреди bucket, освобождается на его верхней
    границе: bucket_id * bucket_duration >= now + period.
    """
    return div_ceil(now + period, bucket_duration)


def days_to_seconds(days: float) -> int:
    """Конверсия дней в секунды (поддерживает дробные дни, например 91.25)."""
    return int(days * ONE_DAY)

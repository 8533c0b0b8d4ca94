"""Конфигурация staking pool: константы ценообразования и capacity.

Значения по умолчанию соответствуют боевому деплою протокола:
- цена снижается на PRICE_CHANGE_PER_DAY (0.5%) в день до target price
- каждая покупка поднимает цену на PRICE_BUMP_RATIO * доля capacity
- surge pricing включается выше 90% использования capacity
"""

from dataclasses import dataclass

from covercore.core.domain.units import (
    ALLOCATION_UNITS_PER_NXM,
    BUCKET_DURATION,
    MAX_ACTIVE_TRANCHES,
    NXM_PER_ALLOCATION_UNIT,
    TRANCHE_DURATION,
)


@dataclass(frozen=True)
class StakingConfig:
    """Константы staking pool.

    Все ratio — целые числа с явным denominator.
    """

    # Временные окна
    tranche_duration: int = TRANCHE_DURATION
    bucket_duration: int = BUCKET_DURATION
    max_active_tranches: int = MAX_ACTIVE_TRANCHES

    # Capacity
    global_capacity_ratio: int = 20_000  # 2x
    global_capacity_denominator: int = 10_000
    capacity_reduction_denominator: int = 10_000
    weight_denominator: int = 100

    # Цены
    initial_price_denominator: int = 10_000
    target_price_denominator: int = 10_000
    price_change_per_day: int = 50  # 0.5%
    price_bump_ratio: int = 2_000  # 20%

    # Surge pricing
    surge_threshold_ratio: int = 9_000  # 90%
    surge_threshold_denominator: int = 10_000
    surge_price_ratio: int = 2 * 10**18  # 200% при 100% capacity

    # Allocation units
    nxm_per_allocation_unit: int = NXM_PER_ALLOCATION_UNIT
    allocation_units_per_nxm: int = ALLOCATION_UNITS_PER_NXM


DEFAULT_STAKING_CONFIG = StakingConfig()

"""
Pricing — ценообразование покрытия в staking pool

Модуль вычисляет премию и новое ценовое состояние продукта:
- Decay цены: линейное снижение на price_change_per_day за день до target price
- Base premium: линейна по amount × base price
- Surge premium: только на часть запроса выше surge threshold
- Price bump: после покупки цена растёт пропорционально доле capacity

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Decay никогда не опускает цену ниже target_price (clamp, не wrap)
2. Все деления floor, кроме price bump (div_ceil)
3. total_capacity == 0 → ZeroCapacityError, а не fallback
4. Surge premium, уже оплаченный предыдущими покупками (surge_premium_skipped),
   вычитается — повторно не взимается

ФОРМУЛЫ:
    price_drop     = elapsed * price_change_per_day // 1 day
    base_price     = max(next_price - price_drop, target_price)

    base_premium   = amount * NXM_PER_ALLOCATION_UNIT * base_price // TARGET_PRICE_DENOMINATOR
    surge_start    = total_capacity * SURGE_THRESHOLD_RATIO // SURGE_THRESHOLD_DENOMINATOR
    f(x)           = x * SURGE_PRICE_RATIO * x // total_capacity // 2 // ALLOCATION_UNITS_PER_NXM
    surge_premium  = f(initial_used + amount - surge_start)
    skipped        = f(initial_used - surge_start)         (если initial_used > surge_start)
    premium / year = base_premium + surge_premium - skipped

    price_bump     = div_ceil(bump_ratio * amount, total_capacity)
    premium        = premium_per_year * period // 365 days
"""

from typing import NamedTuple

from covercore.core.domain.product import StakedProduct
from covercore.core.errors import ZeroCapacityError
from covercore.core.math.fixed_point import (
    ONE_DAY,
    ONE_YEAR,
    div_ceil,
    safe_cast_uint96,
    saturating_sub,
)
from covercore.staking.config import DEFAULT_STAKING_CONFIG, StakingConfig


# =============================================================================
# TYPES
# =============================================================================


class SurgePremiums(NamedTuple):
    """Составляющие surge premium."""

    surge_premium: int  # surge premium от surge start до final capacity used
    surge_premium_skipped: int  # часть, уже оплаченная до этой покупки


# =============================================================================
# BASE PRICE
# =============================================================================


def calculate_base_price(
    now: int,
    product: StakedProduct,
    price_change_per_day: int,
) -> int:
    """
    Базовая цена продукта с учётом decay.

    Цена линейно снижается от product.next_price на price_change_per_day
    за каждый полный день с момента последнего обновления, но не ниже
    product.target_price.

    Args:
        now: Текущий timestamp (секунды)
        product: Ценовое состояние продукта
        price_change_per_day: Снижение price ratio за день

    Returns:
        Базовая цена (price ratio)

    Raises:
        ValueError: Если now раньше последнего обновления цены

    Examples:
        >>> p = StakedProduct(product_id=0, next_price=2000, target_price=200,
        ...                   target_weight=100, next_price_update_time=0)
        >>> calculate_base_price(86400, p, 50)
        1950
        >>> calculate_base_price(183 * 86400, p, 50)
        200
    """
    if now < product.next_price_update_time:
        raise ValueError(
            f"now ({now}) is before next_price_update_time "
            f"({product.next_price_update_time})"
        )

    elapsed = now - product.next_price_update_time
    price_drop = elapsed * price_change_per_day // ONE_DAY

    # clamp к нулю, затем к target price
    decayed_price = saturating_sub(product.next_price, price_drop)
    return max(decayed_price, product.target_price)


# =============================================================================
# SURGE PREMIUM
# =============================================================================


def _surge_premium(
    amount_on_surge: int,
    total_capacity: int,
    config: StakingConfig,
) -> int:
    """
    Премия за amount_on_surge единиц выше surge start.

    Surge price растёт линейно от 0 в точке surge start до
    SURGE_PRICE_RATIO * amount_on_surge / total_capacity, поэтому премия —
    площадь треугольника (деление на 2). amount_on_surge имеет 2 decimals,
    деление на ALLOCATION_UNITS_PER_NXM нормализует результат в wei.
    """
    surge_premium = (
        amount_on_surge * config.surge_price_ratio * amount_on_surge
        // total_capacity
        // 2
    )
    return surge_premium // config.allocation_units_per_nxm


def calculate_surge_premiums(
    amount_units: int,
    initial_capacity_used: int,
    total_capacity: int,
    config: StakingConfig = DEFAULT_STAKING_CONFIG,
) -> SurgePremiums:
    """
    Surge premium для запроса и уже оплаченная его часть.

    Args:
        amount_units: Запрошенное количество (allocation units)
        initial_capacity_used: Использованная capacity до покупки (allocation units)
        total_capacity: Полная capacity (allocation units)
        config: Константы пула

    Returns:
        SurgePremiums(surge_premium, surge_premium_skipped); оба 0,
        если итоговое использование не превышает surge threshold

    Raises:
        ZeroCapacityError: Если total_capacity == 0
    """
    if total_capacity == 0:
        raise ZeroCapacityError("total_capacity must be positive")

    surge_start_point = (
        total_capacity
        * config.surge_threshold_ratio
        // config.surge_threshold_denominator
    )
    final_capacity_used = initial_capacity_used + amount_units

    if final_capacity_used <= surge_start_point:
        return SurgePremiums(surge_premium=0, surge_premium_skipped=0)

    amount_on_surge = final_capacity_used - surge_start_point
    surge_premium = _surge_premium(amount_on_surge, total_capacity, config)

    surge_premium_skipped = 0
    if initial_capacity_used > surge_start_point:
        amount_on_surge_skipped = initial_capacity_used - surge_start_point
        surge_premium_skipped = _surge_premium(
            amount_on_surge_skipped, total_capacity, config
        )

    return SurgePremiums(
        surge_premium=surge_premium,
        surge_premium_skipped=surge_premium_skipped,
    )


# =============================================================================
# PREMIUM
# =============================================================================


def calculate_premium_per_year(
    base_price: int,
    amount_units: int,
    initial_capacity_used: int,
    total_capacity: int,
    config: StakingConfig = DEFAULT_STAKING_CONFIG,
) -> int:
    """
    Годовая премия (NXM wei) за amount_units по base_price.

    Args:
        base_price: Базовая цена после decay (price ratio)
        amount_units: Количество (allocation units)
        initial_capacity_used: Использованная capacity до покупки
        total_capacity: Полная capacity пула для продукта
        config: Константы пула

    Returns:
        base_premium + surge_premium - surge_premium_skipped

    Raises:
        ZeroCapacityError: Если total_capacity == 0
    """
    if total_capacity == 0:
        raise ZeroCapacityError("total_capacity must be positive")

    base_premium = (
        amount_units
        * config.nxm_per_allocation_unit
        * base_price
        // config.target_price_denominator
    )

    surge = calculate_surge_premiums(
        amount_units, initial_capacity_used, total_capacity, config
    )

    return base_premium + surge.surge_premium - surge.surge_premium_skipped


def calculate_price_bump(
    amount_units: int,
    price_bump_ratio: int,
    total_capacity: int,
) -> int:
    """
    Рост цены после покупки amount_units.

    Округление вверх: систематическое занижение цены недопустимо.

    Raises:
        ZeroCapacityError: Если total_capacity == 0

    Examples:
        >>> calculate_price_bump(480_000, 2_000, 10_000_000)
        96
        >>> calculate_price_bump(1, 2_000, 10_000_000)
        1
    """
    if total_capacity == 0:
        raise ZeroCapacityError("total_capacity must be positive")

    return div_ceil(price_bump_ratio * amount_units, total_capacity)


def calculate_premium(
    product: StakedProduct,
    period: int,
    amount_units: int,
    initial_capacity_used: int,
    total_capacity: int,
    now: int,
    config: StakingConfig = DEFAULT_STAKING_CONFIG,
) -> tuple[int, StakedProduct]:
    """
    Премия за период и новое ценовое состояние продукта.

    Порядок:
    1. base_price = decay(next_price) на момент now
    2. next_price' = base_price + price_bump(amount)
    3. premium = premium_per_year(base_price) * period // 365 days

    Args:
        product: Текущее ценовое состояние продукта
        period: Период покрытия (секунды)
        amount_units: Количество (allocation units)
        initial_capacity_used: Использованная capacity до покупки
        total_capacity: Полная capacity
        now: Текущий timestamp
        config: Константы пула

    Returns:
        (premium, updated_product); product не мутируется
    """
    base_price = calculate_base_price(now, product, config.price_change_per_day)
    price_bump = calculate_price_bump(
        amount_units, config.price_bump_ratio, total_capacity
    )

    updated_product = product.model_copy(
        update={
            "next_price": safe_cast_uint96(base_price + price_bump),
            "next_price_update_time": now,
        }
    )

    premium_per_year = calculate_premium_per_year(
        base_price,
        amount_units,
        initial_capacity_used,
        total_capacity,
        config,
    )

    premium = premium_per_year * period // ONE_YEAR

    return premium, updated_product


def calculate_fixed_price_premium(
    amount_units: int,
    period: int,
    fixed_price: int,
    config: StakingConfig = DEFAULT_STAKING_CONFIG,
) -> int:
    """
    Премия для продуктов с фиксированной ценой (без decay, bump и surge).

    premium = amount * NXM_PER_ALLOCATION_UNIT * fixed_price // DENOM * period // 365 days
    """
    premium_per_year = (
        amount_units
        * config.nxm_per_allocation_unit
        * fixed_price
        // config.target_price_denominator
    )
    return premium_per_year * period // ONE_YEAR

"""
Тесты для StakingPool — транши, аллокации, экспирации, сквозное ценообразование

Сценарий: 50_000 NXM в транше current+4, продукт 0 с initial price 20%,
target price 2%, weight 100, grace period 7 дней, период 91.25 дней.

Проверяемые инварианты:
1. Capacity транша = stake * 2x / NXM_PER_ALLOCATION_UNIT
2. Цена после серии покупок: 296 → 680 → 910 → 1140 → 710 → 306
3. uint32 overflow → AllocationOverflowError, состояние не меняется
4. Истёкшие bucket'ы освобождают capacity
5. Нехватка capacity → InsufficientCapacityError, состояние не меняется
6. Транши заполняются по возрастанию, начиная с первого, переживающего
   покрытие вместе с grace period
"""

import logging

import pytest

from covercore.core.domain.allocation import AllocationRequest
from covercore.core.domain.product import ProductInitializationParams
from covercore.core.domain.units import BUCKET_DURATION, TRANCHE_DURATION, days_to_seconds
from covercore.core.errors import (
    AllocationOverflowError,
    InsufficientCapacityError,
    InvalidTrancheError,
    UnknownProductError,
)
from covercore.core.math.fixed_point import ONE_DAY, ONE_ETHER, ONE_YEAR
from covercore.staking.pool import StakingPool

# Граница и транша, и bucket'а (9100 дней делится на 91 и на 28)
T0 = TRANCHE_DURATION * 100
FIRST_TRANCHE = 100
PERIOD = days_to_seconds(91.25)
GRACE_PERIOD = 7 * ONE_DAY
STAKED = 50_000 * ONE_ETHER
TOTAL_CAPACITY = 10_000_000


def nxm(amount: int) -> int:
    return amount * ONE_ETHER


@pytest.fixture
def pool():
    """Пул с одним продуктом и 50_000 NXM в транше current+4."""
    staking_pool = StakingPool(pool_id=0, manager="0x" + "aa" * 20, now=T0)
    staking_pool.set_products(
        [ProductInitializationParams(product_id=0, weight=100, initial_price=2_000, target_price=200)],
        now=T0,
    )
    staking_pool.deposit_to(STAKED, FIRST_TRANCHE + 4, now=T0)
    return staking_pool


@pytest.fixture
def request_template():
    return AllocationRequest(product_id=0, period=PERIOD, grace_period=GRACE_PERIOD)


# =============================================================================
# ТЕСТЫ: Products и deposits
# =============================================================================


class TestProductsAndDeposits:
    """Тесты set_products и deposit_to."""

    def test_product_initialized(self, pool):
        product = pool.get_product(0)
        assert product.next_price == 2_000
        assert product.target_price == 200
        assert product.target_weight == 100
        assert product.next_price_update_time == T0

    def test_update_keeps_next_price(self, pool):
        pool.set_products(
            [ProductInitializationParams(product_id=0, weight=50, initial_price=1_000, target_price=300)],
            now=T0 + ONE_DAY,
        )
        product = pool.get_product(0)
        assert product.next_price == 2_000
        assert product.target_price == 300
        assert product.target_weight == 50

    def test_weight_above_denominator(self, pool):
        with pytest.raises(ValueError, match="weight must be <= 100"):
            pool.set_products(
                [ProductInitializationParams(product_id=1, weight=101, initial_price=100, target_price=100)],
                now=T0,
            )

    def test_unknown_product(self, pool):
        with pytest.raises(UnknownProductError):
            pool.get_product(42)

    def test_deposit_recorded(self, pool):
        assert pool.get_tranche_stake(FIRST_TRANCHE + 4) == STAKED

    def test_deposit_outside_active_window(self, pool):
        with pytest.raises(InvalidTrancheError):
            pool.deposit_to(nxm(1), FIRST_TRANCHE + 8, now=T0)
        with pytest.raises(InvalidTrancheError):
            pool.deposit_to(nxm(1), FIRST_TRANCHE - 1, now=T0)

    def test_deposit_zero(self, pool):
        with pytest.raises(ValueError):
            pool.deposit_to(0, FIRST_TRANCHE, now=T0)


# =============================================================================
# ТЕСТЫ: Capacity
# =============================================================================


class TestCapacity:
    """Тесты get_active_tranche_capacities."""

    def test_total_capacity(self, pool):
        capacities, total = pool.get_active_tranche_capacities(0, 20_000, 0, T0)
        assert total == TOTAL_CAPACITY
        assert capacities[4] == TOTAL_CAPACITY
        assert len(capacities) == 8

    def test_capacity_reduction(self, pool):
        _, total = pool.get_active_tranche_capacities(0, 20_000, 5_000, T0)
        assert total == TOTAL_CAPACITY // 2

    def test_capacity_reduction_above_denominator(self, pool):
        with pytest.raises(ValueError):
            pool.get_active_tranche_capacities(0, 20_000, 10_001, T0)

    def test_no_allocations_initially(self, pool):
        assert pool.get_active_allocations(0, T0) == [0] * 8


# =============================================================================
# ТЕСТЫ: request_allocation
# =============================================================================


class TestRequestAllocation:
    """Тесты request_allocation: премия и новая цена."""

    def test_premium_with_initial_price(self, pool, request_template):
        allocation = pool.request_allocation(nxm(4_800), request_template, T0)
        assert allocation.premium == nxm(240)
        assert allocation.cover_amount_units == 480_000
        assert allocation.tranche_allocations == {FIRST_TRANCHE + 4: 480_000}
        assert allocation.base_price == 2_000
        assert pool.get_product(0).next_price == 2_096

    def test_year_long_cover(self, pool, request_template):
        request = request_template.model_copy(update={"period": ONE_YEAR})
        allocation = pool.request_allocation(nxm(4_800), request, T0)
        assert allocation.premium == nxm(960)

    @pytest.mark.parametrize("amount", [1, 10**16 - 1, 10**16])
    def test_sub_unit_cover_charged_as_one_unit(self, pool, request_template, amount):
        """Количество до одной allocation unit включительно оплачивается как одна unit."""
        allocation = pool.request_allocation(amount, request_template, T0)
        assert allocation.cover_amount_units == 1
        assert allocation.premium == 10**16 * 2_000 // 10_000 // 4
        assert pool.get_product(0).next_price == 2_001

    def test_price_decays_to_target(self, pool, request_template):
        first = pool.request_allocation(nxm(4_800), request_template, T0 + ONE_DAY)
        assert first.base_price == 1_950
        assert first.premium == nxm(4_800) * 1_950 // 10_000 // 4

        second = pool.request_allocation(nxm(4_800), request_template, T0 + 51 * ONE_DAY)
        assert second.base_price == 200
        assert second.premium == nxm(24)

    def test_no_underflow_when_covers_expire(self, pool, request_template):
        pool.request_allocation(nxm(4_800), request_template, T0 + ONE_DAY)
        # первое покрытие истекает в начале bucket'а T0 + 112 дней
        allocation = pool.request_allocation(nxm(4_800), request_template, T0 + 113 * ONE_DAY)
        assert allocation.premium == nxm(24)
        assert allocation.initial_capacity_used == 0

    def test_allocation_ids_increment(self, pool, request_template):
        first = pool.request_allocation(nxm(1), request_template, T0)
        second = pool.request_allocation(nxm(1), request_template, T0)
        assert (first.allocation_id, second.allocation_id) == (0, 1)
        assert pool.get_allocation(1) == second

    def test_fixed_price(self, pool, request_template):
        request = request_template.model_copy(update={"use_fixed_price": True})
        allocation = pool.request_allocation(nxm(4_800), request, T0)
        assert allocation.premium == nxm(24)
        assert pool.get_product(0).next_price == 2_000

    def test_logs_commit(self, pool, request_template, caplog):
        with caplog.at_level(logging.DEBUG, logger="covercore.staking.pool"):
            pool.request_allocation(nxm(4_800), request_template, T0)
        assert "Allocation committed" in caplog.text


class TestTrancheSelection:
    """Выбор траншей для аллокации."""

    @pytest.fixture
    def spread_pool(self):
        """По 100 NXM в траншах 100, 101, 102 и 105."""
        staking_pool = StakingPool(pool_id=1, manager="0x" + "aa" * 20, now=T0)
        staking_pool.set_products(
            [ProductInitializationParams(product_id=0, weight=100, initial_price=2_000, target_price=200)],
            now=T0,
        )
        for tranche_id in (FIRST_TRANCHE, FIRST_TRANCHE + 1, FIRST_TRANCHE + 2, FIRST_TRANCHE + 5):
            staking_pool.deposit_to(nxm(100), tranche_id, now=T0)
        return staking_pool

    def test_fills_usable_tranches_in_ascending_order(self, spread_pool, request_template):
        # T0 + 91.25 + 7 дней попадает в транш 101: транш 100 истекает раньше покрытия
        allocation = spread_pool.request_allocation(nxm(450), request_template, T0)

        assert allocation.tranche_allocations == {
            FIRST_TRANCHE + 1: 20_000,
            FIRST_TRANCHE + 2: 20_000,
            FIRST_TRANCHE + 5: 5_000,
        }
        assert spread_pool.get_active_allocations(0, T0) == [0, 20_000, 20_000, 0, 0, 5_000, 0, 0]

    def test_short_cover_starts_from_current_tranche(self, spread_pool, request_template):
        request = request_template.model_copy(update={"period": days_to_seconds(30)})
        allocation = spread_pool.request_allocation(nxm(250), request, T0)

        assert allocation.tranche_allocations == {FIRST_TRANCHE: 20_000, FIRST_TRANCHE + 1: 5_000}

    def test_earlier_tranche_does_not_count(self, spread_pool, request_template):
        with pytest.raises(InsufficientCapacityError):
            spread_pool.request_allocation(nxm(601), request_template, T0)
        assert spread_pool.get_active_allocations(0, T0) == [0] * 8


class TestFullCapacityPurchase:
    """Вся capacity одной покупкой."""

    def test_full_capacity(self, pool, request_template):
        allocation = pool.request_allocation(nxm(100_000), request_template, T0)

        # base 20_000 NXM/год + surge 1000 NXM/год, четверть года
        assert allocation.premium == (nxm(20_000) + nxm(1_000)) // 4
        assert sum(pool.get_active_allocations(0, T0)) == TOTAL_CAPACITY

    def test_further_purchase_fails(self, pool, request_template):
        pool.request_allocation(nxm(100_000), request_template, T0)
        with pytest.raises(InsufficientCapacityError):
            pool.request_allocation(nxm(1), request_template, T0)


class TestFailureAtomicity:
    """Ошибки не меняют состояние пула."""

    def test_uint32_overflow(self, pool, request_template):
        amount = 2**96 - 1
        pool.deposit_to(amount, FIRST_TRANCHE + 3, now=T0)
        product_before = pool.get_product(0)

        with pytest.raises(AllocationOverflowError, match="SafeCast: value doesn't fit in 32 bits"):
            pool.request_allocation(amount, request_template, T0)

        assert pool.get_active_allocations(0, T0) == [0] * 8
        assert pool.get_product(0) == product_before

    def test_insufficient_capacity(self, pool, request_template):
        with pytest.raises(InsufficientCapacityError):
            pool.request_allocation(nxm(100_001), request_template, T0)

        assert pool.get_active_allocations(0, T0) == [0] * 8
        assert pool.get_product(0).next_price == 2_000

    def test_tranche_too_early_for_period(self, pool, request_template):
        """Транш current+4 не переживает покрытие длиной 3 года."""
        request = request_template.model_copy(update={"period": 3 * ONE_YEAR})
        with pytest.raises(InsufficientCapacityError):
            pool.request_allocation(nxm(1), request, T0)


# =============================================================================
# ТЕСТЫ: Экспирации
# =============================================================================


class TestExpirations:
    """Тесты process_expirations."""

    def test_first_active_bucket_advances(self, pool):
        assert pool.get_first_active_bucket_id() == T0 // BUCKET_DURATION
        expired = pool.process_expirations(T0 + 2 * BUCKET_DURATION)
        assert expired == [T0 // BUCKET_DURATION, T0 // BUCKET_DURATION + 1]
        assert pool.get_first_active_bucket_id() == T0 // BUCKET_DURATION + 2

    def test_expired_bucket_frees_capacity(self, pool, request_template):
        allocation = pool.request_allocation(nxm(4_800), request_template, T0)
        assert sum(pool.get_active_allocations(0, T0)) == 480_000

        expiry = allocation.expiration_bucket_id * BUCKET_DURATION
        assert sum(pool.get_active_allocations(0, expiry - 1)) == 480_000
        assert sum(pool.get_active_allocations(0, expiry)) == 0

    def test_expired_tranche_dropped(self, pool):
        pool.deposit_to(nxm(10), FIRST_TRANCHE, now=T0)
        pool.process_expirations(T0 + TRANCHE_DURATION)
        assert pool.get_first_active_tranche_id() == FIRST_TRANCHE + 1
        assert pool.get_tranche_stake(FIRST_TRANCHE) == 0

    def test_logs_bucket_expired(self, pool, caplog):
        with caplog.at_level(logging.INFO, logger="covercore.staking.pool"):
            pool.process_expirations(T0 + BUCKET_DURATION)
        assert "BucketExpired" in caplog.text

    def test_time_going_backwards(self, pool):
        pool.process_expirations(T0 + 2 * BUCKET_DURATION)
        with pytest.raises(ValueError):
            pool.process_expirations(T0)


# =============================================================================
# ТЕСТЫ: Сквозной сценарий ценообразования
# =============================================================================


class TestPriceProgression:
    """Серия покупок с decay, bump и surge."""

    def test_price_progression(self, pool, request_template):
        now = T0 + 183 * ONE_DAY

        # 1: base 200 (полный decay), bump 96
        first = pool.request_allocation(nxm(4_800), request_template, now)
        assert first.base_price == 200
        assert first.premium == nxm(24)
        assert pool.get_product(0).next_price == 296

        # 2: 296 - 150 → clamp 200, bump 480
        now += 3 * ONE_DAY
        second = pool.request_allocation(nxm(24_000), request_template, now)
        assert second.base_price == 200
        assert second.premium == nxm(120)
        assert pool.get_product(0).next_price == 680

        # 3: 680 - 250 = 430
        now += 5 * ONE_DAY
        third = pool.request_allocation(nxm(24_000), request_template, now)
        assert third.base_price == 430
        assert third.premium == nxm(258)
        assert pool.get_product(0).next_price == 910

        # 4: 910 - 250 = 660
        now += 5 * ONE_DAY
        fourth = pool.request_allocation(nxm(24_000), request_template, now)
        assert fourth.base_price == 660
        assert fourth.premium == nxm(396)
        assert pool.get_product(0).next_price == 1_140

        # 5: 1140 - 750 = 390, пересечение surge threshold
        now += 15 * ONE_DAY
        fifth = pool.request_allocation(nxm(16_000), request_template, now)
        assert fifth.base_price == 390
        assert fifth.initial_capacity_used == 7_680_000
        assert fifth.premium == (nxm(624) + 784 * 10**17) // 4
        assert pool.get_product(0).next_price == 710

        # 6: 710 - 500 = 210, уже в surge
        now += 10 * ONE_DAY
        sixth = pool.request_allocation(nxm(4_800), request_template, now)
        assert sixth.base_price == 210
        assert sixth.initial_capacity_used == 9_280_000
        assert sixth.premium == nxm(150)
        assert pool.get_product(0).next_price == 306

        assert sum(pool.get_active_allocations(0, now)) == 9_760_000

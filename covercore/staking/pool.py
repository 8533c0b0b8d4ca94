"""StakingPool — capacity ledger по траншам и bucket'ам экспирации.

Пул хранит:
- stake по траншам (tranche_id → NXM wei)
- аллокации по (product_id, tranche_id) в allocation units, uint32
- суммы к экспирации по bucket_id → (product_id, tranche_id)
- ценовое состояние продуктов (StakedProduct)

Правило выбора траншей для аллокации:
- первый пригодный транш = (now + period + grace_period) // TRANCHE_DURATION,
  т.е. самый ранний транш, который переживёт покрытие вместе с grace period
- пригодные транши заполняются по возрастанию tranche_id, каждый до его
  свободной capacity

Атомарность: каждая мутирующая операция работает на копии ledger'а и
коммитит её целиком только после успешного завершения.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from covercore.core.domain.allocation import Allocation, AllocationRequest
from covercore.core.domain.product import ProductInitializationParams, StakedProduct
from covercore.core.domain.units import (
    bucket_id_at,
    expiration_bucket_id,
    nxm_to_allocation_units,
    tranche_id_at,
)
from covercore.core.errors import (
    InsufficientCapacityError,
    InvalidTrancheError,
    UnknownProductError,
)
from covercore.core.math.fixed_point import (
    safe_cast_uint32,
    saturating_sub,
    validate_at_most,
    validate_non_negative_int,
    validate_positive_int,
)
from covercore.staking.config import DEFAULT_STAKING_CONFIG, StakingConfig
from covercore.staking.pricing import (
    calculate_base_price,
    calculate_fixed_price_premium,
    calculate_premium,
)

logger = logging.getLogger(__name__)


@dataclass
class _Ledger:
    """Изменяемое состояние capacity пула (копируется перед каждой мутацией)."""

    first_active_tranche_id: int
    first_active_bucket_id: int
    tranche_stakes: dict[int, int] = field(default_factory=dict)
    allocations: dict[tuple[int, int], int] = field(default_factory=dict)
    expiring: dict[int, dict[tuple[int, int], int]] = field(default_factory=dict)

    def copy(self) -> "_Ledger":
        return _Ledger(
            first_active_tranche_id=self.first_active_tranche_id,
            first_active_bucket_id=self.first_active_bucket_id,
            tranche_stakes=dict(self.tranche_stakes),
            allocations=dict(self.allocations),
            expiring={bucket: dict(amounts) for bucket, amounts in self.expiring.items()},
        )


class StakingPool:
    """Staking pool: продукты, транши, аллокации и ценообразование.

    Все операции принимают явный timestamp now (секунды); пул не читает часы.
    """

    def __init__(
        self,
        pool_id: int,
        manager: str,
        now: int,
        config: Optional[StakingConfig] = None,
    ):
        """
        Args:
            pool_id: идентификатор пула
            manager: адрес менеджера пула
            now: timestamp создания (определяет первый активный транш и bucket)
            config: константы пула (по умолчанию — боевые)
        """
        self.pool_id = pool_id
        self.manager = manager
        self.config = config or DEFAULT_STAKING_CONFIG

        self._ledger = _Ledger(
            first_active_tranche_id=tranche_id_at(now, self.config.tranche_duration),
            first_active_bucket_id=bucket_id_at(now, self.config.bucket_duration),
        )
        self._products: dict[int, StakedProduct] = {}
        self._allocations: dict[int, Allocation] = {}
        self._next_allocation_id = 0

    # =========================================================================
    # PRODUCTS
    # =========================================================================

    def set_products(self, params: list[ProductInitializationParams], now: int) -> None:
        """Инициализация новых продуктов или обновление weight/target price.

        Для уже существующего продукта next_price не сбрасывается.

        Raises:
            ValueError: weight > WEIGHT_DENOMINATOR или цена > TARGET_PRICE_DENOMINATOR
        """
        updated: dict[int, StakedProduct] = {}

        for p in params:
            validate_at_most(p.weight, "weight", self.config.weight_denominator)
            validate_at_most(p.target_price, "target_price", self.config.target_price_denominator)
            validate_at_most(p.initial_price, "initial_price", self.config.initial_price_denominator)

            existing = updated.get(p.product_id) or self._products.get(p.product_id)
            if existing is None:
                updated[p.product_id] = StakedProduct(
                    product_id=p.product_id,
                    next_price=p.initial_price,
                    target_price=p.target_price,
                    target_weight=p.weight,
                    next_price_update_time=now,
                )
            else:
                updated[p.product_id] = existing.model_copy(
                    update={"target_price": p.target_price, "target_weight": p.weight}
                )

        self._products.update(updated)

    def get_product(self, product_id: int) -> StakedProduct:
        """Ценовое состояние продукта.

        Raises:
            UnknownProductError: Продукт не инициализирован в пуле
        """
        product = self._products.get(product_id)
        if product is None:
            raise UnknownProductError(f"product {product_id} is not initialized in pool {self.pool_id}")
        return product

    # =========================================================================
    # DEPOSITS
    # =========================================================================

    def deposit_to(self, amount: int, tranche_id: int, now: int) -> None:
        """Депозит NXM в активный транш.

        Raises:
            ValueError: amount <= 0
            InvalidTrancheError: транш не входит в окно активных траншей
        """
        validate_positive_int(amount, "amount")

        ledger, _ = self._expire(self._ledger.copy(), now)
        first = ledger.first_active_tranche_id
        last = first + self.config.max_active_tranches - 1

        if not first <= tranche_id <= last:
            raise InvalidTrancheError(
                f"tranche {tranche_id} is not active (active range {first}..{last})"
            )

        ledger.tranche_stakes[tranche_id] = ledger.tranche_stakes.get(tranche_id, 0) + amount
        self._ledger = ledger

    def get_tranche_stake(self, tranche_id: int) -> int:
        return self._ledger.tranche_stakes.get(tranche_id, 0)

    # =========================================================================
    # EXPIRATIONS
    # =========================================================================

    def get_first_active_bucket_id(self) -> int:
        return self._ledger.first_active_bucket_id

    def get_first_active_tranche_id(self) -> int:
        return self._ledger.first_active_tranche_id

    def process_expirations(self, now: int) -> list[int]:
        """Обработка истёкших bucket'ов и траншей.

        Returns:
            Список bucket id, которые истекли в этом вызове (по возрастанию)
        """
        ledger, expired_buckets = self._expire(self._ledger.copy(), now)
        self._ledger = ledger
        return expired_buckets

    def _expire(self, ledger: _Ledger, now: int) -> tuple[_Ledger, list[int]]:
        """Применение экспираций к копии ledger'а (не коммитит)."""
        current_bucket_id = bucket_id_at(now, self.config.bucket_duration)
        current_tranche_id = tranche_id_at(now, self.config.tranche_duration)

        if current_bucket_id < ledger.first_active_bucket_id:
            raise ValueError(
                f"now ({now}) is before the first active bucket {ledger.first_active_bucket_id}"
            )

        expired_buckets: list[int] = []

        while ledger.first_active_bucket_id < current_bucket_id:
            expired_buckets.append(ledger.first_active_bucket_id)
            ledger.first_active_bucket_id += 1

            # Аллокации с target bucket == новому первому bucket истекают в его начале
            for key, amount in ledger.expiring.pop(ledger.first_active_bucket_id, {}).items():
                remaining = saturating_sub(ledger.allocations.get(key, 0), amount)
                if remaining:
                    ledger.allocations[key] = remaining
                else:
                    ledger.allocations.pop(key, None)

        for bucket_id in expired_buckets:
            logger.info("BucketExpired pool=%s bucket_id=%s", self.pool_id, bucket_id)

        if current_tranche_id > ledger.first_active_tranche_id:
            for tranche_id in range(ledger.first_active_tranche_id, current_tranche_id):
                ledger.tranche_stakes.pop(tranche_id, None)
                logger.info("TrancheExpired pool=%s tranche_id=%s", self.pool_id, tranche_id)

            ledger.allocations = {
                key: amount
                for key, amount in ledger.allocations.items()
                if key[1] >= current_tranche_id
            }
            ledger.first_active_tranche_id = current_tranche_id

        return ledger, expired_buckets

    # =========================================================================
    # CAPACITY VIEWS
    # =========================================================================

    def get_active_tranche_capacities(
        self,
        product_id: int,
        global_capacity_ratio: int,
        capacity_reduction_ratio: int,
        now: int,
    ) -> tuple[list[int], int]:
        """Capacity активных траншей для продукта (allocation units).

        Returns:
            (capacity по каждому активному траншу, суммарная capacity)
        """
        ledger, _ = self._expire(self._ledger.copy(), now)
        product = self.get_product(product_id)
        return self._tranche_capacities(
            ledger, product, global_capacity_ratio, capacity_reduction_ratio
        )

    def get_active_allocations(self, product_id: int, now: int) -> list[int]:
        """Аллокации продукта по активным траншам после экспираций."""
        ledger, _ = self._expire(self._ledger.copy(), now)
        return self._tranche_allocations(ledger, product_id)

    def _tranche_capacities(
        self,
        ledger: _Ledger,
        product: StakedProduct,
        global_capacity_ratio: int,
        capacity_reduction_ratio: int,
    ) -> tuple[list[int], int]:
        cfg = self.config
        validate_non_negative_int(global_capacity_ratio, "global_capacity_ratio")
        validate_at_most(
            capacity_reduction_ratio,
            "capacity_reduction_ratio",
            cfg.capacity_reduction_denominator,
        )

        multiplier = (
            global_capacity_ratio
            * (cfg.capacity_reduction_denominator - capacity_reduction_ratio)
            * product.target_weight
        )
        denominator = (
            cfg.global_capacity_denominator
            * cfg.capacity_reduction_denominator
            * cfg.weight_denominator
        )

        capacities = [
            ledger.tranche_stakes.get(ledger.first_active_tranche_id + i, 0)
            * multiplier
            // denominator
            // cfg.nxm_per_allocation_unit
            for i in range(cfg.max_active_tranches)
        ]
        return capacities, sum(capacities)

    def _tranche_allocations(self, ledger: _Ledger, product_id: int) -> list[int]:
        return [
            ledger.allocations.get((product_id, ledger.first_active_tranche_id + i), 0)
            for i in range(self.config.max_active_tranches)
        ]

    # =========================================================================
    # ALLOCATION
    # =========================================================================

    def request_allocation(
        self,
        amount: int,
        request: AllocationRequest,
        now: int,
    ) -> Allocation:
        """Резервирование capacity и расчёт премии.

        Args:
            amount: Сумма покрытия в NXM wei (округляется вверх до allocation unit)
            request: Параметры продукта и периода
            now: Текущий timestamp

        Returns:
            Allocation с премией за период и распределением по траншам

        Raises:
            ValueError: amount <= 0
            UnknownProductError: продукт не инициализирован
            InsufficientCapacityError: свободной capacity не хватает
            AllocationOverflowError: аллокация транша не помещается в uint32
        """
        validate_positive_int(amount, "amount")
        cfg = self.config
        product = self.get_product(request.product_id)

        ledger, _ = self._expire(self._ledger.copy(), now)
        amount_units = nxm_to_allocation_units(amount, cfg.nxm_per_allocation_unit)

        capacities, total_capacity = self._tranche_capacities(
            ledger,
            product,
            request.global_capacity_ratio,
            request.capacity_reduction_ratio,
        )
        current_allocations = self._tranche_allocations(ledger, request.product_id)
        initial_capacity_used = sum(current_allocations)

        first_usable_tranche_id = tranche_id_at(
            now + request.period + request.grace_period, cfg.tranche_duration
        )
        start_index = max(first_usable_tranche_id - ledger.first_active_tranche_id, 0)

        remaining = amount_units
        tranche_allocations: dict[int, int] = {}

        for i in range(start_index, cfg.max_active_tranches):
            if remaining == 0:
                break

            free = saturating_sub(capacities[i], current_allocations[i])
            if free == 0:
                continue

            allocated = min(remaining, free)
            tranche_id = ledger.first_active_tranche_id + i
            key = (request.product_id, tranche_id)

            ledger.allocations[key] = safe_cast_uint32(current_allocations[i] + allocated)
            tranche_allocations[tranche_id] = allocated
            remaining -= allocated

        if remaining > 0:
            raise InsufficientCapacityError(
                f"insufficient capacity in pool {self.pool_id}: "
                f"requested {amount_units} units, missing {remaining}"
            )

        target_bucket_id = expiration_bucket_id(now, request.period, cfg.bucket_duration)
        bucket = ledger.expiring.setdefault(target_bucket_id, {})
        for tranche_id, allocated in tranche_allocations.items():
            key = (request.product_id, tranche_id)
            bucket[key] = bucket.get(key, 0) + allocated

        if request.use_fixed_price:
            base_price = product.target_price
            premium = calculate_fixed_price_premium(
                amount_units, request.period, base_price, cfg
            )
            updated_product = product
        else:
            base_price = calculate_base_price(now, product, cfg.price_change_per_day)
            premium, updated_product = calculate_premium(
                product,
                request.period,
                amount_units,
                initial_capacity_used,
                total_capacity,
                now,
                cfg,
            )

        allocation = Allocation(
            allocation_id=self._next_allocation_id,
            product_id=request.product_id,
            cover_id=request.cover_id,
            premium=premium,
            cover_amount_units=amount_units,
            tranche_allocations=tranche_allocations,
            expiration_bucket_id=target_bucket_id,
            base_price=base_price,
            next_price=updated_product.next_price,
            initial_capacity_used=initial_capacity_used,
            total_capacity=total_capacity,
        )

        # commit
        self._ledger = ledger
        self._products[request.product_id] = updated_product
        self._allocations[allocation.allocation_id] = allocation
        self._next_allocation_id += 1

        logger.debug(
            "Allocation committed pool=%s allocation_id=%s product=%s units=%s premium=%s next_price=%s",
            self.pool_id,
            allocation.allocation_id,
            request.product_id,
            amount_units,
            premium,
            updated_product.next_price,
        )

        return allocation

    def get_allocation(self, allocation_id: int) -> Allocation:
        return self._allocations[allocation_id]

    # =========================================================================
    # SNAPSHOTS
    # =========================================================================

    def snapshot(self) -> tuple:
        """Снимок состояния для отката операций, охватывающих несколько пулов."""
        return (
            self._ledger.copy(),
            dict(self._products),
            dict(self._allocations),
            self._next_allocation_id,
        )

    def restore(self, snapshot: tuple) -> None:
        ledger, products, allocations, next_allocation_id = snapshot
        self._ledger = ledger.copy()
        self._products = dict(products)
        self._allocations = dict(allocations)
        self._next_allocation_id = next_allocation_id

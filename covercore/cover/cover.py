"""Cover — покупка покрытия: каталог продуктов → аллокации в staking pools.

buy_cover:
1. Сумма покрытия в cover asset → NXM по цене токена capital pool
2. request_allocation в каждом указанном staking pool
3. Сумма премий в NXM → cover asset, проверка max_premium_in_asset
4. Премия зачисляется в capital pool, CoverData сохраняется

Операция атомарна: при любой ошибке все затронутые staking pools
откатываются к состоянию до вызова.
"""

import logging
from typing import Optional, Sequence

from covercore.capital.pool import Pool
from covercore.core.domain.allocation import AllocationRequest
from covercore.core.domain.cover import BuyCoverParams, CoverData, PoolAllocationRequest
from covercore.core.domain.product import Product, ProductType
from covercore.core.domain.registry import normalize_address
from covercore.core.errors import PremiumTooHighError, UnauthorizedError, UnknownProductError
from covercore.core.math.fixed_point import ONE_ETHER, validate_positive_int
from covercore.registry.master import GOVERNANCE_CODE
from covercore.registry.pause import when_not_paused
from covercore.staking.config import DEFAULT_STAKING_CONFIG
from covercore.staking.pool import StakingPool

logger = logging.getLogger(__name__)


class Cover:
    """Каталог продуктов и точка покупки покрытия.

    Args:
        master: реестр (pause, governance)
        capital_pool: capital pool (цена NXM, приём премий)
        address: адрес Cover в реестре
        global_capacity_ratio: начальный глобальный capacity ratio
    """

    def __init__(
        self,
        master,
        capital_pool: Pool,
        address: str,
        global_capacity_ratio: Optional[int] = None,
    ):
        self.master = master
        self.capital_pool = capital_pool
        self.address = normalize_address(address)

        if global_capacity_ratio is None:
            global_capacity_ratio = DEFAULT_STAKING_CONFIG.global_capacity_ratio
        self.global_capacity_ratio = global_capacity_ratio

        self._product_types: dict[int, ProductType] = {}
        self._products: dict[int, Product] = {}
        self._staking_pools: dict[int, StakingPool] = {}
        self._covers: dict[int, CoverData] = {}

    # =========================================================================
    # CATALOGUE (governance)
    # =========================================================================

    def set_product_type(self, product_type_id: int, product_type: ProductType, caller: str) -> None:
        self._require_governance(caller)
        self._product_types[product_type_id] = product_type

    def set_product(self, product_id: int, product: Product, caller: str) -> None:
        """Добавление или обновление продукта.

        Raises:
            UnauthorizedError: caller не governance
            ValueError: тип продукта не зарегистрирован
        """
        self._require_governance(caller)
        if product.product_type not in self._product_types:
            raise ValueError(f"unknown product type {product.product_type}")
        self._products[product_id] = product

    def set_global_capacity_ratio(self, global_capacity_ratio: int, caller: str) -> None:
        self._require_governance(caller)
        validate_positive_int(global_capacity_ratio, "global_capacity_ratio")
        logger.info("Global capacity ratio %s -> %s", self.global_capacity_ratio, global_capacity_ratio)
        self.global_capacity_ratio = global_capacity_ratio

    def add_staking_pool(self, staking_pool: StakingPool) -> None:
        if staking_pool.pool_id in self._staking_pools:
            raise ValueError(f"staking pool {staking_pool.pool_id} already exists")
        self._staking_pools[staking_pool.pool_id] = staking_pool

    def get_product(self, product_id: int) -> Product:
        product = self._products.get(product_id)
        if product is None:
            raise UnknownProductError(f"product {product_id} does not exist")
        return product

    def get_product_type(self, product_type_id: int) -> ProductType:
        return self._product_types[product_type_id]

    def get_staking_pool(self, pool_id: int) -> StakingPool:
        return self._staking_pools[pool_id]

    def get_cover(self, cover_id: int) -> CoverData:
        return self._covers[cover_id]

    # =========================================================================
    # BUY COVER
    # =========================================================================

    @when_not_paused
    def buy_cover(
        self,
        params: BuyCoverParams,
        pool_allocations: Sequence[PoolAllocationRequest],
        caller: str,
        now: int,
    ) -> CoverData:
        """Покупка покрытия.

        Returns:
            Сохранённый CoverData

        Raises:
            SystemPausedError: система на паузе
            UnknownProductError: продукт не существует
            ValueError: продукт deprecated, пустой список пулов, суммы не сходятся
            InsufficientCapacityError / AllocationOverflowError: из staking pool
            PremiumTooHighError: премия > max_premium_in_asset
        """
        product = self.get_product(params.product_id)
        if product.is_deprecated:
            raise ValueError(f"product {params.product_id} is deprecated")
        if not pool_allocations:
            raise ValueError("at least one pool allocation is required")

        total_in_pools = sum(a.cover_amount_in_asset for a in pool_allocations)
        if total_in_pools != params.amount:
            raise ValueError(
                f"pool allocations sum to {total_in_pools}, cover amount is {params.amount}"
            )

        product_type = self._product_types[product.product_type]
        nxm_price_in_asset = self.capital_pool.get_token_price_in_asset(params.cover_asset)
        cover_id = len(self._covers)

        staking_pools = [self._staking_pools[a.pool_id] for a in pool_allocations]
        snapshots = {pool.pool_id: pool.snapshot() for pool in staking_pools}

        try:
            premium_in_nxm = 0
            allocation_ids: list[tuple[int, int]] = []

            for staking_pool, pool_allocation in zip(staking_pools, pool_allocations):
                amount_in_nxm = pool_allocation.cover_amount_in_asset * ONE_ETHER // nxm_price_in_asset
                request = AllocationRequest(
                    product_id=params.product_id,
                    cover_id=cover_id,
                    period=params.period,
                    grace_period=product_type.grace_period,
                    global_capacity_ratio=self.global_capacity_ratio,
                    capacity_reduction_ratio=product.capacity_reduction_ratio,
                    use_fixed_price=product.use_fixed_price,
                )
                allocation = staking_pool.request_allocation(amount_in_nxm, request, now)
                premium_in_nxm += allocation.premium
                allocation_ids.append((staking_pool.pool_id, allocation.allocation_id))

            premium_in_asset = premium_in_nxm * nxm_price_in_asset // ONE_ETHER
            if premium_in_asset > params.max_premium_in_asset:
                raise PremiumTooHighError()

            if premium_in_asset > 0:
                self.capital_pool.receive_premium(params.cover_asset, premium_in_asset, caller=self.address)
        except Exception:
            for staking_pool in staking_pools:
                staking_pool.restore(snapshots[staking_pool.pool_id])
            raise

        cover = CoverData(
            cover_id=cover_id,
            owner=params.owner,
            product_id=params.product_id,
            cover_asset=params.cover_asset,
            amount=params.amount,
            start=now,
            period=params.period,
            grace_period=product_type.grace_period,
            premium_in_asset=premium_in_asset,
            premium_in_nxm=premium_in_nxm,
            allocation_ids=allocation_ids,
        )
        self._covers[cover_id] = cover

        logger.info(
            "Cover bought cover_id=%s owner=%s product=%s amount=%s premium=%s %s",
            cover_id,
            params.owner,
            params.product_id,
            params.amount,
            premium_in_asset,
            params.cover_asset,
        )
        return cover

    def _require_governance(self, caller: str) -> None:
        if normalize_address(caller) != self.master.get_latest_address(GOVERNANCE_CODE):
            logger.warning("Rejected catalogue change from %s", caller)
            raise UnauthorizedError("Caller is not authorized to govern")

"""
Allocation — запрос и результат аллокации capacity

AllocationRequest — эфемерный запрос (не персистится), потребляется одним
вызовом StakingPool.request_allocation.

Allocation — результат: премия, распределение по траншам, bucket экспирации.
"""

from pydantic import BaseModel, Field


class AllocationRequest(BaseModel):
    """
    Запрос на резервирование capacity в staking pool.

    Количество (amount) передаётся отдельно, в NXM wei, чтобы запрос
    содержал только параметры продукта и периода.
    """

    product_id: int = Field(..., ge=0)
    cover_id: int = Field(default=0, ge=0)
    period: int = Field(..., gt=0, description="Период покрытия (секунды)")
    grace_period: int = Field(default=0, ge=0, description="Grace period (секунды)")
    global_capacity_ratio: int = Field(
        default=20_000, ge=0, description="Глобальный capacity ratio (10_000 = 1x)"
    )
    capacity_reduction_ratio: int = Field(
        default=0, ge=0, le=10_000, description="Снижение capacity продукта"
    )
    use_fixed_price: bool = Field(default=False)

    model_config = {"frozen": True}


class Allocation(BaseModel):
    """Результат успешной аллокации."""

    allocation_id: int = Field(..., ge=0)
    product_id: int = Field(..., ge=0)
    cover_id: int = Field(..., ge=0)
    premium: int = Field(..., ge=0, description="Премия за период (NXM wei)")
    cover_amount_units: int = Field(..., gt=0, description="Количество в allocation units")
    tranche_allocations: dict[int, int] = Field(
        default_factory=dict, description="tranche_id → allocation units"
    )
    expiration_bucket_id: int = Field(..., ge=0)

    # Диагностика ценообразования
    base_price: int = Field(..., ge=0)
    next_price: int = Field(..., ge=0)
    initial_capacity_used: int = Field(..., ge=0)
    total_capacity: int = Field(..., ge=0)

    model_config = {"frozen": True}

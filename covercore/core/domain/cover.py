"""
Cover — модели покупки покрытия

- BuyCoverParams: параметры покупки от пользователя
- PoolAllocationRequest: какая часть покрытия идёт в какой staking pool
- CoverData: сохранённая запись о покрытии
"""

from pydantic import BaseModel, Field


class BuyCoverParams(BaseModel):
    """Параметры покупки покрытия."""

    owner: str = Field(..., description="Адрес владельца покрытия")
    product_id: int = Field(..., ge=0)
    cover_asset: str = Field(..., min_length=1, description="Актив покрытия (например 'ETH')")
    amount: int = Field(..., gt=0, description="Сумма покрытия в cover asset (wei)")
    period: int = Field(..., gt=0, description="Период (секунды)")
    max_premium_in_asset: int = Field(..., ge=0)

    model_config = {"frozen": True}


class PoolAllocationRequest(BaseModel):
    """Доля покрытия для одного staking pool."""

    pool_id: int = Field(..., ge=0)
    cover_amount_in_asset: int = Field(..., gt=0)

    model_config = {"frozen": True}


class CoverData(BaseModel):
    """Сохранённое покрытие."""

    cover_id: int = Field(..., ge=0)
    owner: str
    product_id: int = Field(..., ge=0)
    cover_asset: str
    amount: int = Field(..., gt=0)
    start: int = Field(..., ge=0)
    period: int = Field(..., gt=0)
    grace_period: int = Field(..., ge=0)
    premium_in_asset: int = Field(..., ge=0)
    premium_in_nxm: int = Field(..., ge=0)
    allocation_ids: list[tuple[int, int]] = Field(
        default_factory=list, description="(pool_id, allocation_id)"
    )

    model_config = {"frozen": True}

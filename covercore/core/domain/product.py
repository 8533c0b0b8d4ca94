"""
Product — модели продуктов страхования

Immutable Pydantic модели:
- StakedProduct: ценовое состояние продукта внутри staking pool
- ProductInitializationParams: параметры инициализации продукта в пуле
- Product / ProductType: глобальный каталог продуктов (Cover)

Любое изменение ценового состояния создаёт новый экземпляр
(model_copy(update=...)), старое состояние остаётся нетронутым до commit.
"""

from pydantic import BaseModel, Field

from covercore.core.math.fixed_point import UINT96_MAX


# =============================================================================
# STAKED PRODUCT
# =============================================================================


class StakedProduct(BaseModel):
    """
    Ценовое состояние продукта в staking pool.

    next_price и target_price — price ratio с denominator
    INITIAL_PRICE_DENOMINATOR (10_000 = 100%).

    Инвариант: после применения decay базовая цена >= target_price.
    """

    product_id: int = Field(..., ge=0, description="Идентификатор продукта")
    next_price: int = Field(
        ..., ge=0, le=UINT96_MAX, description="Текущий price ratio (до decay)"
    )
    target_price: int = Field(..., ge=0, description="Нижняя граница decay")
    target_weight: int = Field(..., ge=0, description="Вес продукта в пуле (0-100)")
    next_price_update_time: int = Field(
        ..., ge=0, description="Timestamp последнего изменения цены (секунды)"
    )

    model_config = {"frozen": True}


class ProductInitializationParams(BaseModel):
    """Параметры инициализации продукта в staking pool."""

    product_id: int = Field(..., ge=0)
    weight: int = Field(..., ge=0, description="Вес (WEIGHT_DENOMINATOR = 100)")
    initial_price: int = Field(..., ge=0, description="Начальный price ratio")
    target_price: int = Field(..., ge=0, description="Целевой price ratio")

    model_config = {"frozen": True}


# =============================================================================
# COVER CATALOGUE
# =============================================================================


class ProductType(BaseModel):
    """Тип продукта: метод claim и grace period."""

    claim_method: int = Field(..., ge=0)
    grace_period: int = Field(..., ge=0, description="Grace period (секунды)")

    model_config = {"frozen": True}


class Product(BaseModel):
    """Глобальное описание продукта в каталоге Cover."""

    product_type: int = Field(..., ge=0)
    initial_price_ratio: int = Field(..., ge=0, description="Начальный price ratio")
    capacity_reduction_ratio: int = Field(
        default=0, ge=0, le=10_000, description="Снижение capacity (10_000 = 100%)"
    )
    use_fixed_price: bool = Field(default=False)
    is_deprecated: bool = Field(default=False)

    model_config = {"frozen": True}

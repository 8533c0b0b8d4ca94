"""Capital — пул активов протокола и oracle курсов."""

from .pool import (
    DEFAULT_SPOT_PRICE_CONFIG,
    Pool,
    SpotPriceConfig,
    calculate_mcr_ratio,
    calculate_token_spot_price,
)
from .price_feed import ETH, AggregatorType, Aggregator, AssetFeed, PriceFeedOracle

__all__ = [
    "Pool",
    "SpotPriceConfig",
    "DEFAULT_SPOT_PRICE_CONFIG",
    "calculate_mcr_ratio",
    "calculate_token_spot_price",
    "ETH",
    "Aggregator",
    "AggregatorType",
    "AssetFeed",
    "PriceFeedOracle",
]

"""Staking — ценообразование покрытия и учёт capacity staking pool.

- Pricing: decay цены, surge premium, price bump
- StakingPool: транши, bucket'ы экспирации, аллокации (uint32 потолок)
"""

from .config import DEFAULT_STAKING_CONFIG, StakingConfig
from .pool import StakingPool
from .pricing import (
    SurgePremiums,
    calculate_base_price,
    calculate_fixed_price_premium,
    calculate_premium,
    calculate_premium_per_year,
    calculate_price_bump,
    calculate_surge_premiums,
)

__all__ = [
    "StakingConfig",
    "DEFAULT_STAKING_CONFIG",
    "StakingPool",
    "SurgePremiums",
    "calculate_base_price",
    "calculate_surge_premiums",
    "calculate_premium_per_year",
    "calculate_price_bump",
    "calculate_premium",
    "calculate_fixed_price_premium",
]

"""
Domain models and value objects.

Contains fundamental domain entities: units, products, allocations,
registry entries, cover records.
"""

from covercore.core.domain.allocation import Allocation, AllocationRequest
from covercore.core.domain.cover import BuyCoverParams, CoverData, PoolAllocationRequest
from covercore.core.domain.product import (
    Product,
    ProductInitializationParams,
    ProductType,
    StakedProduct,
)
from covercore.core.domain.registry import (
    ZERO_ADDRESS,
    ContractType,
    RegistryEntry,
    SystemState,
    derive_address,
    normalize_address,
)
from covercore.core.domain.units import (
    ALLOCATION_UNITS_PER_NXM,
    BUCKET_DURATION,
    MAX_ACTIVE_TRANCHES,
    NXM_PER_ALLOCATION_UNIT,
    TRANCHE_DURATION,
    allocation_units_to_nxm,
    bucket_id_at,
    days_to_seconds,
    expiration_bucket_id,
    nxm_to_allocation_units,
    tranche_id_at,
)

__all__ = [
    # Units module
    "ALLOCATION_UNITS_PER_NXM",
    "BUCKET_DURATION",
    "MAX_ACTIVE_TRANCHES",
    "NXM_PER_ALLOCATION_UNIT",
    "TRANCHE_DURATION",
    "allocation_units_to_nxm",
    "bucket_id_at",
    "days_to_seconds",
    "expiration_bucket_id",
    "nxm_to_allocation_units",
    "tranche_id_at",
    # Product models
    "Product",
    "ProductInitializationParams",
    "ProductType",
    "StakedProduct",
    # Allocation models
    "Allocation",
    "AllocationRequest",
    # Registry models
    "ZERO_ADDRESS",
    "ContractType",
    "RegistryEntry",
    "SystemState",
    "derive_address",
    "normalize_address",
    # Cover models
    "BuyCoverParams",
    "CoverData",
    "PoolAllocationRequest",
]

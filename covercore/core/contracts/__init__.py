"""
Contract Validation Module

Модуль для валидации JSON-параметров governance-предложений.
"""

from .validators import (
    ContractValidator,
    NewContractsValidator,
    RemoveContractsValidator,
    SchemaLoader,
    UpgradeMasterValidator,
    UpgradeMultipleContractsValidator,
)

__all__ = [
    "SchemaLoader",
    "ContractValidator",
    "NewContractsValidator",
    "UpgradeMultipleContractsValidator",
    "RemoveContractsValidator",
    "UpgradeMasterValidator",
]

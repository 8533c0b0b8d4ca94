"""
Registry — модели реестра контрактов

- ContractType: закрытый tagged union {REPLACEABLE, PROXY}
- RegistryEntry: code → {address, contract_type}
- SystemState: состояние emergency pause {ACTIVE, PAUSED}
- Адреса: строки "0x" + 40 hex, ZERO_ADDRESS — sentinel для отсутствующих кодов
"""

import hashlib
from enum import Enum
from typing import Final

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# ADDRESSES
# =============================================================================

ADDRESS_PATTERN: Final[str] = "^0x[0-9a-fA-F]{40}$"

ZERO_ADDRESS: Final[str] = "0x" + "0" * 40


def derive_address(deployer: str, salt: str) -> str:
    """
    Детерминированный адрес для контракта, развёрнутого deployer'ом.

    Аналог CREATE2: один и тот же (deployer, salt) всегда даёт один адрес.
    """
    digest = hashlib.sha256(f"{deployer.lower()}:{salt}".encode("utf-8")).hexdigest()
    return "0x" + digest[-40:]


def normalize_address(address: str) -> str:
    """Адреса сравниваются без учёта регистра."""
    return address.lower()


# =============================================================================
# ENUMS
# =============================================================================


class ContractType(str, Enum):
    """
    Тип записи реестра.

    REPLACEABLE: реестр хранит живой адрес, upgrade меняет сам адрес.
    PROXY: реестр хранит адрес proxy, upgrade меняет только implementation.
    """

    REPLACEABLE = "REPLACEABLE"
    PROXY = "PROXY"


class SystemState(str, Enum):
    """Состояние emergency pause."""

    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"


# =============================================================================
# REGISTRY ENTRY
# =============================================================================


class RegistryEntry(BaseModel):
    """
    Запись реестра: короткий код контракта → адрес.

    Immutable модель (frozen=True). Upgrade создаёт новую запись.
    """

    code: str = Field(..., description="Код контракта (2 символа ASCII, например 'MC')")
    address: str = Field(..., pattern=ADDRESS_PATTERN, description="Адрес (для PROXY — адрес proxy)")
    contract_type: ContractType = Field(..., description="REPLACEABLE или PROXY")

    model_config = {"frozen": True}

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: str) -> str:
        """Код — ровно 2 байта (bytes2)."""
        if len(v) != 2 or not v.isascii():
            raise ValueError(f"contract code must be exactly 2 ASCII characters, got {v!r}")
        return v

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        """Пустой адрес в реестре недопустим."""
        if normalize_address(v) == ZERO_ADDRESS:
            raise ValueError("registry entry address cannot be the zero address")
        return normalize_address(v)

"""Upgradeable proxy и адресная книга развёрнутых объектов.

Proxy — стабильный адрес, за которым стоит заменяемая implementation.
AddressBook — единственный способ разрешить адрес в объект (аналог
"код по адресу" в EVM): Master использует его, чтобы найти новую
implementation при upgrade_master.
"""

import logging
from typing import Any

from covercore.core.domain.registry import ZERO_ADDRESS, normalize_address

logger = logging.getLogger(__name__)


class OwnedUpgradeabilityProxy:
    """Proxy с заменяемой implementation.

    Адрес proxy не меняется никогда; upgrade_to меняет только
    implementation. Владелец proxy — Master, который его развернул.
    """

    def __init__(self, address: str, implementation: str, owner: str = ZERO_ADDRESS):
        self.address = normalize_address(address)
        self.owner = normalize_address(owner)
        self._implementation = normalize_address(implementation)

    @property
    def implementation(self) -> str:
        return self._implementation

    def upgrade_to(self, new_implementation: str) -> None:
        """Замена implementation.

        Raises:
            ValueError: new_implementation совпадает с текущей или нулевой адрес
        """
        new_implementation = normalize_address(new_implementation)
        if new_implementation == ZERO_ADDRESS:
            raise ValueError("Cannot upgrade to the zero address")
        if new_implementation == self._implementation:
            raise ValueError("Cannot upgrade to the same implementation")

        logger.info(
            "Proxy upgraded proxy=%s from=%s to=%s",
            self.address,
            self._implementation,
            new_implementation,
        )
        self._implementation = new_implementation

    def __repr__(self) -> str:
        return f"OwnedUpgradeabilityProxy(address={self.address!r}, implementation={self._implementation!r})"


class AddressBook:
    """Отображение адрес → развёрнутый объект."""

    def __init__(self):
        self._deployed: dict[str, Any] = {}

    def deploy(self, address: str, obj: Any) -> str:
        """Регистрация объекта по адресу.

        Raises:
            ValueError: адрес уже занят другим объектом
        """
        address = normalize_address(address)
        existing = self._deployed.get(address)
        if existing is not None and existing is not obj:
            raise ValueError(f"address {address} is already in use")
        self._deployed[address] = obj
        return address

    def resolve(self, address: str) -> Any:
        """Объект по адресу.

        Raises:
            LookupError: по адресу ничего не развёрнуто
        """
        obj = self._deployed.get(normalize_address(address))
        if obj is None:
            raise LookupError(f"nothing deployed at {address}")
        return obj

    def undeploy(self, address: str) -> None:
        self._deployed.pop(normalize_address(address), None)

    def __contains__(self, address: str) -> bool:
        return normalize_address(address) in self._deployed

"""Master — реестр контрактов протокола и контроллер upgrade'ов.

Master сам развёрнут за OwnedUpgradeabilityProxy:
- MasterStorage — состояние (записи реестра, proxy, пауза), переживает upgrade
- MasterImplementation — логика, заменяется через upgrade_master
- Master — стабильная точка входа: каждый вызов делегируется текущей
  implementation, найденной по адресу в AddressBook

Инварианты:
1. code → не более одной записи; адрес записи ненулевой
2. is_internal(addr) ⟺ addr — живой адрес записи реестра (для PROXY —
   адрес proxy). Вычисляется на каждом вызове, не кэшируется
3. get_latest_address(неизвестный code) == ZERO_ADDRESS (не ошибка)
4. add/upgrade/remove атомарны: все проверки до первой мутации
5. Мутации реестра — только governance (адрес записи "GV")
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from covercore.core.domain.registry import (
    ZERO_ADDRESS,
    ContractType,
    RegistryEntry,
    derive_address,
    normalize_address,
)
from covercore.core.errors import UnauthorizedError, UnknownContractError
from covercore.registry.pause import EmergencyPause, PauseTransitionResult
from covercore.registry.proxy import AddressBook, OwnedUpgradeabilityProxy

logger = logging.getLogger(__name__)

GOVERNANCE_CODE = "GV"


@dataclass
class MasterStorage:
    """Состояние Master, общее для всех версий implementation."""

    address: str
    pause: EmergencyPause
    address_book: AddressBook
    entries: dict[str, RegistryEntry] = field(default_factory=dict)
    proxies: dict[str, OwnedUpgradeabilityProxy] = field(default_factory=dict)
    contract_codes: list[str] = field(default_factory=list)
    initialized: bool = False


class MasterImplementation:
    """Логика реестра. Не хранит состояния, работает над MasterStorage."""

    def __init__(self, address: str, version: str = "1"):
        self.address = normalize_address(address)
        self.version = version

    # =========================================================================
    # VIEWS
    # =========================================================================

    def get_latest_address(self, storage: MasterStorage, code: str) -> str:
        entry = storage.entries.get(code)
        return entry.address if entry is not None else ZERO_ADDRESS

    def is_internal(self, storage: MasterStorage, address: str) -> bool:
        address = normalize_address(address)
        if address == ZERO_ADDRESS:
            return False
        return any(entry.address == address for entry in storage.entries.values())

    def is_proxy(self, storage: MasterStorage, code: str) -> bool:
        entry = storage.entries.get(code)
        return entry is not None and entry.contract_type == ContractType.PROXY

    def get_proxy(self, storage: MasterStorage, address: str) -> OwnedUpgradeabilityProxy:
        proxy = storage.proxies.get(normalize_address(address))
        if proxy is None:
            raise LookupError(f"no proxy deployed at {address}")
        return proxy

    def is_pause(self, storage: MasterStorage) -> bool:
        return storage.pause.is_paused()

    # =========================================================================
    # GOVERNANCE MUTATIONS
    # =========================================================================

    def initialize(
        self,
        storage: MasterStorage,
        codes: Sequence[str],
        addresses: Sequence[str],
        types: Sequence[ContractType],
    ) -> None:
        """Первичное заполнение реестра (однократно, до появления governance)."""
        if storage.initialized:
            raise RuntimeError("Master is already initialized")
        self._add(storage, codes, addresses, types)
        storage.initialized = True

    def add_contracts(
        self,
        storage: MasterStorage,
        codes: Sequence[str],
        addresses: Sequence[str],
        types: Sequence[ContractType],
        caller: str,
    ) -> None:
        self._require_governance(storage, caller)
        self._add(storage, codes, addresses, types)

    def upgrade_contracts(
        self,
        storage: MasterStorage,
        codes: Sequence[str],
        addresses: Sequence[str],
        caller: str,
        types: Optional[Sequence[ContractType]] = None,
    ) -> None:
        self._require_governance(storage, caller)
        _require_same_length(codes, addresses, "codes", "addresses")
        if types is not None:
            _require_same_length(codes, types, "codes", "types")
        _require_unique(codes)

        new_addresses = [normalize_address(a) for a in addresses]
        for i, code in enumerate(codes):
            entry = storage.entries.get(code)
            if entry is None:
                raise UnknownContractError(f"NXMaster: Non-existant or non-upgradeable contract code {code!r}")
            if new_addresses[i] == ZERO_ADDRESS:
                raise ValueError(f"NXMaster: Contract address is 0 for code {code!r}")
            if types is not None and ContractType(types[i]) != entry.contract_type:
                raise ValueError(
                    f"contract type of {code!r} is {entry.contract_type.value}, "
                    f"got {ContractType(types[i]).value}"
                )
            if (
                entry.contract_type == ContractType.PROXY
                and storage.proxies[entry.address].implementation == new_addresses[i]
            ):
                raise ValueError(f"{code!r} already points to implementation {new_addresses[i]}")

        for code, new_address in zip(codes, new_addresses):
            entry = storage.entries[code]
            if entry.contract_type == ContractType.PROXY:
                storage.proxies[entry.address].upgrade_to(new_address)
                logger.info("Contract upgraded code=%s proxy=%s implementation=%s", code, entry.address, new_address)
            else:
                # старый адрес теряет internal-статус вместе с заменой записи
                storage.entries[code] = entry.model_copy(update={"address": new_address})
                logger.info("Contract replaced code=%s old=%s new=%s", code, entry.address, new_address)

    def remove_contracts(self, storage: MasterStorage, codes: Sequence[str], caller: str) -> None:
        self._require_governance(storage, caller)
        _require_unique(codes)

        for code in codes:
            if code not in storage.entries:
                raise UnknownContractError(f"NXMaster: Address is 0 for code {code!r}")

        for code in codes:
            entry = storage.entries.pop(code)
            if storage.proxies.pop(entry.address, None) is not None:
                storage.address_book.undeploy(entry.address)
            storage.contract_codes.remove(code)
            logger.info("Contract removed code=%s address=%s", code, entry.address)

    def upgrade_master(
        self,
        storage: MasterStorage,
        proxy: OwnedUpgradeabilityProxy,
        new_implementation: str,
        caller: str,
    ) -> None:
        self._require_governance(storage, caller)

        implementation = storage.address_book.resolve(new_implementation)
        if not isinstance(implementation, MasterImplementation):
            raise TypeError(f"{new_implementation} is not a master implementation")

        proxy.upgrade_to(new_implementation)
        logger.info(
            "Master upgraded to implementation=%s version=%s",
            new_implementation,
            implementation.version,
        )

    def set_emergency_admin(self, storage: MasterStorage, new_admin: str, caller: str) -> None:
        self._require_governance(storage, caller)
        storage.pause.set_emergency_admin(new_admin)
        logger.info("Emergency admin changed to %s", new_admin)

    def set_emergency_pause(
        self,
        storage: MasterStorage,
        paused: bool,
        caller: str,
        now: int = 0,
    ) -> PauseTransitionResult:
        return storage.pause.set_paused(paused, caller, now)

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _require_governance(self, storage: MasterStorage, caller: str) -> None:
        governance = self.get_latest_address(storage, GOVERNANCE_CODE)
        if governance == ZERO_ADDRESS or normalize_address(caller) != governance:
            logger.warning("Rejected governance action from %s", caller)
            raise UnauthorizedError("Caller is not authorized to govern")

    def _add(
        self,
        storage: MasterStorage,
        codes: Sequence[str],
        addresses: Sequence[str],
        types: Sequence[ContractType],
    ) -> None:
        _require_same_length(codes, addresses, "codes", "addresses")
        _require_same_length(codes, types, "codes", "types")
        _require_unique(codes)

        new_entries: list[tuple[RegistryEntry, Optional[OwnedUpgradeabilityProxy]]] = []
        for code, address, contract_type in zip(codes, addresses, types):
            if code in storage.entries:
                raise ValueError(f"NXMaster: Code already in use {code!r}")

            if normalize_address(address) == ZERO_ADDRESS:
                raise ValueError(f"NXMaster: Contract address is 0 for code {code!r}")

            contract_type = ContractType(contract_type)
            if contract_type == ContractType.PROXY:
                proxy_address = derive_address(storage.address, code)
                if proxy_address in storage.address_book:
                    raise ValueError(f"proxy address {proxy_address} is already in use")
                proxy = OwnedUpgradeabilityProxy(proxy_address, address, owner=storage.address)
                entry = RegistryEntry(code=code, address=proxy_address, contract_type=contract_type)
            else:
                proxy = None
                entry = RegistryEntry(code=code, address=address, contract_type=contract_type)
            new_entries.append((entry, proxy))

        for entry, proxy in new_entries:
            storage.entries[entry.code] = entry
            storage.contract_codes.append(entry.code)
            if proxy is not None:
                storage.proxies[proxy.address] = proxy
                storage.address_book.deploy(proxy.address, proxy)
            logger.info(
                "Contract added code=%s address=%s type=%s",
                entry.code,
                entry.address,
                entry.contract_type.value,
            )


class Master:
    """Стабильная точка входа реестра (адрес master proxy).

    Args:
        address: адрес master proxy
        implementation: начальная MasterImplementation
        emergency_admin: адрес emergency admin
        address_book: общая адресная книга (по умолчанию — новая)
    """

    def __init__(
        self,
        address: str,
        implementation: MasterImplementation,
        emergency_admin: str,
        address_book: Optional[AddressBook] = None,
    ):
        self.address_book = address_book or AddressBook()
        self.address_book.deploy(implementation.address, implementation)

        self._proxy = OwnedUpgradeabilityProxy(address, implementation.address, owner=address)
        self.address = self._proxy.address
        self.address_book.deploy(self.address, self)

        self._storage = MasterStorage(
            address=self.address,
            pause=EmergencyPause(emergency_admin),
            address_book=self.address_book,
        )

    @property
    def implementation(self) -> MasterImplementation:
        return self.address_book.resolve(self._proxy.implementation)

    @property
    def proxy(self) -> OwnedUpgradeabilityProxy:
        return self._proxy

    @property
    def emergency_admin(self) -> str:
        return self._storage.pause.emergency_admin

    @property
    def contract_codes(self) -> list[str]:
        return list(self._storage.contract_codes)

    # views

    def get_latest_address(self, code: str) -> str:
        return self.implementation.get_latest_address(self._storage, code)

    def is_internal(self, address: str) -> bool:
        return self.implementation.is_internal(self._storage, address)

    def is_proxy(self, code: str) -> bool:
        return self.implementation.is_proxy(self._storage, code)

    def get_proxy(self, address: str) -> OwnedUpgradeabilityProxy:
        if normalize_address(address) == self.address:
            return self._proxy
        return self.implementation.get_proxy(self._storage, address)

    def is_pause(self) -> bool:
        return self.implementation.is_pause(self._storage)

    # mutations

    def initialize(self, codes: Sequence[str], addresses: Sequence[str], types: Sequence[ContractType]) -> None:
        self.implementation.initialize(self._storage, codes, addresses, types)

    def add_contracts(
        self,
        codes: Sequence[str],
        addresses: Sequence[str],
        types: Sequence[ContractType],
        caller: str,
    ) -> None:
        self.implementation.add_contracts(self._storage, codes, addresses, types, caller)

    def upgrade_contracts(
        self,
        codes: Sequence[str],
        addresses: Sequence[str],
        caller: str,
        types: Optional[Sequence[ContractType]] = None,
    ) -> None:
        self.implementation.upgrade_contracts(self._storage, codes, addresses, caller, types)

    def remove_contracts(self, codes: Sequence[str], caller: str) -> None:
        self.implementation.remove_contracts(self._storage, codes, caller)

    def upgrade_master(self, new_implementation: str, caller: str) -> None:
        self.implementation.upgrade_master(self._storage, self._proxy, new_implementation, caller)

    def set_emergency_admin(self, new_admin: str, caller: str) -> None:
        self.implementation.set_emergency_admin(self._storage, new_admin, caller)

    def set_emergency_pause(self, paused: bool, caller: str, now: int = 0) -> PauseTransitionResult:
        return self.implementation.set_emergency_pause(self._storage, paused, caller, now)


def _require_same_length(left: Sequence, right: Sequence, left_name: str, right_name: str) -> None:
    if len(left) != len(right):
        raise ValueError(f"{left_name} and {right_name} must have the same length ({len(left)} != {len(right)})")


def _require_unique(codes: Sequence[str]) -> None:
    if len(set(codes)) != len(codes):
        raise ValueError(f"duplicate contract codes in {list(codes)}")

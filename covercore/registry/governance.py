"""Governance — исполнитель принятых предложений по управлению реестром.

Механика голосования вне скоупа: execute_proposal вызывается уже для
принятого предложения. Параметры предложения — JSON-объект, который
валидируется JSON Schema своей категории до любых изменений реестра.
"""

import logging
from enum import Enum
from typing import Any, Dict

from covercore.core.contracts.validators import (
    ContractValidator,
    NewContractsValidator,
    RemoveContractsValidator,
    UpgradeMasterValidator,
    UpgradeMultipleContractsValidator,
    ValidationError,
)
from covercore.core.domain.registry import ContractType
from covercore.registry.master import GOVERNANCE_CODE, Master

logger = logging.getLogger(__name__)


class ProposalCategory(str, Enum):
    """Категории предложений, меняющих реестр."""

    NEW_CONTRACTS = "NEW_CONTRACTS"
    UPGRADE_MULTIPLE_CONTRACTS = "UPGRADE_MULTIPLE_CONTRACTS"
    REMOVE_CONTRACTS = "REMOVE_CONTRACTS"
    UPGRADE_MASTER = "UPGRADE_MASTER"


_VALIDATORS: Dict[ProposalCategory, ContractValidator] = {
    ProposalCategory.NEW_CONTRACTS: NewContractsValidator(),
    ProposalCategory.UPGRADE_MULTIPLE_CONTRACTS: UpgradeMultipleContractsValidator(),
    ProposalCategory.REMOVE_CONTRACTS: RemoveContractsValidator(),
    ProposalCategory.UPGRADE_MASTER: UpgradeMasterValidator(),
}


class Governance:
    """Governance-контракт: вызывает Master от адреса записи "GV".

    Работает и во время emergency pause: исправления должны выкатываться
    без снятия паузы.
    """

    def __init__(self, master: Master):
        self.master = master
        self._executed: list[tuple[ProposalCategory, Dict[str, Any]]] = []

    @property
    def address(self) -> str:
        return self.master.get_latest_address(GOVERNANCE_CODE)

    @property
    def executed_proposals(self) -> list[tuple[ProposalCategory, Dict[str, Any]]]:
        return list(self._executed)

    def execute_proposal(
        self,
        category: ProposalCategory,
        parameters: Dict[str, Any],
        proposer: str,
    ) -> None:
        """Исполнение принятого предложения.

        Args:
            category: Категория предложения
            parameters: Параметры (валидируются JSON Schema категории)
            proposer: Автор предложения (для аудита)

        Raises:
            jsonschema.ValidationError: Параметры не соответствуют схеме
            UnauthorizedError / UnknownContractError / ValueError: из Master
        """
        category = ProposalCategory(category)
        validator = _VALIDATORS[category]
        try:
            validator.validate(parameters)
        except ValidationError:
            problems = "; ".join(error.message for error in validator.iter_errors(parameters))
            logger.warning(
                "Rejected proposal category=%s proposer=%s: %s",
                category.value,
                proposer,
                problems,
            )
            raise

        caller = self.address
        logger.info("Executing proposal category=%s proposer=%s", category.value, proposer)

        if category == ProposalCategory.NEW_CONTRACTS:
            self.master.add_contracts(
                parameters["codes"],
                parameters["addresses"],
                [ContractType(t) for t in parameters["types"]],
                caller=caller,
            )
        elif category == ProposalCategory.UPGRADE_MULTIPLE_CONTRACTS:
            types = parameters.get("types")
            self.master.upgrade_contracts(
                parameters["codes"],
                parameters["addresses"],
                caller=caller,
                types=[ContractType(t) for t in types] if types is not None else None,
            )
        elif category == ProposalCategory.REMOVE_CONTRACTS:
            self.master.remove_contracts(parameters["codes"], caller=caller)
        else:
            self.master.upgrade_master(parameters["address"], caller=caller)

        self._executed.append((category, dict(parameters)))

"""
Tests for governance proposal JSON Schema contracts and execution

Комплексное тестирование:
- Валидность самих схем
- Валидация правильных параметров
- Детекция нарушений required полей, типов, pattern/enum
- Исполнение предложений через Governance → Master
"""

import logging

import pytest
from jsonschema import ValidationError

from covercore.core.contracts import (
    NewContractsValidator,
    RemoveContractsValidator,
    SchemaLoader,
    UpgradeMasterValidator,
    UpgradeMultipleContractsValidator,
)
from covercore.core.domain.registry import ZERO_ADDRESS, ContractType
from covercore.core.errors import UnknownContractError
from covercore.registry.governance import Governance, ProposalCategory
from covercore.registry.master import Master, MasterImplementation


def addr(n: int) -> str:
    return "0x" + f"{n:040x}"


EMERGENCY_ADMIN = addr(0x3)
GV = addr(0x10)
MC = addr(0x11)
TC_IMPL = addr(0x12)
PROPOSER = addr(0x50)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def valid_new_contracts():
    return {
        "codes": ["XX", "YY"],
        "addresses": [addr(0x20), addr(0x21)],
        "types": ["REPLACEABLE", "PROXY"],
    }


@pytest.fixture
def master():
    m = Master(addr(0x1), MasterImplementation(addr(0x2)), EMERGENCY_ADMIN)
    m.initialize(
        ["GV", "MC", "TC"],
        [GV, MC, TC_IMPL],
        [ContractType.REPLACEABLE, ContractType.REPLACEABLE, ContractType.PROXY],
    )
    return m


@pytest.fixture
def governance(master):
    return Governance(master)


# =============================================================================
# ТЕСТЫ: Схемы
# =============================================================================


class TestSchemaLoader:
    """Тесты загрузки схем."""

    @pytest.mark.parametrize(
        "schema_name",
        ["new_contracts", "upgrade_multiple_contracts", "remove_contracts", "upgrade_master"],
    )
    def test_schemas_load(self, schema_name):
        schema = SchemaLoader().load_schema(schema_name)
        assert schema["type"] == "object"
        assert schema["additionalProperties"] is False

    def test_schema_cached(self):
        loader = SchemaLoader()
        assert loader.load_schema("upgrade_master") is loader.load_schema("upgrade_master")

    def test_missing_schema(self):
        with pytest.raises(FileNotFoundError):
            SchemaLoader().load_schema("does_not_exist")

    def test_missing_schema_dir(self, tmp_path):
        with pytest.raises(RuntimeError, match="Schema directory not found"):
            SchemaLoader(tmp_path / "missing")


class TestNewContractsSchema:
    """Тесты new_contracts.json."""

    def test_valid(self, valid_new_contracts):
        NewContractsValidator().validate(valid_new_contracts)
        assert list(NewContractsValidator().iter_errors(valid_new_contracts)) == []

    def test_missing_types(self, valid_new_contracts):
        del valid_new_contracts["types"]
        with pytest.raises(ValidationError, match="'types' is a required property"):
            NewContractsValidator().validate(valid_new_contracts)

    def test_code_too_long(self, valid_new_contracts):
        valid_new_contracts["codes"][0] = "XXX"
        with pytest.raises(ValidationError):
            NewContractsValidator().validate(valid_new_contracts)

    def test_bad_address(self, valid_new_contracts):
        valid_new_contracts["addresses"][0] = "0x1234"
        with pytest.raises(ValidationError):
            NewContractsValidator().validate(valid_new_contracts)

    def test_unknown_type(self, valid_new_contracts):
        valid_new_contracts["types"][0] = "IMMUTABLE"
        with pytest.raises(ValidationError):
            NewContractsValidator().validate(valid_new_contracts)

    def test_extra_property(self, valid_new_contracts):
        valid_new_contracts["extra"] = 1
        errors = list(NewContractsValidator().iter_errors(valid_new_contracts))
        assert len(errors) == 1


class TestOtherSchemas:
    """Тесты upgrade/remove/upgrade_master схем."""

    def test_upgrade_multiple_types_optional(self):
        UpgradeMultipleContractsValidator().validate({"codes": ["MC"], "addresses": [addr(0x30)]})
        UpgradeMultipleContractsValidator().validate(
            {"codes": ["MC"], "addresses": [addr(0x30)], "types": ["REPLACEABLE"]}
        )

    def test_remove_requires_codes(self):
        with pytest.raises(ValidationError):
            RemoveContractsValidator().validate({})
        with pytest.raises(ValidationError):
            RemoveContractsValidator().validate({"codes": []})

    def test_upgrade_master(self):
        UpgradeMasterValidator().validate({"address": addr(0x70)})
        with pytest.raises(ValidationError):
            UpgradeMasterValidator().validate({"address": 123})


# =============================================================================
# ТЕСТЫ: Governance.execute_proposal
# =============================================================================


class TestExecuteProposal:
    """Исполнение предложений через Governance."""

    def test_new_contracts(self, master, governance, valid_new_contracts):
        governance.execute_proposal(ProposalCategory.NEW_CONTRACTS, valid_new_contracts, PROPOSER)

        assert master.get_latest_address("XX") == addr(0x20)
        proxy_address = master.get_latest_address("YY")
        assert master.get_proxy(proxy_address).implementation == addr(0x21)
        assert governance.executed_proposals[0][0] == ProposalCategory.NEW_CONTRACTS

    def test_category_by_value(self, master, governance):
        governance.execute_proposal("REMOVE_CONTRACTS", {"codes": ["MC"]}, PROPOSER)
        assert master.get_latest_address("MC") == ZERO_ADDRESS

    def test_upgrade_multiple_contracts(self, master, governance):
        proxy_address = master.get_latest_address("TC")
        governance.execute_proposal(
            ProposalCategory.UPGRADE_MULTIPLE_CONTRACTS,
            {"codes": ["MC", "TC"], "addresses": [addr(0x30), addr(0x31)]},
            PROPOSER,
        )
        assert master.get_latest_address("MC") == addr(0x30)
        assert master.get_proxy(proxy_address).implementation == addr(0x31)

    def test_upgrade_with_mismatched_types(self, master, governance):
        with pytest.raises(ValueError, match="contract type"):
            governance.execute_proposal(
                ProposalCategory.UPGRADE_MULTIPLE_CONTRACTS,
                {"codes": ["TC"], "addresses": [addr(0x31)], "types": ["REPLACEABLE"]},
                PROPOSER,
            )

    def test_remove_unknown(self, governance):
        with pytest.raises(UnknownContractError):
            governance.execute_proposal(ProposalCategory.REMOVE_CONTRACTS, {"codes": ["ZZ"]}, PROPOSER)

    def test_upgrade_master(self, master, governance):
        new_impl = addr(0x70)
        master.address_book.deploy(new_impl, MasterImplementation(new_impl, version="2"))
        governance.execute_proposal(ProposalCategory.UPGRADE_MASTER, {"address": new_impl}, PROPOSER)
        assert master.implementation.version == "2"

    def test_invalid_parameters_change_nothing(self, master, governance):
        with pytest.raises(ValidationError):
            governance.execute_proposal(
                ProposalCategory.NEW_CONTRACTS,
                {"codes": ["XX"], "addresses": [addr(0x20)]},
                PROPOSER,
            )
        assert master.get_latest_address("XX") == ZERO_ADDRESS
        assert governance.executed_proposals == []

    def test_rejection_logs_every_violation(self, governance, caplog):
        with caplog.at_level(logging.WARNING, logger="covercore.registry.governance"):
            with pytest.raises(ValidationError):
                governance.execute_proposal(
                    ProposalCategory.NEW_CONTRACTS,
                    {"codes": ["XXX"], "addresses": [addr(0x20)]},
                    PROPOSER,
                )
        assert "Rejected proposal category=NEW_CONTRACTS" in caplog.text
        assert "'types' is a required property" in caplog.text
        assert "'XXX' is too long" in caplog.text

    def test_works_during_pause(self, master, governance):
        master.set_emergency_pause(True, caller=EMERGENCY_ADMIN)
        governance.execute_proposal(
            ProposalCategory.UPGRADE_MULTIPLE_CONTRACTS,
            {"codes": ["MC"], "addresses": [addr(0x30)]},
            PROPOSER,
        )
        assert master.get_latest_address("MC") == addr(0x30)

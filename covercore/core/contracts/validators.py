"""
JSON Schema Contract Validators

Модуль для валидации параметров governance-предложений согласно формальным
JSON Schema контрактам. Использует библиотеку jsonschema.

Схемы (covercore/core/contracts/schema/):
- new_contracts.json
- upgrade_multiple_contracts.json
- remove_contracts.json
- upgrade_master.json
"""

import json
from pathlib import Path
from typing import Any, Dict

import jsonschema
from jsonschema import Draft202012Validator, ValidationError


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Загрузчик JSON Schema файлов.

    Схемы лежат рядом с модулем, в каталоге schema/.
    """

    def __init__(self, schema_dir: Path | None = None):
        self._schema_dir = schema_dir or Path(__file__).parent / "schema"
        if not self._schema_dir.exists():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")

        # Кэш загруженных схем
        self._schemas: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Загрузка JSON Schema файла.

        Args:
            schema_name: Имя схемы без расширения (например, 'remove_contracts')

        Returns:
            Загруженная схема как dict

        Raises:
            FileNotFoundError: Если файл схемы не найден
            ValueError: Если схема не проходит meta-validation
        """
        if schema_name in self._schemas:
            return self._schemas[schema_name]

        schema_path = self._schema_dir / f"{schema_name}.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")

        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)

        # Валидируем саму схему (meta-validation)
        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e}")

        self._schemas[schema_name] = schema
        return schema


# Глобальный экземпляр загрузчика
_SCHEMA_LOADER = SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """
    Базовый класс для валидаторов контрактов.

    Инкапсулирует логику валидации данных против JSON Schema.
    """

    def __init__(self, schema_name: str):
        self.schema_name = schema_name
        self.schema = _SCHEMA_LOADER.load_schema(schema_name)
        self.validator = Draft202012Validator(self.schema)

    def validate(self, data: Dict[str, Any]) -> None:
        """
        Валидация данных против схемы.

        Raises:
            ValidationError: Если данные не соответствуют схеме
        """
        self.validator.validate(data)

    def iter_errors(self, data: Dict[str, Any]):
        """Итератор по всем ошибкам валидации."""
        return self.validator.iter_errors(data)


class NewContractsValidator(ContractValidator):
    """Валидатор параметров добавления контрактов."""

    def __init__(self):
        super().__init__("new_contracts")


class UpgradeMultipleContractsValidator(ContractValidator):
    """Валидатор параметров upgrade нескольких контрактов."""

    def __init__(self):
        super().__init__("upgrade_multiple_contracts")


class RemoveContractsValidator(ContractValidator):
    """Валидатор параметров удаления контрактов."""

    def __init__(self):
        super().__init__("remove_contracts")


class UpgradeMasterValidator(ContractValidator):
    """Валидатор параметров upgrade master."""

    def __init__(self):
        super().__init__("upgrade_master")


__all__ = [
    "ValidationError",
    "SchemaLoader",
    "ContractValidator",
    "NewContractsValidator",
    "UpgradeMultipleContractsValidator",
    "RemoveContractsValidator",
    "UpgradeMasterValidator",
]

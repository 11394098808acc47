"""
Contracts — JSON Schema контракты внешних представлений ledger

Снапшот и события ledger уходят наружу (indexers, UI) как JSON.
Их формат зафиксирован схемами draft 2020-12 в каталоге schema/ пакета:
- vault_snapshot.json: агрегаты ledger и principal по депозиторам
- vault_event.json: Deposited / Supplied / Withdrawn, выбор ветки по kind
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Tuple

import jsonschema
from jsonschema import Draft202012Validator
from pydantic import BaseModel

SCHEMA_DIR = Path(__file__).parent / "schema"


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """Читает схемы контрактов из каталога и кэширует их по имени."""

    def __init__(self, schema_dir: Optional[Path] = None):
        self._schema_dir = Path(schema_dir) if schema_dir is not None else SCHEMA_DIR
        if not self._schema_dir.is_dir():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")
        self._cache: Dict[str, Dict[str, Any]] = {}

    def available(self) -> Tuple[str, ...]:
        """Имена схем каталога (без .json)."""
        return tuple(sorted(p.stem for p in self._schema_dir.glob("*.json")))

    def load_schema(self, name: str) -> Dict[str, Any]:
        """
        Raises:
            FileNotFoundError: схемы `name` нет в каталоге
            ValueError: файл не проходит meta-validation draft 2020-12
        """
        cached = self._cache.get(name)
        if cached is not None:
            return cached

        path = self._schema_dir / f"{name}.json"
        if not path.is_file():
            raise FileNotFoundError(f"Schema not found: {path}")

        schema = json.loads(path.read_text(encoding="utf-8"))
        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {path.name}: {e.message}") from e

        self._cache[name] = schema
        return schema


_SCHEMA_LOADER = SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """Проверка документа (dict или pydantic модели) против одной схемы."""

    schema_name: str = ""

    def __init__(self, schema_name: Optional[str] = None, loader: Optional[SchemaLoader] = None):
        if schema_name is not None:
            self.schema_name = schema_name
        self.schema = (loader or _SCHEMA_LOADER).load_schema(self.schema_name)
        self._validator = Draft202012Validator(self.schema)

    @staticmethod
    def _as_document(data: Any) -> Any:
        # Модели сериализуются так же, как уходят наружу
        if isinstance(data, BaseModel):
            return data.model_dump(mode="json")
        return data

    def validate(self, data: Any) -> None:
        """
        Raises:
            jsonschema.ValidationError: первое найденное нарушение контракта
        """
        self._validator.validate(self._as_document(data))

    def is_valid(self, data: Any) -> bool:
        return self._validator.is_valid(self._as_document(data))

    def iter_errors(self, data: Any) -> Iterator[jsonschema.ValidationError]:
        return self._validator.iter_errors(self._as_document(data))


class VaultSnapshotValidator(ContractValidator):
    schema_name = "vault_snapshot"


class VaultEventValidator(ContractValidator):
    schema_name = "vault_event"


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def validate_vault_snapshot(data: Any) -> None:
    """Проверить снапшот ledger (dict или VaultSnapshot)."""
    VaultSnapshotValidator().validate(data)


def validate_vault_event(data: Any) -> None:
    """Проверить событие ledger (dict или модель события)."""
    VaultEventValidator().validate(data)

"""Versioned descriptor schemas

A descriptor declares the schema version it was written against. Each version
ships one JSON Schema document per context (``install`` for the package-level
descriptor, ``module`` for each declared module) and a naming strategy that
maps logical keys to the field names used by that version.
"""

import copy
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from jsonschema import Draft7Validator
from jsonschema import ValidationError as JsonSchemaValidationError
from jsonschema.exceptions import SchemaError

from modhost.core.modules.exceptions import SchemaLoadError
from modhost.core.modules.models import ModuleDefinition

logger = logging.getLogger(__name__)

SCHEMA_CONTEXTS = ("install", "module")

NAMING_KEY = "$schema_naming"
REQUIRED_KEY = "$schema_required"
INTERNAL_KEYS = (NAMING_KEY, REQUIRED_KEY)

DEFAULT_SCHEMAS_DIR = Path(__file__).parent.parent.parent / "schemas" / "modules"


@dataclass(frozen=True)
class SchemaNaming:
    """Field names used by one schema version"""
    version: str
    fields: Dict[str, str] = field(default_factory=dict)

    def field_for(self, logical_key: str) -> str:
        try:
            return self.fields[logical_key]
        except KeyError:
            raise SchemaLoadError(
                f"Schema {self.version} has no field for '{logical_key}'"
            )


SCHEMA_NAMING: Dict[str, SchemaNaming] = {
    "1.0": SchemaNaming(
        version="1.0",
        fields={
            "modules_container": "modules",
            "menu_container": "menu",
            "version": "ver",
        },
    ),
}


def _apply_defaults(schema: Dict[str, Any], data: Dict[str, Any]) -> None:
    for key, prop in schema.get("properties", {}).items():
        if not isinstance(prop, dict):
            continue
        if key not in data and "default" in prop:
            data[key] = copy.deepcopy(prop["default"])
        if isinstance(data.get(key), dict) and prop.get("type") == "object":
            _apply_defaults(prop, data[key])


def _format_error(error: JsonSchemaValidationError) -> str:
    path = ".".join(str(p) for p in error.absolute_path) if error.absolute_path else "root"
    return f"{path}: {error.message}"


class ModuleSchema:
    """A loaded schema for one context and version"""

    def __init__(
        self,
        context: str,
        version: str,
        document: Dict[str, Any],
        naming: SchemaNaming
    ):
        self.context = context
        self.version = version
        self.document = document
        self._naming = naming
        self._validator = Draft7Validator(document)

    @property
    def required(self) -> List[str]:
        return list(self.document.get("required", []))

    def naming(self, logical_key: str) -> str:
        """Resolve a logical key to this version's field name"""
        return self._naming.field_for(logical_key)

    def create_definition(self, raw: Any) -> ModuleDefinition:
        """
        Validate and normalize declared data

        Never raises; validity is reported through the returned definition.

        Args:
            raw: Declared descriptor data

        Returns:
            ModuleDefinition with valid flag, normalized struct and errors
        """
        if not isinstance(raw, dict):
            return ModuleDefinition(
                valid=False,
                errors=[f"root: {self.context} descriptor must be an object"],
            )

        try:
            errors = sorted(
                self._validator.iter_errors(raw),
                key=lambda e: [str(p) for p in e.absolute_path],
            )
        except Exception as e:
            logger.error(f"Schema {self.context}/{self.version} evaluation failed: {e}")
            return ModuleDefinition(valid=False, errors=[f"Schema validation error: {e}"])

        if errors:
            messages = [_format_error(e) for e in errors]
            logger.info(f"Descriptor rejected by schema {self.context}/{self.version}: {messages}")
            return ModuleDefinition(valid=False, errors=messages)

        struct = copy.deepcopy(raw)
        _apply_defaults(self.document, struct)
        struct[NAMING_KEY] = dict(self._naming.fields)
        struct[REQUIRED_KEY] = self.required
        return ModuleDefinition(valid=True, struct=struct)


class SchemaLoader:
    """Loads and caches schema documents from a schemas directory"""

    def __init__(self, schemas_dir: Optional[Path] = None):
        self.schemas_dir = schemas_dir or DEFAULT_SCHEMAS_DIR
        self._cache: Dict[tuple, ModuleSchema] = {}

    def load(self, context: str, version: str) -> ModuleSchema:
        """
        Load the schema for a context and version

        Raises:
            SchemaLoadError: Unknown context or version, or a malformed schema file
        """
        if context not in SCHEMA_CONTEXTS:
            raise SchemaLoadError(f"Unknown schema context '{context}'")
        if not version or not isinstance(version, str):
            raise SchemaLoadError("Schema version is missing")

        key = (context, version)
        if key in self._cache:
            return self._cache[key]

        naming = SCHEMA_NAMING.get(version)
        if naming is None:
            raise SchemaLoadError(f"Unknown schema version '{version}'")

        path = self.schemas_dir / version / f"{context}.schema.json"
        try:
            with open(path, encoding="utf-8") as f:
                document = json.load(f)
        except FileNotFoundError:
            raise SchemaLoadError(f"Schema {context}/{version} not found: {path}")
        except (OSError, json.JSONDecodeError) as e:
            raise SchemaLoadError(f"Schema {context}/{version} is unreadable: {e}")

        try:
            Draft7Validator.check_schema(document)
        except SchemaError as e:
            raise SchemaLoadError(f"Schema {context}/{version} is malformed: {e.message}")

        schema = ModuleSchema(context, version, document, naming)
        self._cache[key] = schema
        logger.debug(f"Loaded schema {context}/{version} from {path}")
        return schema


_default_loader = SchemaLoader()


def load_schema(context: str, version: str) -> ModuleSchema:
    """Load a schema with the packaged schema documents"""
    return _default_loader.load(context, version)

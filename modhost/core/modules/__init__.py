"""modhost Module System

Installs packaged modules (zip archives) into a live modules directory and
records them in a registry.

Components:
- archive: Read-only archive inspection
- content: Syntax checks for required files (exists, json, jsonc)
- staging: Temporary extraction and directory copy
- schema: Versioned descriptor schemas
- registry: SQLite registry of installed modules
- installer: Install orchestrator
- models: Pydantic data models
- exceptions: Custom exceptions
"""

from modhost.core.modules.exceptions import (
    ModuleError,
    ArchiveOpenError,
    ValidationError,
    ExtractionError,
    SchemaLoadError,
    DefinitionInvalid,
    UnsupportedModeError,
    CopyError,
    RegistryError,
    RegistryWriteError,
)
from modhost.core.modules.models import (
    ValidationKind,
    InstallPhase,
    InstallType,
    ModuleType,
    EntryMeta,
    ModuleDefinition,
    InstalledModuleRecord,
    ModuleInstallOutcome,
    InstallReport,
    REQUIRED_FILES_INSTALL,
    REQUIRED_FILES_MODULE,
)
from modhost.core.modules.archive import ModuleArchive
from modhost.core.modules.content import strip_comments, validate_content, load_jsonc
from modhost.core.modules.staging import FilesystemStager, StagingArea
from modhost.core.modules.schema import ModuleSchema, SchemaLoader, SchemaNaming, load_schema
from modhost.core.modules.registry import ModuleRegistry
from modhost.core.modules.installer import ModuleInstaller, sanitize_module_name

__all__ = [
    # Exceptions
    "ModuleError",
    "ArchiveOpenError",
    "ValidationError",
    "ExtractionError",
    "SchemaLoadError",
    "DefinitionInvalid",
    "UnsupportedModeError",
    "CopyError",
    "RegistryError",
    "RegistryWriteError",
    # Models
    "ValidationKind",
    "InstallPhase",
    "InstallType",
    "ModuleType",
    "EntryMeta",
    "ModuleDefinition",
    "InstalledModuleRecord",
    "ModuleInstallOutcome",
    "InstallReport",
    "REQUIRED_FILES_INSTALL",
    "REQUIRED_FILES_MODULE",
    # Components
    "ModuleArchive",
    "strip_comments",
    "validate_content",
    "load_jsonc",
    "FilesystemStager",
    "StagingArea",
    "ModuleSchema",
    "SchemaLoader",
    "SchemaNaming",
    "load_schema",
    "ModuleRegistry",
    "ModuleInstaller",
    "sanitize_module_name",
]

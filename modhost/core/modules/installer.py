"""Installer for module packages

The installer takes a module archive through a fixed sequence of phases:

    OPENED -> VALIDATED -> STAGED -> DEFINED -> COMMITTING -> COMMITTED | FAILED

Lower layers raise typed ModuleError subclasses; this module turns every
failure into an InstallReport / ModuleInstallOutcome value. Only the
constructor raises (ArchiveOpenError) to the caller.

Disk and registry stay in lockstep: the module directory is copied first and
the registry record written second. When the registry write fails the copied
directory is removed again.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from modhost.config.settings import InstallerSettings
from modhost.core.modules.archive import ModuleArchive
from modhost.core.modules.content import load_jsonc, validate_content
from modhost.core.modules.exceptions import (
    CopyError,
    DefinitionInvalid,
    ExtractionError,
    ModuleError,
    RegistryError,
    UnsupportedModeError,
    ValidationError,
)
from modhost.core.modules.models import (
    REQUIRED_FILES_INSTALL,
    REQUIRED_FILES_MODULE,
    InstalledModuleRecord,
    InstallPhase,
    InstallReport,
    InstallType,
    ModuleInstallOutcome,
    ModuleType,
    ValidationKind,
)
from modhost.core.modules.registry import ModuleRegistry
from modhost.core.modules.schema import INTERNAL_KEYS, ModuleSchema, load_schema
from modhost.core.modules.staging import FilesystemStager, copy_tree, remove_tree

logger = logging.getLogger(__name__)

DESCRIPTOR_FILE = "module.jsonc"
UNKNOWN_MODULE_NAME = "unknown"

SchemaLoaderFn = Callable[[str, str], ModuleSchema]


def sanitize_module_name(name: Any) -> str:
    """Keep letters, digits and underscore; empty names become 'unknown'"""
    if name is None:
        return UNKNOWN_MODULE_NAME
    return re.sub(r"[^A-Za-z0-9_]", "", str(name)) or UNKNOWN_MODULE_NAME


def _failure_message(error: ModuleError) -> Union[str, List[str]]:
    if isinstance(error, ValidationError):
        return error.detail
    if isinstance(error, DefinitionInvalid):
        return list(error.errors)
    return str(error)


class ModuleInstaller:
    """Installs one module archive into a modules directory"""

    def __init__(
        self,
        source: Union[str, Path],
        install_in: Optional[Union[str, Path]] = None,
        *,
        registry: ModuleRegistry,
        settings: Optional[InstallerSettings] = None,
        schema_loader: Optional[SchemaLoaderFn] = None,
        stager: Optional[FilesystemStager] = None
    ):
        """
        Open the archive and allocate a staging area

        Args:
            source: Path to the module archive
            install_in: Modules directory (defaults to settings.manage_modules_path)
            registry: Registry that records installed modules
            settings: Installer settings
            schema_loader: Callable (context, version) -> ModuleSchema
            stager: Filesystem stager

        Raises:
            ArchiveOpenError: If the archive is missing or is not a zip file
        """
        self.settings = settings or InstallerSettings()
        self.source = Path(source)
        self.install_in = Path(install_in or self.settings.manage_modules_path)
        self.registry = registry
        self.schema_loader = schema_loader or load_schema
        self.stager = stager or FilesystemStager(prefix=self.settings.temp_prefix)
        self.staging = self.stager.create_area(self.install_in)
        self.last_error: Optional[str] = None
        self.phase: Optional[InstallPhase] = None

        self.archive = ModuleArchive.open(self.source)
        self._set_phase(InstallPhase.OPENED)

    def _set_phase(self, phase: InstallPhase) -> None:
        logger.debug(f"{self.source.name}: {self.phase.value if self.phase else '-'} -> {phase.value}")
        self.phase = phase

    def _fail(self, message: Union[str, List[str]], installed: Optional[List[str]] = None) -> InstallReport:
        self._set_phase(InstallPhase.FAILED)
        logger.error(f"Install of {self.source.name} failed: {message}")
        return InstallReport(success=False, message=message, installed=installed or [])

    @property
    def temp_extracted(self) -> Optional[Path]:
        """Staging directory once the archive has been extracted"""
        return self.staging.path if self.staging.materialized else None

    # ---- validation ----

    def validate_required_files_in_zip(self) -> List[str]:
        """
        Validate the archive against the install-level required files

        Returns:
            List of error messages, empty when the archive can be staged
        """
        errors = self.archive.validate_required(REQUIRED_FILES_INSTALL)
        if errors:
            self._set_phase(InstallPhase.FAILED)
        else:
            self._set_phase(InstallPhase.VALIDATED)
        return errors

    def validate_required_files_in_extracted(
        self,
        folder: Optional[Union[str, Path]] = None,
        required: Optional[Mapping[str, ValidationKind]] = None
    ) -> List[str]:
        """
        Validate an extracted module folder

        Args:
            folder: Folder to check, defaults to the staging directory
            required: Mapping of relative file name to validation kind

        Returns:
            List of error messages
        """
        folder = Path(folder) if folder is not None else self.temp_extracted
        if folder is None:
            return ["module archive is not staged"]

        errors = []
        for name, kind in (required or {}).items():
            kind = ValidationKind(kind)
            path = folder / name
            if not path.is_file():
                errors.append(f"Required file missing [{name}]")
                continue
            if not self.validate_file(path, kind):
                errors.append(f"File is invalid [{name}] expected [{kind.value}]")
        return errors

    def validate_file(
        self,
        path: Union[str, Path],
        validate_type: Union[ValidationKind, str],
        content: Optional[bytes] = None
    ) -> bool:
        """
        Validate a required file by its declared kind

        Args:
            path: File path, read only when content is None
            validate_type: exists, json or jsonc
            content: File content if already loaded

        Returns:
            True when valid
        """
        if content is None:
            try:
                content = Path(path).read_bytes()
            except OSError as e:
                logger.warning(f"Could not read {path}: {e}")
                return False
        return validate_content(validate_type, content)

    # ---- staging ----

    def close_zip(self) -> None:
        """Release the archive, safe to call at any time"""
        self.archive.close()

    def temp_deploy(self, close_after: bool = False) -> bool:
        """
        Extract the archive to the staging area

        Args:
            close_after: Close the archive once extraction is done

        Returns:
            True on success. On failure ``last_error`` holds the reason and the
            partial staging directory is left for ``clean()``.
        """
        try:
            self.stager.stage(self.archive, self.install_in, self.staging)
            self._set_phase(InstallPhase.STAGED)
            return True
        except ExtractionError as e:
            self.last_error = str(e)
            self._set_phase(InstallPhase.FAILED)
            logger.error(f"Staging failed for {self.source.name}: {e}")
            return False
        finally:
            if close_after:
                self.close_zip()

    def clean(self) -> bool:
        """
        Remove the staging directory if there is one

        Returns:
            True if a staging directory was removed
        """
        return self.staging.cleanup()

    # ---- install ----

    def install(self, by: Optional[str] = None, from_dir: Optional[Union[str, Path]] = None) -> InstallReport:
        """
        Install the staged package

        Args:
            by: Actor reference recorded as installed_by
            from_dir: Extracted package folder, defaults to the staging directory

        Returns:
            InstallReport
        """
        installed: List[str] = []
        try:
            source_dir = self._source_dir(from_dir)
            schema, definition = self._define_package(source_dir)

            package_type = definition.struct["type"]
            if package_type == InstallType.BUNDLE.value:
                raise UnsupportedModeError("bundle installation is not supported yet")

            self._set_phase(InstallPhase.COMMITTING)
            modules = definition.struct[schema.naming("modules_container")]
            outcome = self._install_module(modules[0], by=by, from_dir=source_dir)
            if not outcome.success:
                return self._fail(outcome.message, installed)
            installed.append(outcome.name)

        except ModuleError as e:
            return self._fail(_failure_message(e), installed)

        self._set_phase(InstallPhase.COMMITTED)
        logger.info(f"Install of {self.source.name} complete: {installed}")
        return InstallReport(success=True, message="installed", installed=installed)

    def run(self, by: Optional[str] = None, keep_staging: bool = False) -> InstallReport:
        """
        Validate, stage and install in one call

        The archive is closed and, unless keep_staging is set, the staging
        directory removed on every exit path.
        """
        try:
            errors = self.validate_required_files_in_zip()
            if errors:
                return self._fail(errors)
            if not self.temp_deploy(close_after=True):
                return self._fail(self.last_error or "failed to extract module archive")
            return self.install(by=by)
        finally:
            self.close_zip()
            if not keep_staging:
                self.clean()

    def _source_dir(self, from_dir: Optional[Union[str, Path]]) -> Path:
        if from_dir is not None:
            return Path(from_dir)
        if self.temp_extracted is None:
            raise ValidationError("module archive is not staged")
        return self.temp_extracted

    def _define_package(self, source_dir: Path):
        try:
            descriptor = load_jsonc((source_dir / DESCRIPTOR_FILE).read_bytes())
        except (OSError, ValueError) as e:
            logger.warning(f"Could not load {DESCRIPTOR_FILE} from {source_dir}: {e}")
            descriptor = None

        if not descriptor or not isinstance(descriptor, dict):
            raise ValidationError(f"{DESCRIPTOR_FILE} is missing or corrupted")
        if not descriptor.get("schema"):
            raise ValidationError(f"{DESCRIPTOR_FILE} is missing schema version definition")

        schema = self.schema_loader("install", str(descriptor["schema"]))
        definition = schema.create_definition(descriptor)
        if not definition.valid:
            raise DefinitionInvalid(definition.errors)

        self._set_phase(InstallPhase.DEFINED)
        return schema, definition

    def _install_module(
        self,
        declared: Dict[str, Any],
        by: Optional[str] = None,
        from_dir: Optional[Path] = None
    ) -> ModuleInstallOutcome:
        """
        Install one declared module

        Args:
            declared: Raw module declaration from the package descriptor
            by: Actor reference
            from_dir: Extracted package folder

        Returns:
            ModuleInstallOutcome
        """
        name = sanitize_module_name(declared.get("name") if isinstance(declared, dict) else None)
        try:
            source_dir = from_dir or self._source_dir(None)
            message = self._commit_module(name, declared, by, source_dir)
        except ModuleError as e:
            return ModuleInstallOutcome(success=False, name=name, message=_failure_message(e))
        return ModuleInstallOutcome(success=True, name=name, message=message)

    def _commit_module(
        self,
        name: str,
        declared: Any,
        by: Optional[str],
        from_dir: Path
    ) -> str:
        module_path = self.install_in / name

        if self.registry.has(name) or module_path.exists():
            logger.warning(f"Module '{name}' is already installed, skipping")
            return "already installed"

        version = declared.get("schema") if isinstance(declared, dict) else None
        schema = self.schema_loader("module", str(version or ""))

        module = schema.create_definition(declared)
        if not module.valid:
            raise DefinitionInvalid(module.errors)

        if module.struct["type"] == ModuleType.REMOTE.value:
            raise UnsupportedModeError("remote modules are not supported yet")

        errors = self.validate_required_files_in_extracted(from_dir, REQUIRED_FILES_MODULE)
        if errors:
            raise ValidationError(errors)

        try:
            copy_tree(from_dir, module_path)
        except CopyError as e:
            logger.error(f"Copy of module '{name}' failed: {e}")
            raise CopyError("failed to copy module to destination")

        menu_field = schema.naming("menu_container")
        excluded = {"menu", menu_field, *INTERNAL_KEYS}
        info = {k: v for k, v in module.struct.items() if k not in excluded}

        record = InstalledModuleRecord(
            name=name,
            status=True,
            version=str(module.struct[schema.naming("version")]),
            path=f"{name}/",
            settings=json.dumps(module.struct.get("settings", {})),
            menu=json.dumps(module.struct.get(menu_field, {})),
            info=json.dumps(info),
            installed_by=by,
        )

        try:
            self.registry.register(record)
        except RegistryError as e:
            logger.error(f"Registering module '{name}' failed, removing {module_path}: {e}")
            try:
                remove_tree(module_path)
            except OSError as cleanup_error:
                logger.error(f"Failed to remove {module_path} after registry failure: {cleanup_error}")
            raise RegistryError("failed to register module to database")

        logger.info(f"Module installed: {name} -> {module_path}")
        return "module installed"

    def __enter__(self) -> "ModuleInstaller":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close_zip()
        self.clean()

"""Data models for the module installer"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ValidationKind(str, Enum):
    """How a required file's content is checked"""
    EXISTS = "exists"
    JSON = "json"
    JSONC = "jsonc"


class InstallPhase(str, Enum):
    """Install orchestrator states"""
    OPENED = "OPENED"
    VALIDATED = "VALIDATED"
    STAGED = "STAGED"
    DEFINED = "DEFINED"
    COMMITTING = "COMMITTING"
    COMMITTED = "COMMITTED"
    FAILED = "FAILED"


class InstallType(str, Enum):
    """Install-level descriptor type"""
    SINGLE = "single"
    BUNDLE = "bundle"


class ModuleType(str, Enum):
    """Module-level descriptor type"""
    INCLUDED = "included"
    REMOTE = "remote"


# Files required to trust an archive for installation
REQUIRED_FILES_INSTALL: Dict[str, ValidationKind] = {
    "module.jsonc": ValidationKind.JSONC,
}

# Files required for a module to be considered complete
REQUIRED_FILES_MODULE: Dict[str, ValidationKind] = {
    "module.jsonc": ValidationKind.JSONC,
    "module.php": ValidationKind.EXISTS,
}


class EntryMeta(BaseModel):
    """A single entry of an opened archive"""
    index: int
    size: int
    is_dir: bool = False


class ModuleDefinition(BaseModel):
    """Normalized result of evaluating a descriptor against a schema"""
    model_config = ConfigDict(frozen=True)

    valid: bool
    struct: Dict[str, Any] = Field(default_factory=dict)
    errors: List[str] = Field(default_factory=list)


class InstalledModuleRecord(BaseModel):
    """Registry record for an installed module"""
    name: str
    status: bool = True
    updates: int = 0
    version: str
    path: str
    settings: str = "{}"
    menu: str = "{}"
    info: str = "{}"
    installed_by: Optional[str] = None
    created: Optional[datetime] = None
    updated: Optional[datetime] = None


class ModuleInstallOutcome(BaseModel):
    """Result of installing one module out of a descriptor"""
    success: bool
    name: str
    message: Union[str, List[str]]


class InstallReport(BaseModel):
    """Result of a top-level install call"""
    success: bool
    message: Union[str, List[str]]
    installed: List[str] = Field(default_factory=list)

    @property
    def messages(self) -> List[str]:
        """Message normalized to a list of strings"""
        if isinstance(self.message, str):
            return [self.message]
        return list(self.message)

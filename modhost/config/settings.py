"""Installer settings: where modules live and where the registry is stored"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_HOME = Path.home() / ".modhost"
DEFAULT_TEMP_PREFIX = "modhost_m_temp_"

ENV_HOME = "MODHOST_HOME"
ENV_MODULES_DIR = "MODHOST_MODULES_DIR"
ENV_DB_PATH = "MODHOST_DB_PATH"


@dataclass
class InstallerSettings:
    """Installer settings"""

    home: Path = field(default_factory=lambda: DEFAULT_HOME)
    manage_modules_path: Optional[Path] = None  # Defaults to <home>/modules
    db_path: Optional[Path] = None  # Defaults to <home>/registry.sqlite
    temp_prefix: str = DEFAULT_TEMP_PREFIX

    def __post_init__(self):
        self.home = Path(self.home).expanduser()
        if self.manage_modules_path is None:
            self.manage_modules_path = self.home / "modules"
        if self.db_path is None:
            self.db_path = self.home / "registry.sqlite"
        self.manage_modules_path = Path(self.manage_modules_path).expanduser()
        self.db_path = Path(self.db_path).expanduser()

    def to_dict(self) -> Dict:
        """Convert to dictionary"""
        data = asdict(self)
        for key in ("home", "manage_modules_path", "db_path"):
            data[key] = str(data[key])
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "InstallerSettings":
        """Create from dictionary"""
        return cls(
            home=Path(data.get("home", DEFAULT_HOME)),
            manage_modules_path=data.get("manage_modules_path"),
            db_path=data.get("db_path"),
            temp_prefix=data.get("temp_prefix", DEFAULT_TEMP_PREFIX),
        )


def load_settings(settings_path: Optional[Path] = None) -> InstallerSettings:
    """
    Load settings from a JSON file and environment

    Resolution order (later wins): defaults, ``<home>/settings.json`` (or
    settings_path), then MODHOST_MODULES_DIR / MODHOST_DB_PATH. MODHOST_HOME
    moves the home directory, and with it the default settings file.
    """
    home = Path(os.environ.get(ENV_HOME) or DEFAULT_HOME).expanduser()
    settings_path = settings_path or home / "settings.json"

    data: Dict = {"home": str(home)}
    if settings_path.exists():
        try:
            with open(settings_path, "r", encoding="utf-8") as f:
                data.update(json.load(f))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load settings from {settings_path}: {e}")

    if os.environ.get(ENV_MODULES_DIR):
        data["manage_modules_path"] = os.environ[ENV_MODULES_DIR]
    if os.environ.get(ENV_DB_PATH):
        data["db_path"] = os.environ[ENV_DB_PATH]

    return InstallerSettings.from_dict(data)


def save_settings(settings: InstallerSettings, settings_path: Optional[Path] = None) -> Path:
    """Save settings as JSON, returns the written path"""
    settings_path = settings_path or settings.home / "settings.json"
    settings_path.parent.mkdir(parents=True, exist_ok=True)
    with open(settings_path, "w", encoding="utf-8") as f:
        json.dump(settings.to_dict(), f, indent=2)
    return settings_path

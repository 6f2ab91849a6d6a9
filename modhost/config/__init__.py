"""Configuration for modhost"""

from modhost.config.settings import (
    InstallerSettings,
    load_settings,
    save_settings,
)

__all__ = [
    "InstallerSettings",
    "load_settings",
    "save_settings",
]

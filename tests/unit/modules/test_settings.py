from __future__ import annotations

import json
from pathlib import Path

from modhost.config import InstallerSettings, load_settings, save_settings


def test_defaults_follow_home(tmp_path: Path) -> None:
    settings = InstallerSettings(home=tmp_path)
    assert settings.manage_modules_path == tmp_path / "modules"
    assert settings.db_path == tmp_path / "registry.sqlite"
    assert settings.temp_prefix == "modhost_m_temp_"


def test_load_settings_file_and_env(tmp_path: Path, monkeypatch) -> None:
    home = tmp_path / "home"
    home.mkdir()
    (home / "settings.json").write_text(
        json.dumps({"manage_modules_path": str(tmp_path / "mods"), "temp_prefix": "x_"}),
        encoding="utf-8",
    )
    monkeypatch.setenv("MODHOST_HOME", str(home))
    monkeypatch.setenv("MODHOST_DB_PATH", str(tmp_path / "other.sqlite"))
    monkeypatch.delenv("MODHOST_MODULES_DIR", raising=False)

    settings = load_settings()

    assert settings.home == home
    assert settings.manage_modules_path == tmp_path / "mods"
    assert settings.db_path == tmp_path / "other.sqlite"
    assert settings.temp_prefix == "x_"


def test_broken_settings_file_falls_back(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("MODHOST_HOME", str(tmp_path))
    monkeypatch.delenv("MODHOST_MODULES_DIR", raising=False)
    monkeypatch.delenv("MODHOST_DB_PATH", raising=False)
    (tmp_path / "settings.json").write_text("{oops", encoding="utf-8")

    settings = load_settings()

    assert settings.manage_modules_path == tmp_path / "modules"


def test_save_round_trip(tmp_path: Path) -> None:
    settings = InstallerSettings(home=tmp_path, temp_prefix="y_")
    path = save_settings(settings)

    assert path == tmp_path / "settings.json"
    assert load_settings(path).temp_prefix == "y_"

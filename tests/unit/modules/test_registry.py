from __future__ import annotations

from pathlib import Path

import pytest

from modhost.core.modules.exceptions import RegistryError
from modhost.core.modules.models import InstalledModuleRecord
from modhost.core.modules.registry import ModuleRegistry


def _record(name: str = "Demo", **kwargs) -> InstalledModuleRecord:
    return InstalledModuleRecord(name=name, version="1.0", path=f"{name}/", **kwargs)


def test_register_and_get(registry: ModuleRegistry) -> None:
    stored = registry.register(_record(installed_by="admin", menu='{"label": "Demo"}'))
    assert stored.created is not None

    assert registry.has("Demo")
    record = registry.get("Demo")
    assert record.name == "Demo"
    assert record.status is True
    assert record.installed_by == "admin"
    assert record.menu == '{"label": "Demo"}'
    assert record.created == stored.created


def test_get_missing(registry: ModuleRegistry) -> None:
    assert registry.get("nope") is None
    assert not registry.has("nope")


def test_duplicate_name_rejected(registry: ModuleRegistry) -> None:
    registry.register(_record())
    with pytest.raises(RegistryError, match="already registered"):
        registry.register(_record())
    assert len(registry.list_modules()) == 1


def test_list_and_enable(registry: ModuleRegistry) -> None:
    registry.register(_record("b_mod"))
    registry.register(_record("a_mod"))
    registry.set_enabled("b_mod", False)

    assert [m.name for m in registry.list_modules()] == ["a_mod", "b_mod"]
    assert [m.name for m in registry.list_modules(enabled_only=True)] == ["a_mod"]

    with pytest.raises(RegistryError, match="not found"):
        registry.set_enabled("c_mod", True)


def test_unregister(registry: ModuleRegistry) -> None:
    registry.register(_record())
    assert registry.unregister("Demo") is True
    assert registry.unregister("Demo") is False
    assert not registry.has("Demo")


def test_unopenable_database_raises_registry_error(tmp_path: Path) -> None:
    registry = ModuleRegistry(tmp_path)

    with pytest.raises(RegistryError):
        registry.has("DemoMod")
    with pytest.raises(RegistryError):
        registry.get("DemoMod")
    with pytest.raises(RegistryError):
        registry.list_modules()
    with pytest.raises(RegistryError):
        registry.register(_record("DemoMod"))

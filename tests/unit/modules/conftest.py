from __future__ import annotations

import json
import zipfile
from pathlib import Path
from typing import Callable, Dict, Union

import pytest

from modhost.core.modules import ModuleRegistry

DEMO_MODULE = {
    "name": "Demo Mod!",
    "schema": "1.0",
    "type": "included",
    "ver": "1.0",
    "title": "Demo",
    "menu": {"label": "Demo", "icon": "fa-box"},
}

DEMO_DESCRIPTOR = """// Demo package descriptor
{
    "schema": "1.0", /* install-level schema */
    "type": "single",
    "modules": [%s]
}
""" % json.dumps(DEMO_MODULE)

ZipFiles = Dict[str, Union[str, bytes]]


@pytest.fixture
def make_descriptor() -> Callable[..., str]:
    def _make(package_type: str = "single", **module_overrides) -> str:
        module = dict(DEMO_MODULE, **module_overrides)
        return json.dumps({"schema": "1.0", "type": package_type, "modules": [module]})

    return _make


@pytest.fixture
def make_zip(tmp_path: Path) -> Callable[..., Path]:
    counter = {"n": 0}

    def _make(files: ZipFiles, name: str = "") -> Path:
        counter["n"] += 1
        path = tmp_path / "packages" / (name or f"package_{counter['n']}.zip")
        path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(path, "w") as zf:
            for member, content in files.items():
                zf.writestr(member, content)
        return path

    return _make


@pytest.fixture
def demo_files() -> ZipFiles:
    return {
        "module.jsonc": DEMO_DESCRIPTOR,
        "module.php": "<?php\n// entry point\n",
        "assets/style.css": "body { margin: 0; }\n",
    }


@pytest.fixture
def demo_zip(make_zip, demo_files) -> Path:
    return make_zip(demo_files, name="demo.zip")


@pytest.fixture
def modules_dir(tmp_path: Path) -> Path:
    path = tmp_path / "modules"
    path.mkdir()
    return path


@pytest.fixture
def registry(tmp_path: Path) -> ModuleRegistry:
    return ModuleRegistry(tmp_path / "registry.sqlite")

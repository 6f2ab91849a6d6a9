from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from modhost.core.modules.archive import ModuleArchive
from modhost.core.modules.exceptions import CopyError, ExtractionError
from modhost.core.modules.staging import FilesystemStager, copy_tree, make_staging_id


def test_stage_extracts_all_entries(demo_zip: Path, modules_dir: Path) -> None:
    stager = FilesystemStager(prefix="tmp_")
    with ModuleArchive.open(demo_zip) as archive:
        area = stager.stage(archive, modules_dir)

    assert area.materialized
    assert area.path.parent == modules_dir
    assert area.path.name.startswith("tmp_")
    assert (area.path / "module.php").is_file()
    assert (area.path / "assets" / "style.css").read_text(encoding="utf-8") == "body { margin: 0; }\n"


def test_cleanup_is_idempotent(demo_zip: Path, modules_dir: Path) -> None:
    with ModuleArchive.open(demo_zip) as archive:
        area = FilesystemStager().stage(archive, modules_dir)

    assert area.cleanup() is True
    assert not area.path.exists()
    assert area.cleanup() is False
    assert not area.materialized


def test_cleanup_never_materialized(modules_dir: Path) -> None:
    area = FilesystemStager().create_area(modules_dir)
    assert area.cleanup() is False


def test_path_traversal_leaves_cleanable_partial_area(make_zip, modules_dir: Path, tmp_path: Path) -> None:
    path = make_zip({"module.jsonc": "{}", "../evil.txt": "x"})
    stager = FilesystemStager()
    area = stager.create_area(modules_dir)

    with ModuleArchive.open(path) as archive:
        with pytest.raises(ExtractionError, match="Path traversal"):
            stager.stage(archive, modules_dir, area)

    assert not area.materialized
    assert not (modules_dir / "evil.txt").exists()
    assert not (tmp_path / "evil.txt").exists()
    assert area.path.exists()
    assert area.cleanup() is True
    assert not area.path.exists()


def test_stage_closed_archive_fails(demo_zip: Path, modules_dir: Path) -> None:
    archive = ModuleArchive.open(demo_zip)
    archive.close()
    with pytest.raises(ExtractionError):
        FilesystemStager().stage(archive, modules_dir)


def test_staging_ids_are_unique_within_a_second() -> None:
    now = datetime(2026, 1, 2, 3, 4, 5)
    ids = {make_staging_id(now) for _ in range(20)}
    assert len(ids) == 20
    assert all(i.startswith("20260102030405_") for i in ids)


def test_copy_tree_existing_destination(tmp_path: Path) -> None:
    source = tmp_path / "src"
    source.mkdir()
    (source / "a.txt").write_text("a", encoding="utf-8")
    destination = tmp_path / "dst"
    destination.mkdir()
    (destination / "keep.txt").write_text("keep", encoding="utf-8")

    with pytest.raises(CopyError):
        copy_tree(source, destination)
    assert (destination / "keep.txt").exists()


def test_copy_tree(tmp_path: Path) -> None:
    source = tmp_path / "src"
    (source / "nested").mkdir(parents=True)
    (source / "nested" / "b.txt").write_text("b", encoding="utf-8")

    copy_tree(source, tmp_path / "dst")
    assert (tmp_path / "dst" / "nested" / "b.txt").read_text(encoding="utf-8") == "b"

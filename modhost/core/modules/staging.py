"""Temporary staging of module archives on disk"""

import logging
import secrets
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from modhost.config.settings import DEFAULT_TEMP_PREFIX
from modhost.core.modules.archive import ModuleArchive
from modhost.core.modules.exceptions import CopyError, ExtractionError

logger = logging.getLogger(__name__)


def make_staging_id(now: Optional[datetime] = None) -> str:
    """Timestamp identifier with a random suffix so same-second installs do not collide"""
    now = now or datetime.now()
    return f"{now.strftime('%Y%m%d%H%M%S')}_{secrets.token_hex(3)}"


def remove_tree(path: Path) -> bool:
    """
    Recursively remove a directory

    Returns:
        True if the directory was removed, False if it did not exist
    """
    if not path.exists():
        return False
    shutil.rmtree(path)
    logger.debug(f"Removed directory {path}")
    return True


def copy_tree(source: Path, destination: Path) -> None:
    """
    Copy a directory tree, removing any partial copy on failure

    Raises:
        CopyError: If the destination exists or the copy fails
    """
    if destination.exists():
        raise CopyError(f"Destination already exists: {destination}")
    try:
        shutil.copytree(source, destination, symlinks=False)
    except (OSError, shutil.Error) as e:
        try:
            remove_tree(destination)
        except OSError as cleanup_error:
            logger.warning(f"Failed to clean up partial copy {destination}: {cleanup_error}")
        raise CopyError(f"Failed to copy {source} to {destination}: {e}")
    logger.info(f"Copied {source} -> {destination}")


@dataclass
class StagingArea:
    """A uniquely named temporary directory owned by one installer"""
    parent: Path
    identifier: str
    prefix: str = DEFAULT_TEMP_PREFIX
    materialized: bool = field(default=False)
    _touched: bool = field(default=False, init=False, repr=False)

    @property
    def path(self) -> Path:
        return self.parent / f"{self.prefix}{self.identifier}"

    def cleanup(self) -> bool:
        """
        Remove the staging directory tree

        Returns:
            True when a directory was removed, False when there was nothing to remove
        """
        if not self._touched:
            return False
        try:
            removed = remove_tree(self.path)
        except OSError as e:
            logger.warning(f"Failed to remove staging area {self.path}: {e}")
            return False
        self._touched = False
        self.materialized = False
        if removed:
            logger.info(f"Staging area removed: {self.path}")
        return removed


class FilesystemStager:
    """Extracts module archives into staging areas"""

    def __init__(self, prefix: str = DEFAULT_TEMP_PREFIX):
        self.prefix = prefix

    def create_area(self, destination_root: Union[str, Path]) -> StagingArea:
        """Allocate (but do not create) a staging area under destination_root"""
        return StagingArea(
            parent=Path(destination_root),
            identifier=make_staging_id(),
            prefix=self.prefix,
        )

    def stage(
        self,
        archive: ModuleArchive,
        destination_root: Union[str, Path],
        area: Optional[StagingArea] = None
    ) -> StagingArea:
        """
        Extract every archive entry into a staging area under destination_root

        Members are checked for path traversal, absolute paths and symlinks
        before being written. The area is marked materialized only when all
        entries were written; a partial extraction can still be removed with
        ``area.cleanup()``, so callers that need cleanup after a failure
        should allocate the area up front with ``create_area``.

        Args:
            archive: Opened module archive
            destination_root: Directory the staging area is created in
            area: Pre-allocated staging area (optional)

        Returns:
            The materialized staging area

        Raises:
            ExtractionError: If extraction fails
        """
        if area is None:
            area = self.create_area(destination_root)
        target_dir = area.path
        logger.info(f"Extracting {archive.path.name} to {target_dir}")

        try:
            zf = archive.zipfile
            target_dir.mkdir(parents=True, exist_ok=True)
            area._touched = True
            target_dir_resolved = target_dir.resolve()

            for info in zf.infolist():
                member = info.filename

                if ".." in Path(member).parts:
                    raise ExtractionError(f"Path traversal detected in zip: {member}")

                if member.startswith("/") or Path(member).is_absolute():
                    raise ExtractionError(f"Absolute path detected in zip: {member}")

                if (info.external_attr >> 28) == 0xA:
                    raise ExtractionError(f"Symlinks are not allowed in module packages: {member}")

                target_path = target_dir / member
                try:
                    target_path.resolve().relative_to(target_dir_resolved)
                except ValueError:
                    raise ExtractionError(f"Zip extraction would escape staging directory: {member}")

                if info.is_dir():
                    target_path.mkdir(parents=True, exist_ok=True)
                    continue

                target_path.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info) as source, open(target_path, "wb") as target:
                    shutil.copyfileobj(source, target)

        except ExtractionError:
            raise
        except Exception as e:
            raise ExtractionError(f"Failed to extract zip: {e}")

        area.materialized = True
        logger.info(f"Extraction complete: {target_dir}")
        return area

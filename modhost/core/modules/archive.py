"""Read-only inspection of module archives"""

import logging
import zipfile
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Union

from modhost.core.modules.content import validate_content
from modhost.core.modules.exceptions import ArchiveOpenError
from modhost.core.modules.models import EntryMeta, ValidationKind

logger = logging.getLogger(__name__)


class ModuleArchive:
    """An opened module package (zip container)"""

    def __init__(self, path: Path, zf: Optional[zipfile.ZipFile] = None):
        self.path = path
        self._zf = zf

    @classmethod
    def open(cls, path: Union[str, Path]) -> "ModuleArchive":
        """
        Open a module archive for reading

        Args:
            path: Path to the zip file

        Returns:
            Opened ModuleArchive

        Raises:
            ArchiveOpenError: If the file is missing or not a zip archive
        """
        path = Path(path)
        if not path.is_file():
            raise ArchiveOpenError(f"Archive not found: {path}")

        try:
            zf = zipfile.ZipFile(path, "r")
        except (zipfile.BadZipFile, OSError) as e:
            raise ArchiveOpenError(f"Invalid zip archive {path.name}: {e}")

        logger.debug(f"Opened archive {path}")
        return cls(path, zf)

    @property
    def is_open(self) -> bool:
        return self._zf is not None

    @property
    def zipfile(self) -> zipfile.ZipFile:
        if self._zf is None:
            raise ArchiveOpenError(f"Archive is closed: {self.path}")
        return self._zf

    def list_entries(self) -> Dict[str, EntryMeta]:
        """List archive entries keyed by member name"""
        return {
            info.filename: EntryMeta(
                index=index,
                size=info.file_size,
                is_dir=info.is_dir(),
            )
            for index, info in enumerate(self.zipfile.infolist())
        }

    def read_entry(self, name: str) -> Optional[bytes]:
        """Read an entry's bytes without touching disk, None when absent"""
        try:
            return self.zipfile.read(name)
        except KeyError:
            return None

    def validate_required(self, required: Mapping[str, ValidationKind]) -> List[str]:
        """
        Check presence and format of required entries

        Args:
            required: Mapping of entry name to validation kind

        Returns:
            List of error messages, empty when everything is in place
        """
        if not self.is_open:
            return ["zip archive not loaded"]

        errors = []
        entries = self.list_entries()
        for name, kind in required.items():
            kind = ValidationKind(kind)
            if name not in entries:
                errors.append(f"Required file missing [{name}]")
                continue
            content = self.read_entry(name)
            if content is None or not validate_content(kind, content):
                errors.append(f"File is invalid [{name}] expected [{kind.value}]")

        if errors:
            logger.info(f"Archive {self.path.name} failed required file checks: {errors}")
        return errors

    def close(self) -> None:
        """
        Release the archive handle

        Safe on a closed or never-opened archive. Errors are logged, never raised.
        """
        zf, self._zf = self._zf, None
        if zf is None:
            return
        try:
            zf.close()
            logger.debug(f"Closed archive {self.path}")
        except Exception as e:
            logger.warning(f"Failed to close archive {self.path}: {e}")

    def __enter__(self) -> "ModuleArchive":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

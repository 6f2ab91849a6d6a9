"""Module registry for database operations"""

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from modhost.core.modules.exceptions import RegistryError
from modhost.core.modules.models import InstalledModuleRecord
from modhost.store import connect, ensure_schema

logger = logging.getLogger(__name__)


class ModuleRegistry:
    """Registry of installed modules, keyed uniquely by name"""

    def __init__(self, db_path: Union[str, Path]):
        """
        Initialize registry

        Args:
            db_path: Database file path
        """
        self.db_path = Path(db_path)
        self._schema_ready = False

    def _get_connection(self) -> sqlite3.Connection:
        """
        Get database connection with the registry schema in place

        Raises:
            RegistryError: If the database cannot be opened or initialized
        """
        try:
            conn = connect(self.db_path)
        except (sqlite3.Error, OSError) as e:
            raise RegistryError(f"Failed to open registry database {self.db_path}: {e}")
        if not self._schema_ready:
            try:
                ensure_schema(conn)
            except sqlite3.Error as e:
                conn.close()
                raise RegistryError(f"Failed to initialize registry database {self.db_path}: {e}")
            self._schema_ready = True
        return conn

    def has(self, name: str) -> bool:
        """True if a module with this name is registered"""
        conn = self._get_connection()
        try:
            cursor = conn.execute("SELECT 1 FROM modules WHERE name = ?", (name,))
            return cursor.fetchone() is not None
        except sqlite3.Error as e:
            raise RegistryError(f"Failed to query module '{name}': {e}")
        finally:
            conn.close()

    def register(self, record: InstalledModuleRecord) -> InstalledModuleRecord:
        """
        Insert a new module record

        Args:
            record: Record to persist; created/updated default to now

        Returns:
            The stored record

        Raises:
            RegistryError: If the name already exists or the insert fails
        """
        logger.info(f"Registering module: {record.name} v{record.version}")

        now = datetime.now(timezone.utc)
        created = record.created or now
        updated = record.updated or now

        conn = self._get_connection()
        try:
            conn.execute("""
                INSERT INTO modules (
                    name, status, updates, path, settings, menu,
                    version, created, updated, info, installed_by
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                record.name,
                1 if record.status else 0,
                record.updates,
                record.path,
                record.settings,
                record.menu,
                record.version,
                created.isoformat(),
                updated.isoformat(),
                record.info,
                record.installed_by,
            ))
            conn.commit()
        except sqlite3.IntegrityError as e:
            raise RegistryError(f"Module '{record.name}' is already registered: {e}")
        except sqlite3.Error as e:
            raise RegistryError(f"Failed to register module '{record.name}': {e}")
        finally:
            conn.close()

        logger.info(f"Module registered successfully: {record.name}")
        return record.model_copy(update={"created": created, "updated": updated})

    def get(self, name: str) -> Optional[InstalledModuleRecord]:
        """
        Get module by name

        Returns:
            InstalledModuleRecord or None if not found
        """
        conn = self._get_connection()
        try:
            cursor = conn.execute("SELECT * FROM modules WHERE name = ?", (name,))
            row = cursor.fetchone()
            if not row:
                return None
            return self._row_to_record(row)
        except sqlite3.Error as e:
            raise RegistryError(f"Failed to query module '{name}': {e}")
        finally:
            conn.close()

    def list_modules(self, enabled_only: bool = False) -> List[InstalledModuleRecord]:
        """List registered modules ordered by name"""
        conn = self._get_connection()
        try:
            query = "SELECT * FROM modules"
            params: list = []
            if enabled_only:
                query += " WHERE status = ?"
                params.append(1)
            query += " ORDER BY name"
            return [self._row_to_record(row) for row in conn.execute(query, params).fetchall()]
        except sqlite3.Error as e:
            raise RegistryError(f"Failed to list modules: {e}")
        finally:
            conn.close()

    def set_enabled(self, name: str, enabled: bool) -> None:
        """
        Set module enabled state

        Raises:
            RegistryError: If the module is unknown or the update fails
        """
        action = "Enabling" if enabled else "Disabling"
        logger.info(f"{action} module: {name}")

        conn = self._get_connection()
        try:
            cursor = conn.execute(
                "UPDATE modules SET status = ?, updated = ? WHERE name = ?",
                (1 if enabled else 0, datetime.now(timezone.utc).isoformat(), name)
            )
            if cursor.rowcount == 0:
                raise RegistryError(f"Module not found: {name}")
            conn.commit()
        except sqlite3.Error as e:
            raise RegistryError(f"Failed to set module status: {e}")
        finally:
            conn.close()

    def unregister(self, name: str) -> bool:
        """Delete a module record, returns False when no record existed"""
        conn = self._get_connection()
        try:
            cursor = conn.execute("DELETE FROM modules WHERE name = ?", (name,))
            conn.commit()
            removed = cursor.rowcount > 0
        except sqlite3.Error as e:
            raise RegistryError(f"Failed to unregister module '{name}': {e}")
        finally:
            conn.close()

        if removed:
            logger.info(f"Module unregistered: {name}")
        return removed

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> InstalledModuleRecord:
        return InstalledModuleRecord(
            name=row["name"],
            status=bool(row["status"]),
            updates=row["updates"],
            version=row["version"],
            path=row["path"],
            settings=row["settings"],
            menu=row["menu"],
            info=row["info"],
            installed_by=row["installed_by"],
            created=datetime.fromisoformat(row["created"]),
            updated=datetime.fromisoformat(row["updated"]),
        )

"""
One-time migration of the legacy saved-test-cases export into the draft store.
"""
import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from raydrop.core.domain.results import MigrationResult
from raydrop.core.interfaces.repository import IDraftStore
from .logger import get_logger

logger = get_logger("migration")


class LegacyMigrator:
    """Copies legacy records (a JSON array of test cases) into the draft store."""

    def __init__(self, store: IDraftStore, legacy_path: str):
        """Initialize the migrator.

        Args:
            store: Destination draft store
            legacy_path: Path of the legacy JSON export
        """
        self._store = store
        self._legacy_path = Path(legacy_path)

    @property
    def legacy_path(self) -> Path:
        return self._legacy_path

    def _read_legacy(self) -> List[Dict[str, Any]]:
        if not self._legacy_path.exists():
            return []
        try:
            with open(self._legacy_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("legacy_read_failed", path=str(self._legacy_path), error=str(e))
            return []
        if not isinstance(data, list):
            return []
        return [record for record in data if isinstance(record, dict)]

    async def discover(self) -> List[Dict[str, Any]]:
        """Read legacy records; an absent or unreadable export yields none."""
        return await asyncio.to_thread(self._read_legacy)

    async def migrate(self, records: Optional[List[Dict[str, Any]]] = None) -> MigrationResult:
        """Batch-copy records into the store.

        Args:
            records: Records to copy; discovered from the legacy export if omitted

        Returns:
            MigrationResult with the migrated count and assigned ids
        """
        if records is None:
            records = await self.discover()
        if not records:
            return MigrationResult(success=True)

        try:
            result = await self._store.migrate(records)
        except Exception as e:
            logger.error("migration_failed", exc_info=True, error=str(e))
            return MigrationResult(success=False, error=str(e) or "Migration failed")

        if not result.success:
            logger.warning("migration_failed", error=result.error)
            return MigrationResult(success=False, error=result.error or "Migration failed")

        logger.info("migration_completed", migrated=result.migrated)
        return MigrationResult(success=True, migrated=result.migrated, ids=list(result.ids))

    async def clear(self) -> bool:
        """Remove the legacy export.

        Returns:
            True if a file was removed
        """
        if not self._legacy_path.exists():
            return False
        await asyncio.to_thread(self._legacy_path.unlink)
        return True

    async def run(self) -> MigrationResult:
        """Discover, migrate and, on success, clear the legacy export."""
        result = await self.migrate()
        if result.success and result.migrated:
            await self.clear()
        return result

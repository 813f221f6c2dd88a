"""
Unit tests for the legacy export migration.
"""
import asyncio
import json

from raydrop.core.services.migration import LegacyMigrator
from tests.fakes import FakeDraftStore


LEGACY_RECORDS = [
    {'id': 'old-1', 'summary': 'Legacy one', 'createdAt': 1000, 'updatedAt': 2000},
    {'summary': 'Legacy two'},
]


class TestLegacyMigrator:
    """discover / migrate / clear."""

    def setup_method(self):
        """Set up test fixtures."""
        self.store = FakeDraftStore()

    def _migrator(self, tmp_path, content=None):
        path = tmp_path / "legacy.json"
        if content is not None:
            path.write_text(content, encoding='utf-8')
        return LegacyMigrator(self.store, str(path))

    def test_discover_missing_file(self, tmp_path):
        migrator = self._migrator(tmp_path)
        assert asyncio.run(migrator.discover()) == []

    def test_discover_ignores_malformed_content(self, tmp_path):
        assert asyncio.run(self._migrator(tmp_path, "{not json").discover()) == []
        assert asyncio.run(self._migrator(tmp_path, '{"a": 1}').discover()) == []

    def test_discover_keeps_only_objects(self, tmp_path):
        migrator = self._migrator(tmp_path, json.dumps([{'summary': 'x'}, 'junk', 3]))
        assert asyncio.run(migrator.discover()) == [{'summary': 'x'}]

    def test_run_migrates_and_clears(self, tmp_path):
        migrator = self._migrator(tmp_path, json.dumps(LEGACY_RECORDS))

        result = asyncio.run(migrator.run())

        assert result.success is True
        assert result.migrated == 2
        assert result.ids[0] == 'old-1'
        assert self.store.records['old-1']['createdAt'] == 1000
        assert migrator.legacy_path.exists() is False

    def test_nothing_to_migrate(self, tmp_path):
        result = asyncio.run(self._migrator(tmp_path).run())

        assert result.success is True
        assert result.migrated == 0
        assert self.store.calls == []

    def test_store_failure_keeps_legacy_file(self, tmp_path):
        self.store.failures['migrate'] = 'Migration failed: disk full'
        migrator = self._migrator(tmp_path, json.dumps(LEGACY_RECORDS))

        result = asyncio.run(migrator.run())

        assert result.success is False
        assert result.error == 'Migration failed: disk full'
        assert migrator.legacy_path.exists() is True

    def test_store_exception(self, tmp_path):
        self.store.failures['migrate'] = IOError("no space left")

        result = asyncio.run(self._migrator(tmp_path).migrate(LEGACY_RECORDS))

        assert result.success is False
        assert result.error == 'no space left'

    def test_clear_without_file(self, tmp_path):
        assert asyncio.run(self._migrator(tmp_path).clear()) is False

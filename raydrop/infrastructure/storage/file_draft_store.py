"""
File-based draft store.

Each draft is one JSON file named `<id>.json` in the drafts directory,
written with the camelCase keys the drafts have always been stored with.
The collection registry lives beside them in `collections.json`.
Blocking file I/O runs in a worker thread so the store can be awaited.
"""
import asyncio
import json
import uuid
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional

from raydrop.core.domain.collection import DEFAULT_COLOR, Collection, name_taken
from raydrop.core.domain.draft import Draft, DraftStatus, now_ms
from raydrop.core.domain.results import StoreResult
from raydrop.core.interfaces.repository import IDraftStore
from raydrop.core.services.logger import get_logger

logger = get_logger("file_draft_store")

# Written once and never replaced by an update payload
IMMUTABLE_KEYS = ('id', 'createdAt', 'importedAt')
IMPORT_REFERENCE_KEYS = ('testKey', 'testIssueId')
COLLECTIONS_FILE = "collections.json"


def _determine_status(payload: Dict[str, Any], existing_status: Optional[str] = None) -> str:
    """Imported is permanent; everything else is a draft."""
    if DraftStatus.IMPORTED.value in (existing_status, payload.get('status')):
        return DraftStatus.IMPORTED.value
    return DraftStatus.DRAFT.value


class FileDraftStore(IDraftStore):
    """Draft store keeping one JSON file per draft."""

    def __init__(self, drafts_dir: str = "testCases"):
        """Initialize the store.

        Args:
            drafts_dir: Directory holding the draft files
        """
        self._drafts_dir = Path(drafts_dir)
        self._lock = Lock()

    @property
    def drafts_dir(self) -> Path:
        return self._drafts_dir

    @property
    def collections_path(self) -> Path:
        return self._drafts_dir / COLLECTIONS_FILE

    def _ensure_dir(self) -> None:
        self._drafts_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, draft_id: str) -> Path:
        # Ids are used as file names; separators and the registry name are rejected
        file_name = f"{draft_id}.json"
        if not draft_id or '/' in draft_id or '\\' in draft_id or draft_id.startswith('.') \
                or file_name == COLLECTIONS_FILE:
            raise ValueError(f"Invalid draft id: {draft_id!r}")
        return self._drafts_dir / file_name

    def _read(self, draft_id: str) -> Optional[Dict[str, Any]]:
        path = self._path(draft_id)
        if not path.exists():
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("draft_file_unreadable", draft_id=draft_id, error=str(e))
            return None

    def _write(self, draft_id: str, record: Dict[str, Any]) -> None:
        self._ensure_dir()
        with open(self._path(draft_id), 'w', encoding='utf-8') as f:
            json.dump(record, f, indent=2)

    def _draft_files(self) -> List[Path]:
        return [p for p in self._drafts_dir.glob("*.json") if p.name != COLLECTIONS_FILE]

    def _read_collections(self) -> List[Collection]:
        path = self.collections_path
        if not path.exists():
            return []
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("collections_file_unreadable", error=str(e))
            return []
        items = data.get('collections', []) if isinstance(data, dict) else []
        return [Collection.from_dict(c) for c in items if isinstance(c, dict) and c.get('id')]

    def _write_collections(self, collections: List[Collection]) -> None:
        self._ensure_dir()
        with open(self.collections_path, 'w', encoding='utf-8') as f:
            json.dump({'collections': [c.to_dict() for c in collections]}, f, indent=2)

    # Synchronous implementations, run through asyncio.to_thread

    def _list(self) -> StoreResult:
        self._ensure_dir()
        records = []
        for path in self._draft_files():
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    records.append(json.load(f))
            except (json.JSONDecodeError, IOError) as e:
                logger.warning("draft_file_unreadable", file=path.name, error=str(e))
        drafts = [Draft.from_dict(r) for r in records if isinstance(r, dict)]
        drafts.sort(key=lambda d: d.updated_at or 0, reverse=True)
        return StoreResult(success=True, drafts=drafts)

    def _get(self, draft_id: str) -> StoreResult:
        record = self._read(draft_id)
        if record is None:
            return StoreResult.failure("Draft not found")
        return StoreResult(success=True, draft_id=draft_id, draft=Draft.from_dict(record))

    def _create(self, payload: Dict[str, Any]) -> StoreResult:
        draft_id = str(uuid.uuid4())
        now = now_ms()
        record = {
            **payload,
            'id': draft_id,
            'status': _determine_status(payload),
            'createdAt': now,
            'updatedAt': now,
        }
        with self._lock:
            self._write(draft_id, record)
        return StoreResult(success=True, draft_id=draft_id, draft=Draft.from_dict(record))

    def _update(self, draft_id: str, payload: Dict[str, Any]) -> StoreResult:
        with self._lock:
            existing = self._read(draft_id)
            if existing is None:
                return StoreResult.failure("Draft not found")

            record = {**existing, **payload}
            for key in IMMUTABLE_KEYS:
                if key in existing:
                    record[key] = existing[key]
                else:
                    record.pop(key, None)
            for key in IMPORT_REFERENCE_KEYS:
                if existing.get(key):
                    record[key] = existing[key]
            record['id'] = draft_id
            record['status'] = _determine_status(payload, existing.get('status'))
            record['updatedAt'] = now_ms()
            self._write(draft_id, record)
        return StoreResult(success=True, draft_id=draft_id, draft=Draft.from_dict(record))

    def _delete(self, draft_id: str) -> StoreResult:
        with self._lock:
            path = self._path(draft_id)
            if not path.exists():
                return StoreResult.failure("Draft not found")
            path.unlink()
        return StoreResult(success=True, draft_id=draft_id)

    def _set_status(self, draft_id: str, status: DraftStatus) -> StoreResult:
        with self._lock:
            existing = self._read(draft_id)
            if existing is None:
                return StoreResult.failure("Draft not found")
            if existing.get('status') == DraftStatus.IMPORTED.value and status is not DraftStatus.IMPORTED:
                return StoreResult.failure("Imported test cases cannot return to draft")

            now = now_ms()
            record = {**existing, 'status': status.value, 'updatedAt': now}
            if status is DraftStatus.IMPORTED:
                record['importedAt'] = now
            self._write(draft_id, record)
        return StoreResult(success=True, draft_id=draft_id, draft=Draft.from_dict(record))

    def _migrate(self, records: List[Dict[str, Any]]) -> StoreResult:
        ids = []
        with self._lock:
            for record in records:
                draft_id = str(record.get('id') or uuid.uuid4())
                now = now_ms()
                migrated = {
                    **record,
                    'id': draft_id,
                    'status': _determine_status(record),
                    'createdAt': record.get('createdAt') or now,
                    'updatedAt': record.get('updatedAt') or now,
                }
                migrated.pop('isComplete', None)
                self._write(draft_id, migrated)
                ids.append(draft_id)
        return StoreResult(success=True, migrated=len(ids), ids=ids)

    def _list_collections(self) -> StoreResult:
        return StoreResult(success=True, collections=self._read_collections())

    def _create_collection(self, name: str, color: Optional[str]) -> StoreResult:
        name = (name or '').strip()
        if not name:
            return StoreResult.failure("Collection name is required")

        with self._lock:
            collections = self._read_collections()
            if name_taken(collections, name):
                return StoreResult.failure("Collection with this name already exists")
            collection = Collection(
                id=f"col-{uuid.uuid4().hex[:12]}",
                name=name,
                color=color or DEFAULT_COLOR,
                created_at=now_ms(),
            )
            collections.append(collection)
            self._write_collections(collections)
        logger.info("collection_created", collection_id=collection.id)
        return StoreResult(success=True, collection=collection, collections=collections)

    def _delete_collection(self, collection_id: str) -> StoreResult:
        with self._lock:
            collections = self._read_collections()
            remaining = [c for c in collections if c.id != collection_id]
            if len(remaining) == len(collections):
                return StoreResult.failure("Collection not found")
            self._write_collections(remaining)

            uncategorized = []
            for path in self._draft_files():
                try:
                    with open(path, 'r', encoding='utf-8') as f:
                        record = json.load(f)
                except (json.JSONDecodeError, IOError) as e:
                    logger.warning("draft_file_unreadable", file=path.name, error=str(e))
                    continue
                if not isinstance(record, dict) or record.get('collectionId') != collection_id:
                    continue
                record['collectionId'] = None
                with open(path, 'w', encoding='utf-8') as f:
                    json.dump(record, f, indent=2)
                uncategorized.append(str(record.get('id') or path.stem))
        logger.info(
            "collection_deleted",
            collection_id=collection_id,
            uncategorized=len(uncategorized)
        )
        return StoreResult(success=True, ids=uncategorized, collections=remaining)

    # IDraftStore

    async def list(self) -> StoreResult:
        return await asyncio.to_thread(self._list)

    async def get(self, draft_id: str) -> StoreResult:
        return await asyncio.to_thread(self._get, draft_id)

    async def create(self, payload: Dict[str, Any]) -> StoreResult:
        return await asyncio.to_thread(self._create, payload)

    async def update(self, draft_id: str, payload: Dict[str, Any]) -> StoreResult:
        return await asyncio.to_thread(self._update, draft_id, payload)

    async def delete(self, draft_id: str) -> StoreResult:
        return await asyncio.to_thread(self._delete, draft_id)

    async def set_status(self, draft_id: str, status: DraftStatus) -> StoreResult:
        return await asyncio.to_thread(self._set_status, draft_id, status)

    async def migrate(self, records: List[Dict[str, Any]]) -> StoreResult:
        return await asyncio.to_thread(self._migrate, records)

    async def list_collections(self) -> StoreResult:
        return await asyncio.to_thread(self._list_collections)

    async def create_collection(self, name: str, color: Optional[str] = None) -> StoreResult:
        return await asyncio.to_thread(self._create_collection, name, color)

    async def delete_collection(self, collection_id: str) -> StoreResult:
        return await asyncio.to_thread(self._delete_collection, collection_id)

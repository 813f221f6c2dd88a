"""
Draft lifecycle controller.

Owns the in-memory list of drafts and mirrors every create / update /
delete / status change to the draft store. Local state changes only after
the store confirms; failures are reported through the `notify` callback.
"""
from dataclasses import replace
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union

from raydrop.core.domain.collection import Collection, name_taken
from raydrop.core.domain.draft import Draft, DraftStatus
from raydrop.core.domain.results import FanOutResult, StoreResult
from raydrop.core.interfaces.repository import IDraftStore
from .logger import get_logger
from .validators import StatusBadge, is_complete, status_badge

logger = get_logger("drafts")

Notifier = Callable[[str], None]
DraftInput = Union[Draft, Dict[str, Any]]

READ_ONLY_MESSAGE = "This test case has already been imported and is read-only."


class DraftView(str, Enum):
    """List views of the drafts screen."""
    DRAFTS = "draft"
    IMPORTED = "imported"


class SortOrder(str, Enum):
    """Sort orders offered on the drafts screen."""
    NEWEST = "newest"
    OLDEST = "oldest"
    NAME = "name"
    STATUS = "status"


def _payload(draft: DraftInput) -> Dict[str, Any]:
    if isinstance(draft, Draft):
        return draft.to_payload()
    # Round-trip through the model so garbled input is normalized
    return Draft.from_dict(dict(draft)).to_payload()


def _matches(draft: Draft, query: str) -> bool:
    query = query.lower()
    return (
        query in draft.summary.lower()
        or query in draft.description.lower()
        or any(query in label.lower() for label in draft.labels)
    )


class DraftLifecycleController:
    """Create, update, delete and track drafts against the draft store."""

    def __init__(self, store: IDraftStore, notify: Optional[Notifier] = None):
        """Initialize the controller.

        Args:
            store: Persistent draft store
            notify: Callback receiving user-visible messages
        """
        self._store = store
        self._notify = notify or (lambda message: None)
        self._drafts: List[Draft] = []
        self._collections: List[Collection] = []
        self._delete_listeners: List[Callable[[str], None]] = []
        self.loaded = False
        self.loading = False
        self.error: Optional[str] = None

    @property
    def drafts(self) -> List[Draft]:
        return list(self._drafts)

    def get(self, draft_id: Optional[str]) -> Optional[Draft]:
        if not draft_id:
            return None
        for draft in self._drafts:
            if draft.id == draft_id:
                return draft
        return None

    def on_delete(self, listener: Callable[[str], None]) -> None:
        """Register a callback invoked with the id of every deleted draft."""
        self._delete_listeners.append(listener)

    def notify(self, message: str) -> None:
        self._notify(message)

    async def _call_store(
        self,
        operation: str,
        call: Awaitable[StoreResult],
        failure_message: str,
        draft_id: Optional[str] = None
    ) -> Optional[StoreResult]:
        """Await a store call, converting any failure into a message.

        Returns:
            The successful StoreResult, or None on failure
        """
        try:
            result = await call
        except Exception as e:
            logger.error(
                "draft_store_failed",
                exc_info=True,
                operation=operation,
                draft_id=draft_id,
                error=str(e)
            )
            self._notify(failure_message)
            return None

        if result is None or not result.success:
            error = (result.error if result else None) or failure_message
            logger.warning(
                "draft_store_failed",
                operation=operation,
                draft_id=draft_id,
                error=error
            )
            self._notify(error)
            return None
        return result

    async def load(self) -> bool:
        """Load all drafts from the store, replacing the local list.

        Returns:
            True if drafts were loaded
        """
        self.loading = True
        self.error = None
        try:
            result = await self._call_store(
                "list", self._store.list(), "Failed to load saved test cases"
            )
        finally:
            self.loading = False

        if result is None:
            self.error = "Failed to load saved test cases"
            return False

        self._drafts = list(result.drafts)
        self.loaded = True
        logger.info("drafts_loaded", count=len(self._drafts))
        return True

    async def create(self, draft: DraftInput) -> Optional[StoreResult]:
        """Persist a new draft; it starts with status `draft`.

        Args:
            draft: Draft (or stored-shape dict) to create

        Returns:
            StoreResult carrying `draft_id` and `draft`, or None on failure
        """
        payload = _payload(draft)
        payload['status'] = DraftStatus.DRAFT.value

        result = await self._call_store(
            "create", self._store.create(payload), "Failed to save draft"
        )
        if result is None:
            return None

        created = result.draft or Draft.from_dict({**payload, 'id': result.draft_id})
        result.draft_id = result.draft_id or created.id
        self._drafts.insert(0, created)
        logger.log_draft_change("create", created.id, status=created.status.value)
        return result

    async def update(self, draft_id: str, draft: DraftInput) -> Optional[Draft]:
        """Replace a draft's content.

        Rejected without a store call when the draft is unknown or imported.

        Args:
            draft_id: Draft id
            draft: New content

        Returns:
            The updated draft, or None if rejected or failed
        """
        existing = self.get(draft_id)
        if existing is None:
            self._notify("Draft not found")
            return None
        if existing.is_imported:
            self._notify(READ_ONLY_MESSAGE)
            return None

        payload = _payload(draft)
        result = await self._call_store(
            "update", self._store.update(draft_id, payload), "Failed to update draft", draft_id
        )
        if result is None:
            return None

        updated = result.draft or Draft.from_dict({**existing.to_dict(), **payload})
        self._replace(updated)
        logger.log_draft_change("update", draft_id, status=updated.status.value)
        return updated

    async def delete(self, draft_id: str) -> bool:
        """Delete a draft locally and from the store.

        Returns:
            True if the store confirmed the deletion
        """
        result = await self._call_store(
            "delete", self._store.delete(draft_id), "Failed to delete test case", draft_id
        )
        if result is None:
            return False

        self._drafts = [d for d in self._drafts if d.id != draft_id]
        logger.log_draft_change("delete", draft_id)
        for listener in self._delete_listeners:
            listener(draft_id)
        return True

    async def set_status(self, draft_id: str, status: DraftStatus) -> bool:
        """Change a draft's status through the store.

        Returns:
            True if the store confirmed the change
        """
        result = await self._call_store(
            "set_status",
            self._store.set_status(draft_id, status),
            "Failed to update test case",
            draft_id
        )
        if result is None:
            return False

        if result.draft is not None:
            self._replace(result.draft)
        logger.log_draft_change("status", draft_id, status=status.value)
        return True

    async def record_import(
        self,
        draft_id: str,
        test_key: Optional[str],
        test_issue_id: Optional[str]
    ) -> bool:
        """Store the Xray test created for a draft.

        The test reference is written once; a draft that already carries one
        keeps it.

        Returns:
            True if the reference was stored
        """
        draft = self.get(draft_id)
        if draft is None or draft.is_imported or draft.test_key or not (test_key or test_issue_id):
            return False

        payload = draft.to_payload()
        payload['testKey'] = test_key
        payload['testIssueId'] = test_issue_id
        result = await self._call_store(
            "record_import",
            self._store.update(draft_id, payload),
            "Failed to update test case",
            draft_id
        )
        if result is None:
            return False

        updated = result.draft or Draft.from_dict({**draft.to_dict(), **payload})
        self._replace(updated)
        logger.log_draft_change("record_import", draft_id, status=updated.status.value, test_key=test_key)
        return True

    async def bulk_delete(self, draft_ids: Iterable[str]) -> FanOutResult:
        """Delete several drafts one by one.

        Each id is independent; failures are aggregated into one message and
        never roll back ids that were already deleted.
        """
        outcome = FanOutResult(action="delete")
        for draft_id in list(draft_ids):
            if await self.delete(draft_id):
                outcome.succeeded.append(draft_id)
            else:
                outcome.failed.append(draft_id)
        if outcome.failed:
            total = len(outcome.succeeded) + len(outcome.failed)
            outcome.error = f"Failed to delete {len(outcome.failed)} of {total} test case(s)"
        return outcome

    def _replace(self, updated: Draft) -> None:
        self._drafts = [updated if d.id == updated.id else d for d in self._drafts]

    # Derived state

    @staticmethod
    def is_selectable(draft: Draft, view: DraftView = DraftView.DRAFTS) -> bool:
        """Whether a draft may be selected in a list view.

        In the drafts view only complete drafts that were never sent to Xray
        can be picked (for bulk import); a recorded test key counts as sent.
        In the imported view every imported draft can be picked, for bulk
        local deletion only.
        """
        if view is DraftView.IMPORTED:
            return draft.is_imported
        return not draft.is_imported and not draft.test_key and is_complete(draft)

    @staticmethod
    def status_badge(draft: Draft) -> StatusBadge:
        return status_badge(draft)

    def counts(self) -> Dict[str, int]:
        """Tab badge counts."""
        imported = sum(1 for d in self._drafts if d.is_imported)
        return {
            DraftView.DRAFTS.value: len(self._drafts) - imported,
            DraftView.IMPORTED.value: imported,
        }

    def drafts_for_view(
        self,
        view: DraftView = DraftView.DRAFTS,
        query: str = "",
        sort: SortOrder = SortOrder.NEWEST
    ) -> List[Draft]:
        """Drafts of one view, filtered by a search query and sorted.

        Args:
            view: Drafts or imported view
            query: Case-insensitive text matched against summary, description and labels
            sort: Sort order

        Returns:
            Filtered, sorted drafts
        """
        if view is DraftView.IMPORTED:
            result = [d for d in self._drafts if d.is_imported]
        else:
            result = [d for d in self._drafts if not d.is_imported]

        if query.strip():
            result = [d for d in result if _matches(d, query.strip())]

        if sort is SortOrder.OLDEST:
            result.sort(key=lambda d: d.updated_at or 0)
        elif sort is SortOrder.NAME:
            result.sort(key=lambda d: d.summary.lower())
        elif sort is SortOrder.STATUS:
            result.sort(key=lambda d: 0 if is_complete(d) else 1)
        else:
            result.sort(key=lambda d: d.updated_at or 0, reverse=True)
        return result

    def drafts_in_collection(self, collection_id: Optional[str]) -> List[Draft]:
        """Drafts of a collection; None returns uncategorized drafts."""
        return [d for d in self._drafts if d.collection_id == collection_id]

    # Collections

    @property
    def collections(self) -> List[Collection]:
        return list(self._collections)

    async def load_collections(self) -> bool:
        """Load the collection registry from the store."""
        result = await self._call_store(
            "list_collections", self._store.list_collections(), "Failed to load collections"
        )
        if result is None:
            return False
        self._collections = list(result.collections)
        return True

    async def create_collection(self, name: str, color: Optional[str] = None) -> Optional[Collection]:
        """Create a collection; names are unique regardless of case.

        Returns:
            The new collection, or None if rejected or failed
        """
        name = (name or "").strip()
        if not name:
            self._notify("Collection name is required")
            return None
        if name_taken(self._collections, name):
            self._notify("Collection with this name already exists")
            return None

        result = await self._call_store(
            "create_collection",
            self._store.create_collection(name, color),
            "Failed to create collection"
        )
        if result is None or result.collection is None:
            return None

        self._collections.append(result.collection)
        logger.info("collection_created", collection_id=result.collection.id)
        return result.collection

    async def delete_collection(self, collection_id: str) -> bool:
        """Delete a collection and return its drafts to uncategorized.

        Returns:
            True if the store confirmed the deletion
        """
        result = await self._call_store(
            "delete_collection",
            self._store.delete_collection(collection_id),
            "Failed to delete collection"
        )
        if result is None:
            return False

        self._collections = [c for c in self._collections if c.id != collection_id]
        self._drafts = [
            replace(d, collection_id=None) if d.collection_id == collection_id else d
            for d in self._drafts
        ]
        logger.info("collection_deleted", collection_id=collection_id, uncategorized=len(result.ids))
        return True

    def collection_counts(self) -> Dict[Optional[str], int]:
        """Draft count per collection id; the None key counts uncategorized drafts."""
        counts: Dict[Optional[str], int] = {c.id: 0 for c in self._collections}
        counts[None] = 0
        for draft in self._drafts:
            counts[draft.collection_id] = counts.get(draft.collection_id, 0) + 1
        return counts

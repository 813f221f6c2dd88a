"""
Repository interfaces for the draft engine's collaborators.

Following the Repository pattern to keep the draft store and the Xray API
behind abstractions the controllers can await.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from raydrop.core.domain.draft import DraftStatus, XrayLinking
from raydrop.core.domain.entities import EntityFetchResult, EntityType
from raydrop.core.domain.results import ImportResponse, LinkResponse, StoreResult


class IDraftStore(ABC):
    """Interface for persistent draft storage.

    Implementations report expected failures as `StoreResult(success=False)`
    and may raise on unexpected ones; callers handle both.
    """

    @abstractmethod
    async def list(self) -> StoreResult:
        """List all drafts.

        Returns:
            StoreResult with `drafts` populated
        """
        pass

    @abstractmethod
    async def create(self, payload: Dict[str, Any]) -> StoreResult:
        """Create a draft and assign it an id.

        Args:
            payload: Stored draft fields (camelCase keys)

        Returns:
            StoreResult with `draft_id` and `draft`
        """
        pass

    @abstractmethod
    async def update(self, draft_id: str, payload: Dict[str, Any]) -> StoreResult:
        """Replace the editable content of a draft.

        Args:
            draft_id: Draft id
            payload: Stored draft fields (camelCase keys)

        Returns:
            StoreResult with the updated `draft`
        """
        pass

    @abstractmethod
    async def delete(self, draft_id: str) -> StoreResult:
        """Delete a draft.

        Args:
            draft_id: Draft id

        Returns:
            StoreResult
        """
        pass

    @abstractmethod
    async def set_status(self, draft_id: str, status: DraftStatus) -> StoreResult:
        """Change a draft's status, stamping `importedAt` when imported.

        Args:
            draft_id: Draft id
            status: New status

        Returns:
            StoreResult with the updated `draft`
        """
        pass

    async def get(self, draft_id: str) -> StoreResult:
        """Read a single draft.

        Args:
            draft_id: Draft id

        Returns:
            StoreResult with `draft`, or a failure if not found
        """
        result = await self.list()
        if not result.success:
            return result
        for draft in result.drafts:
            if draft.id == draft_id:
                return StoreResult(success=True, draft_id=draft_id, draft=draft)
        return StoreResult.failure("Draft not found")

    async def migrate(self, records: List[Dict[str, Any]]) -> StoreResult:
        """Batch-copy legacy records into the store.

        Args:
            records: Legacy draft dictionaries

        Returns:
            StoreResult with `migrated` count and `ids`
        """
        return StoreResult.failure("Migration is not supported by this store")

    async def list_collections(self) -> StoreResult:
        """List the collection registry.

        Returns:
            StoreResult with `collections` populated
        """
        return StoreResult.failure("Collections are not supported by this store")

    async def create_collection(self, name: str, color: Optional[str] = None) -> StoreResult:
        """Register a collection under a unique name.

        Args:
            name: Display name, unique regardless of case
            color: Hex colour; a preset colour when omitted

        Returns:
            StoreResult with the created `collection`
        """
        return StoreResult.failure("Collections are not supported by this store")

    async def delete_collection(self, collection_id: str) -> StoreResult:
        """Remove a collection; its drafts become uncategorized.

        Args:
            collection_id: Collection id

        Returns:
            StoreResult with the `ids` of the drafts that were uncategorized
        """
        return StoreResult.failure("Collections are not supported by this store")


class IXrayClient(ABC):
    """Interface for the Xray / Jira test-management API."""

    @abstractmethod
    async def fetch_entities(
        self,
        entity_type: EntityType,
        project_key: str
    ) -> EntityFetchResult:
        """Fetch linking candidates of one type for a project.

        Args:
            entity_type: Entity type to fetch
            project_key: Jira project key

        Returns:
            EntityFetchResult with items (and project_id for folders)
        """
        pass

    @abstractmethod
    async def import_draft(self, draft_id: str) -> ImportResponse:
        """Import a single stored draft.

        Args:
            draft_id: Draft id

        Returns:
            ImportResponse with job id and, when known, the created test
        """
        pass

    @abstractmethod
    async def bulk_import(self, draft_ids: List[str]) -> ImportResponse:
        """Import several stored drafts in one request.

        The outcome is all-or-nothing: no per-item status is reported.

        Args:
            draft_ids: Draft ids to import

        Returns:
            ImportResponse echoing the submitted draft ids
        """
        pass

    @abstractmethod
    async def link_test_to_entities(
        self,
        test_issue_id: str,
        linking: XrayLinking,
        project_key: Optional[str] = None
    ) -> LinkResponse:
        """Link an imported test to plans, executions, sets, folder and preconditions.

        Args:
            test_issue_id: Issue id of the imported test
            linking: Linking selection of the draft
            project_key: Project key used to resolve the project id if missing

        Returns:
            LinkResponse with any per-link warnings
        """
        pass

"""
Authoring session: ties the wizard, the drafts list and the entity cache
together behind tab / edit / new navigation.
"""
from dataclasses import replace
from enum import Enum
from typing import Optional

from raydrop.core.domain.draft import Draft
from raydrop.core.domain.results import FanOutResult, ImportResult
from raydrop.core.interfaces.repository import IXrayClient
from .bulk_import import BulkImportOrchestrator
from .disposition import PostImportDisposition
from .draft_lifecycle import DraftLifecycleController
from .entity_cache import EntityCache, ProjectEntityCache
from .logger import get_logger
from .unsaved_guard import NavigationAction, NavigationKind, UnsavedChangesGuard
from .wizard import WizardController

logger = get_logger("session")


class Tab(str, Enum):
    CREATE = "create"
    SAVED = "saved"
    IMPORTED = "imported"
    COLLECTIONS = "collections"


class AuthoringSession:
    """One user's authoring workspace for the active project."""

    def __init__(
        self,
        lifecycle: DraftLifecycleController,
        xray_client: IXrayClient,
        active_project: Optional[str] = None,
        entity_cache: Optional[EntityCache] = None
    ):
        """Initialize the session and its controllers.

        Args:
            lifecycle: Draft lifecycle controller
            xray_client: Xray client shared by imports and the entity cache
            active_project: Currently active Jira project key
            entity_cache: Entity cache; created over `xray_client` if omitted
        """
        self.lifecycle = lifecycle
        self.active_project = active_project
        self.entity_cache = entity_cache or EntityCache(xray_client)
        self.disposition = PostImportDisposition(lifecycle)
        self.wizard = WizardController(lifecycle, xray_client, self.disposition)
        self.guard = UnsavedChangesGuard(self.wizard)
        self.bulk = BulkImportOrchestrator(
            lifecycle, xray_client, self.disposition, active_project=active_project
        )
        self.active_tab = Tab.CREATE
        self.editing_id: Optional[str] = None

        self.wizard.open(project_key=active_project)
        lifecycle.on_delete(self._on_draft_deleted)

    async def start(self) -> bool:
        """Load the drafts list and the collections."""
        loaded = await self.lifecycle.load()
        await self.lifecycle.load_collections()
        return loaded

    # Navigation

    async def switch_tab(self, tab: Tab) -> bool:
        """Switch tabs through the unsaved-changes guard.

        Choosing the create tab while editing a draft starts a new one.

        Returns:
            True if navigation happened immediately
        """
        if tab is Tab.CREATE and self.active_tab is Tab.CREATE and self.editing_id:
            return await self.new_draft()
        if tab is self.active_tab:
            return True
        action = NavigationAction(kind=NavigationKind.TAB, tab=tab.value)
        if self.active_tab is not Tab.CREATE:
            await self._perform(action)
            return True
        return await self.guard.request(action, self._perform)

    async def edit(self, draft_id: str) -> bool:
        """Open a stored draft in the wizard."""
        return await self.guard.request(
            NavigationAction(kind=NavigationKind.EDIT, draft_id=draft_id), self._perform
        )

    async def new_draft(self) -> bool:
        """Start a blank draft in the wizard."""
        return await self.guard.request(NavigationAction(kind=NavigationKind.NEW), self._perform)

    async def _perform(self, action: NavigationAction) -> None:
        if action.kind is NavigationKind.TAB:
            tab = Tab(action.tab)
            if tab is Tab.CREATE:
                self._open_new()
            self.active_tab = tab
        elif action.kind is NavigationKind.EDIT:
            draft = self.lifecycle.get(action.draft_id)
            if draft is None:
                self.lifecycle.notify("Draft not found")
                return
            self._open(draft)
        else:
            self._open_new()

    def _open(self, draft: Draft) -> None:
        self.wizard.open(draft)
        self.editing_id = draft.id
        self.active_tab = Tab.CREATE
        project_key = draft.project_key or self.active_project
        if project_key and self.entity_cache.is_loaded(project_key):
            self.wizard.apply_entity_cache(self.entity_cache.project(project_key))

    def _open_new(self) -> None:
        self.wizard.open(project_key=self.active_project)
        self.editing_id = None
        self.active_tab = Tab.CREATE

    def _on_draft_deleted(self, draft_id: str) -> None:
        if self.editing_id == draft_id:
            logger.info("edited_draft_deleted", draft_id=draft_id)
            self.wizard.open(project_key=self.active_project)
            self.editing_id = None

    # Wizard operations

    async def save(self) -> Optional[Draft]:
        saved = await self.wizard.save()
        if saved is not None:
            self.editing_id = saved.id
        return saved

    async def submit(self) -> ImportResult:
        result = await self.wizard.submit(self.active_project)
        if result.success:
            self.editing_id = result.draft_id
        return result

    async def load_entities(self, force: bool = False) -> Optional[ProjectEntityCache]:
        """Load the Links step candidates and enrich the open draft with them."""
        project_key = self.wizard.draft.project_key or self.active_project
        if not project_key:
            return None
        cache = await self.entity_cache.load(project_key, force=force)
        self.wizard.apply_entity_cache(cache)
        return cache

    async def delete_collection(self, collection_id: str) -> bool:
        """Delete a collection; the open draft leaves it too."""
        deleted = await self.lifecycle.delete_collection(collection_id)
        if deleted and self.wizard.draft.collection_id == collection_id:
            self.wizard.state = replace(
                self.wizard.state, draft=replace(self.wizard.draft, collection_id=None)
            )
        return deleted

    # Disposition

    async def resolve_disposition(self, keep: bool) -> Optional[FanOutResult]:
        """Resolve the pending disposition and reset the wizard to a blank draft."""
        outcome = await (self.disposition.keep() if keep else self.disposition.delete())
        if outcome is not None and self.editing_id in outcome.succeeded + outcome.failed:
            self._open_new()
        return outcome

    def set_active_project(self, project_key: Optional[str]) -> None:
        """Change the active project; a blank wizard follows it."""
        self.active_project = project_key
        self.bulk.active_project = project_key
        self.bulk.deselect_all()
        if self.wizard.draft.is_new and not self.wizard.has_unsaved_changes:
            self.wizard.open(project_key=project_key)

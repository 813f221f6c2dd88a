"""
Read-through cache of Xray linking entities.

One cache per project, one entry per entity type. Entries load
independently: a failing type records its own error and never blocks the
others. Nothing expires; data is refreshed only when a caller forces it.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from raydrop.core.domain.entities import EntityType, FolderNode, XrayEntity
from raydrop.core.interfaces.repository import IXrayClient
from .logger import get_logger

logger = get_logger("entity_cache")


@dataclass
class EntityCacheEntry:
    """Cached items of one entity type with their load state."""
    items: List[Any] = field(default_factory=list)
    loading: bool = False
    error: Optional[str] = None
    fetch_count: int = 0


@dataclass
class ProjectEntityCache:
    """All entity entries of one project."""
    project_key: str
    project_id: Optional[str] = None
    loaded: bool = False
    entries: Dict[EntityType, EntityCacheEntry] = field(
        default_factory=lambda: {t: EntityCacheEntry() for t in EntityType}
    )

    def entry(self, entity_type: EntityType) -> EntityCacheEntry:
        return self.entries[entity_type]

    def items(self, entity_type: EntityType) -> List[Any]:
        return list(self.entries[entity_type].items)

    @property
    def is_loading(self) -> bool:
        return any(e.loading for e in self.entries.values())

    @property
    def errors(self) -> Dict[EntityType, str]:
        return {t: e.error for t, e in self.entries.items() if e.error}

    def issue_entities(self) -> List[XrayEntity]:
        """Every cached plan, execution, set and precondition."""
        found = []
        for entity_type, entry in self.entries.items():
            if entity_type is EntityType.FOLDERS:
                continue
            found.extend(i for i in entry.items if isinstance(i, XrayEntity))
        return found

    def folder_paths(self) -> List[str]:
        """Paths of every cached folder."""
        paths = []
        for item in self.entries[EntityType.FOLDERS].items:
            if isinstance(item, FolderNode):
                paths.extend(node.path for node in item.walk())
        return paths


class EntityCache:
    """Per-project, per-entity-type cache backed by the Xray client."""

    def __init__(self, client: IXrayClient):
        """Initialize the cache.

        Args:
            client: Xray client used for fetches
        """
        self._client = client
        self._projects: Dict[str, ProjectEntityCache] = {}
        self._loads: Dict[str, asyncio.Future] = {}

    def project(self, project_key: str) -> ProjectEntityCache:
        """Return the cache of a project, creating it empty on first access."""
        if project_key not in self._projects:
            self._projects[project_key] = ProjectEntityCache(project_key=project_key)
        return self._projects[project_key]

    def is_loaded(self, project_key: str) -> bool:
        return project_key in self._projects and self._projects[project_key].loaded

    async def get(
        self,
        project_key: str,
        entity_type: EntityType,
        force: bool = False
    ) -> List[Any]:
        """Read entities of one type, fetching only when needed.

        A project load already in flight is awaited instead of fetching the
        type a second time.

        Args:
            project_key: Jira project key
            entity_type: Entity type to read
            force: Re-fetch even if the project is already loaded

        Returns:
            Cached items (possibly empty if the fetch failed)
        """
        cache = self.project(project_key)
        if cache.loaded and not force:
            return cache.items(entity_type)

        in_flight = self._loads.get(project_key)
        if in_flight is not None and not force:
            await asyncio.shield(in_flight)
            return cache.items(entity_type)

        await self._fetch(cache, entity_type)
        return cache.items(entity_type)

    async def load(self, project_key: str, force: bool = False) -> ProjectEntityCache:
        """Load all five entity types for a project.

        Without `force`, an already loaded project issues no fetch at all and
        a concurrent call joins the load already in flight. With `force`,
        every type is fetched again.

        Args:
            project_key: Jira project key
            force: Refresh regardless of the current state

        Returns:
            The project's cache
        """
        cache = self.project(project_key)
        in_flight = self._loads.get(project_key)
        if not force:
            if cache.loaded:
                return cache
            if in_flight is not None:
                await asyncio.shield(in_flight)
                return cache

        task = asyncio.ensure_future(self._load_all(cache, force))
        self._loads[project_key] = task
        try:
            await task
        finally:
            if self._loads.get(project_key) is task:
                del self._loads[project_key]
        return cache

    async def _load_all(self, cache: ProjectEntityCache, force: bool) -> None:
        for entity_type in EntityType:
            cache.entry(entity_type).loading = True

        await asyncio.gather(*(self._fetch(cache, t) for t in EntityType))

        cache.loaded = True
        logger.info(
            "entity_cache_loaded",
            project_key=cache.project_key,
            forced=force,
            failed_types=[t.value for t in cache.errors]
        )

    async def _fetch(self, cache: ProjectEntityCache, entity_type: EntityType) -> None:
        entry = cache.entry(entity_type)
        entry.loading = True
        entry.fetch_count += 1
        try:
            result = await self._client.fetch_entities(entity_type, cache.project_key)
        except Exception as e:
            # Keep last-known items; only this type is affected
            entry.error = str(e) or f"Failed to fetch {entity_type.value}"
            logger.warning(
                "entity_fetch_failed",
                project_key=cache.project_key,
                entity_type=entity_type.value,
                error=entry.error
            )
        else:
            entry.items = list(result.items)
            entry.error = None
            if result.project_id and not cache.project_id:
                cache.project_id = str(result.project_id)
        finally:
            entry.loading = False

    def clear(self, project_key: Optional[str] = None) -> None:
        """Drop cached data for one project, or for all projects."""
        if project_key is None:
            self._projects.clear()
            self._loads.clear()
        else:
            self._projects.pop(project_key, None)
            self._loads.pop(project_key, None)

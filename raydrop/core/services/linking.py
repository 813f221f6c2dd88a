"""
Link selection helpers and the explicit draft-enrichment step.

The entity cache never writes to drafts. Callers that want cache data
reflected on a draft run `enrich_draft_from_cache` themselves.
"""
from dataclasses import replace
from typing import Dict, Optional

from raydrop.core.domain.draft import Draft, LinkDisplay, LinkType, XrayLinking
from raydrop.core.domain.entities import XrayEntity
from .entity_cache import ProjectEntityCache


def select_link(linking: XrayLinking, link_type: LinkType, entity: XrayEntity) -> XrayLinking:
    """Add an entity to a selection, caching its display label.

    Args:
        linking: Current linking
        link_type: Which id list to add to
        entity: Selected entity

    Returns:
        New XrayLinking (unchanged content if already selected)
    """
    ids = linking.ids_for(link_type)
    if entity.issue_id in ids or (entity.key and entity.key in ids):
        return linking
    displays = [d for d in linking.displays_for(link_type) if d.id != entity.issue_id]
    displays.append(LinkDisplay(id=entity.issue_id, display=entity.display))
    return linking.with_ids(link_type, ids + [entity.issue_id], displays)


def deselect_link(linking: XrayLinking, link_type: LinkType, value: str) -> XrayLinking:
    """Remove an id (or legacy key) from a selection along with its display."""
    ids = [v for v in linking.ids_for(link_type) if v != value]
    displays = [d for d in linking.displays_for(link_type) if d.id != value]
    return linking.with_ids(link_type, ids, displays)


def normalize_legacy_links(linking: XrayLinking, project_cache: ProjectEntityCache) -> XrayLinking:
    """Rewrite legacy key-based link values to issue ids.

    Older drafts stored an entity key ("PROJ-12") where an issue id is now
    expected. Values matching the key of a cached entity are replaced by its
    issue id, and the display entry is re-keyed the same way. Values with no
    match are left untouched.

    Args:
        linking: Linking as stored
        project_cache: Loaded cache of the draft's project

    Returns:
        Normalized linking (same object when nothing changed)
    """
    by_key: Dict[str, XrayEntity] = {
        e.key: e for e in project_cache.issue_entities() if e.key
    }
    if not by_key:
        return linking

    normalized = linking
    for link_type in LinkType:
        ids = normalized.ids_for(link_type)
        if not any(v in by_key for v in ids):
            continue
        new_ids = [by_key[v].issue_id if v in by_key else v for v in ids]
        new_displays = []
        for display in normalized.displays_for(link_type):
            entity = by_key.get(display.id)
            if entity:
                new_displays.append(LinkDisplay(id=entity.issue_id, display=display.display or entity.display))
            else:
                new_displays.append(display)
        normalized = normalized.with_ids(link_type, new_ids, new_displays)
    return normalized


def enrich_draft_from_cache(draft: Draft, project_cache: Optional[ProjectEntityCache]) -> Draft:
    """Reflect loaded cache data on a draft.

    Back-fills the draft's Xray project id when it is unset and the cache
    resolved one, and normalizes legacy key-based link values. Imported
    drafts are returned untouched.

    Args:
        draft: Draft being edited
        project_cache: Cache of the draft's project, or None

    Returns:
        The enriched draft (same object when nothing changed)
    """
    if project_cache is None or not project_cache.loaded or draft.is_imported:
        return draft

    linking = draft.xray_linking
    if project_cache.project_id and not linking.project_id:
        linking = replace(linking, project_id=project_cache.project_id)
    linking = normalize_legacy_links(linking, project_cache)

    if linking is draft.xray_linking:
        return draft
    return replace(draft, xray_linking=linking)

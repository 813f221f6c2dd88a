"""
Domain entities and value objects.
"""
from .collection import PRESET_COLORS, Collection
from .draft import (
    Draft,
    DraftStatus,
    LinkDisplay,
    LinkType,
    TestStep,
    XrayLinking,
    now_ms,
)
from .entities import EntityFetchResult, EntityType, FolderNode, XrayEntity
from .results import (
    FanOutResult,
    ImportResponse,
    ImportResult,
    LinkResponse,
    MigrationResult,
    StoreResult,
)

__all__ = [
    'Collection',
    'PRESET_COLORS',
    'Draft',
    'DraftStatus',
    'LinkDisplay',
    'LinkType',
    'TestStep',
    'XrayLinking',
    'now_ms',
    'EntityFetchResult',
    'EntityType',
    'FolderNode',
    'XrayEntity',
    'FanOutResult',
    'ImportResponse',
    'ImportResult',
    'LinkResponse',
    'MigrationResult',
    'StoreResult',
]

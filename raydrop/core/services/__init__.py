"""
Core services - draft lifecycle, wizard and import orchestration.
"""
from .authoring_session import AuthoringSession, Tab
from .bulk_import import BulkImportOrchestrator
from .disposition import PendingDisposition, PostImportDisposition
from .draft_lifecycle import DraftLifecycleController, DraftView, SortOrder
from .entity_cache import EntityCache, EntityCacheEntry, ProjectEntityCache
from .linking import enrich_draft_from_cache, normalize_legacy_links
from .logger import StructuredLogger, get_logger
from .migration import LegacyMigrator
from .unsaved_guard import NavigationAction, NavigationKind, UnsavedChangesGuard
from .validators import StatusBadge, completed_steps, current_step, is_complete
from .wizard import WizardController, WizardProgress, WizardState, open_draft

__all__ = [
    'AuthoringSession',
    'Tab',
    'BulkImportOrchestrator',
    'PendingDisposition',
    'PostImportDisposition',
    'DraftLifecycleController',
    'DraftView',
    'SortOrder',
    # Entity cache
    'EntityCache',
    'EntityCacheEntry',
    'ProjectEntityCache',
    'enrich_draft_from_cache',
    'normalize_legacy_links',
    # Logging
    'StructuredLogger',
    'get_logger',
    'LegacyMigrator',
    'NavigationAction',
    'NavigationKind',
    'UnsavedChangesGuard',
    # Validators
    'StatusBadge',
    'completed_steps',
    'current_step',
    'is_complete',
    # Wizard
    'WizardController',
    'WizardProgress',
    'WizardState',
    'open_draft',
]

"""
Result objects returned across the store / API boundary and to callers.

Every asynchronous failure is converted into one of these instead of being
raised to the presentation layer.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .collection import Collection
from .draft import Draft


@dataclass
class StoreResult:
    """Outcome of a draft store call."""
    success: bool
    draft: Optional[Draft] = None
    drafts: List[Draft] = field(default_factory=list)
    draft_id: Optional[str] = None
    error: Optional[str] = None
    migrated: int = 0
    ids: List[str] = field(default_factory=list)
    collection: Optional[Collection] = None
    collections: List[Collection] = field(default_factory=list)

    @classmethod
    def failure(cls, error: str) -> 'StoreResult':
        return cls(success=False, error=error)


@dataclass
class ImportResponse:
    """Raw answer of the Xray client to an import or bulk import."""
    success: bool
    job_id: Optional[str] = None
    draft_ids: List[str] = field(default_factory=list)
    test_issue_id: Optional[str] = None
    test_key: Optional[str] = None
    test_keys: List[str] = field(default_factory=list)
    test_issue_ids: List[str] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class LinkResponse:
    """Outcome of linking an imported test to its Xray entities."""
    warnings: List[str] = field(default_factory=list)
    results: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ImportResult:
    """Import outcome surfaced to the caller (single or bulk)."""
    success: bool
    draft_ids: List[str] = field(default_factory=list)
    job_id: Optional[str] = None
    test_keys: List[str] = field(default_factory=list)
    is_bulk_import: bool = False
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def draft_id(self) -> Optional[str]:
        return self.draft_ids[0] if len(self.draft_ids) == 1 else None


@dataclass
class FanOutResult:
    """Outcome of an operation applied to several drafts independently."""
    action: str
    succeeded: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return not self.failed


@dataclass
class MigrationResult:
    """Outcome of copying legacy records into the draft store."""
    success: bool
    migrated: int = 0
    ids: List[str] = field(default_factory=list)
    error: Optional[str] = None

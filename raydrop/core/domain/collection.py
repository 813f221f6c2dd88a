"""
Collections: named, coloured groupings of drafts.

A draft points at a collection through `collection_id`; a draft without one
is uncategorized.
"""
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

PRESET_COLORS = [
    '#6366f1', '#8b5cf6', '#ec4899', '#ef4444', '#f97316',
    '#eab308', '#22c55e', '#14b8a6', '#3b82f6', '#6b7280',
]
DEFAULT_COLOR = PRESET_COLORS[0]


@dataclass
class Collection:
    """A user-defined group of drafts."""
    id: str
    name: str
    color: str = DEFAULT_COLOR
    created_at: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Collection':
        return cls(
            id=str(data.get('id') or ''),
            name=str(data.get('name') or ''),
            color=str(data.get('color') or DEFAULT_COLOR),
            created_at=data.get('createdAt'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'color': self.color,
            'createdAt': self.created_at,
        }


def name_taken(collections: Iterable[Collection], name: str) -> bool:
    """Collection names are unique, compared case-insensitively."""
    wanted = name.strip().lower()
    return any(c.name.strip().lower() == wanted for c in collections)

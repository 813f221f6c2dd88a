"""
Xray linking entities offered as candidates in the Links step.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .draft import LinkType


class EntityType(str, Enum):
    """Entity types held by the entity cache."""
    TEST_PLANS = "testPlans"
    TEST_EXECUTIONS = "testExecutions"
    TEST_SETS = "testSets"
    PRECONDITIONS = "preconditions"
    FOLDERS = "folders"

    @property
    def link_type(self) -> Optional[LinkType]:
        """Link type selected from this entity type (None for folders)."""
        return {
            EntityType.TEST_PLANS: LinkType.TEST_PLAN,
            EntityType.TEST_EXECUTIONS: LinkType.TEST_EXECUTION,
            EntityType.TEST_SETS: LinkType.TEST_SET,
            EntityType.PRECONDITIONS: LinkType.PRECONDITION,
        }.get(self)


@dataclass(frozen=True)
class XrayEntity:
    """A test plan, execution, set or precondition issue."""
    issue_id: str
    key: str
    summary: str = ""

    @property
    def display(self) -> str:
        return f"{self.key}: {self.summary}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'XrayEntity':
        return cls(
            issue_id=str(data.get('issueId') or data.get('issue_id') or ''),
            key=str(data.get('key') or ''),
            summary=str(data.get('summary') or ''),
        )


@dataclass(frozen=True)
class FolderNode:
    """A folder in the Xray test repository."""
    name: str
    path: str
    tests_count: int = 0
    folders: tuple = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FolderNode':
        children = data.get('folders') or []
        return cls(
            name=str(data.get('name') or ''),
            path=str(data.get('path') or '/'),
            tests_count=int(data.get('testsCount') or 0),
            folders=tuple(cls.from_dict(c) for c in children if isinstance(c, dict)),
        )

    def walk(self) -> List['FolderNode']:
        """Return this folder and all descendants, depth first."""
        nodes = [self]
        for child in self.folders:
            nodes.extend(child.walk())
        return nodes


@dataclass
class EntityFetchResult:
    """Result of fetching one entity type for a project.

    The folder fetch resolves the project's internal id on the way, which is
    reported through `project_id`.
    """
    items: List[Any] = field(default_factory=list)
    project_id: Optional[str] = None

"""
Draft domain entity.

A draft is a locally authored test case that may later be imported to Xray.
Drafts are persisted with camelCase keys, so `from_dict` / `to_dict` map
between the stored JSON shape and the dataclasses below.
"""
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional


class DraftStatus(str, Enum):
    """Persisted draft status. New is the absence of an id, not a status."""
    DRAFT = "draft"
    IMPORTED = "imported"

    @classmethod
    def parse(cls, value: Any) -> 'DraftStatus':
        """Parse a stored status, treating anything unknown as a draft."""
        if value == cls.IMPORTED.value or value is cls.IMPORTED:
            return cls.IMPORTED
        return cls.DRAFT


class LinkType(str, Enum):
    """Linkable Xray entity types, keyed by their stored id-list prefix."""
    TEST_PLAN = "testPlan"
    TEST_EXECUTION = "testExecution"
    TEST_SET = "testSet"
    PRECONDITION = "precondition"

    @property
    def ids_key(self) -> str:
        return f"{self.value}Ids"

    @property
    def displays_key(self) -> str:
        return f"{self.value}Displays"

    @property
    def attribute(self) -> str:
        """Name of the id-list attribute on XrayLinking."""
        return {
            LinkType.TEST_PLAN: "test_plan_ids",
            LinkType.TEST_EXECUTION: "test_execution_ids",
            LinkType.TEST_SET: "test_set_ids",
            LinkType.PRECONDITION: "precondition_ids",
        }[self]


DEFAULT_TEST_TYPE = "Manual"
DEFAULT_PRIORITY = "Medium"


def now_ms() -> int:
    """Current time as epoch milliseconds (the stored timestamp unit)."""
    return int(time.time() * 1000)


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [str(v) for v in value if isinstance(v, (str, int)) and str(v)]


def _unique(values: List[str]) -> List[str]:
    seen = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


def _timestamp(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    return None


@dataclass
class TestStep:
    """A single action / data / expected-result step."""
    action: str = ""
    data: str = ""
    result: str = ""

    __test__ = False  # not a pytest class

    @classmethod
    def from_dict(cls, data: Any) -> 'TestStep':
        if not isinstance(data, dict):
            return cls()
        return cls(
            action=_text(data.get('action')),
            data=_text(data.get('data')),
            result=_text(data.get('result')),
        )

    def to_dict(self) -> Dict[str, str]:
        return {'action': self.action, 'data': self.data, 'result': self.result}


@dataclass(frozen=True)
class LinkDisplay:
    """Human readable label ("KEY: summary") cached for a selected entity id."""
    id: str
    display: str

    @property
    def key(self) -> str:
        """Entity key, the part of the display before the first colon."""
        return self.display.split(':')[0].strip() if self.display else self.id

    @classmethod
    def from_dict(cls, data: Any) -> Optional['LinkDisplay']:
        if not isinstance(data, dict) or not data.get('id'):
            return None
        return cls(id=str(data['id']), display=_text(data.get('display')))

    def to_dict(self) -> Dict[str, str]:
        return {'id': self.id, 'display': self.display}


@dataclass
class XrayLinking:
    """Xray entities a test is linked to once imported."""
    test_plan_ids: List[str] = field(default_factory=list)
    test_execution_ids: List[str] = field(default_factory=list)
    test_set_ids: List[str] = field(default_factory=list)
    precondition_ids: List[str] = field(default_factory=list)
    folder_path: str = ""
    project_id: Optional[str] = None
    displays: Dict[LinkType, List[LinkDisplay]] = field(default_factory=dict)

    def ids_for(self, link_type: LinkType) -> List[str]:
        return list(getattr(self, link_type.attribute))

    def displays_for(self, link_type: LinkType) -> List[LinkDisplay]:
        return list(self.displays.get(link_type, []))

    def with_ids(
        self,
        link_type: LinkType,
        ids: List[str],
        displays: Optional[List[LinkDisplay]] = None
    ) -> 'XrayLinking':
        """Return a copy with the id list (and optionally displays) replaced."""
        new_displays = dict(self.displays)
        if displays is not None:
            new_displays[link_type] = list(displays)
        return replace(self, **{link_type.attribute: _unique(list(ids))}, displays=new_displays)

    @classmethod
    def from_dict(cls, data: Any) -> 'XrayLinking':
        if not isinstance(data, dict):
            return cls()
        displays = {}
        for link_type in LinkType:
            raw = data.get(link_type.displays_key)
            entries = [LinkDisplay.from_dict(d) for d in raw] if isinstance(raw, list) else []
            entries = [e for e in entries if e is not None]
            if entries:
                displays[link_type] = entries
        project_id = data.get('projectId')
        return cls(
            test_plan_ids=_unique(_str_list(data.get('testPlanIds'))),
            test_execution_ids=_unique(_str_list(data.get('testExecutionIds'))),
            test_set_ids=_unique(_str_list(data.get('testSetIds'))),
            precondition_ids=_unique(_str_list(data.get('preconditionIds'))),
            folder_path=_text(data.get('folderPath')),
            project_id=str(project_id) if project_id not in (None, "") else None,
            displays=displays,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for link_type in LinkType:
            data[link_type.ids_key] = self.ids_for(link_type)
            data[link_type.displays_key] = [d.to_dict() for d in self.displays_for(link_type)]
        data['folderPath'] = self.folder_path
        data['projectId'] = self.project_id
        return data


@dataclass
class Draft:
    """Domain entity representing a test case draft."""
    id: Optional[str] = None
    summary: str = ""
    description: str = ""
    test_type: str = DEFAULT_TEST_TYPE
    priority: str = DEFAULT_PRIORITY
    labels: List[str] = field(default_factory=list)
    collection_id: Optional[str] = None
    steps: List[TestStep] = field(default_factory=lambda: [TestStep()])
    xray_linking: XrayLinking = field(default_factory=XrayLinking)
    project_key: Optional[str] = None
    status: DraftStatus = DraftStatus.DRAFT
    test_key: Optional[str] = None
    test_issue_id: Optional[str] = None
    created_at: Optional[int] = None
    updated_at: Optional[int] = None
    imported_at: Optional[int] = None

    @property
    def is_new(self) -> bool:
        return not self.id

    @property
    def is_imported(self) -> bool:
        return self.status is DraftStatus.IMPORTED

    @classmethod
    def from_dict(cls, data: Any) -> 'Draft':
        """Build a draft from its stored form.

        Missing or malformed fields become empty values; they are reported by
        the validators, never raised here.
        """
        if not isinstance(data, dict):
            return cls()
        raw_steps = data.get('steps')
        steps = [TestStep.from_dict(s) for s in raw_steps] if isinstance(raw_steps, list) else []
        collection_id = data.get('collectionId')
        return cls(
            id=str(data['id']) if data.get('id') else None,
            summary=_text(data.get('summary')),
            description=_text(data.get('description')),
            test_type=_text(data.get('testType')) or DEFAULT_TEST_TYPE,
            priority=_text(data.get('priority')) or DEFAULT_PRIORITY,
            labels=_unique(_str_list(data.get('labels'))),
            collection_id=str(collection_id) if collection_id else None,
            steps=steps,
            xray_linking=XrayLinking.from_dict(data.get('xrayLinking')),
            project_key=_text(data.get('projectKey')) or None,
            status=DraftStatus.parse(data.get('status')),
            test_key=_text(data.get('testKey')) or None,
            test_issue_id=str(data['testIssueId']) if data.get('testIssueId') else None,
            created_at=_timestamp(data.get('createdAt')),
            updated_at=_timestamp(data.get('updatedAt')),
            imported_at=_timestamp(data.get('importedAt')),
        )

    def to_payload(self) -> Dict[str, Any]:
        """Editable content sent to the store on create/update."""
        return {
            'summary': self.summary,
            'description': self.description,
            'testType': self.test_type,
            'priority': self.priority,
            'labels': list(self.labels),
            'collectionId': self.collection_id,
            'steps': [s.to_dict() for s in self.steps],
            'xrayLinking': self.xray_linking.to_dict(),
            'projectKey': self.project_key,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Full stored representation."""
        data = self.to_payload()
        data.update({
            'id': self.id,
            'status': self.status.value,
            'testKey': self.test_key,
            'testIssueId': self.test_issue_id,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
            'importedAt': self.imported_at,
        })
        return data

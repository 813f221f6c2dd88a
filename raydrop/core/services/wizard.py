"""
Authoring wizard: Details -> Test Steps -> Links.

The wizard's state is an explicit `WizardState` value. Every user edit and
navigation is a pure transition `(state, ...) -> state`; `WizardController`
holds the current state and adds the asynchronous save and submit
operations.
"""
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional

from raydrop.core.domain.draft import Draft, LinkType, TestStep
from raydrop.core.domain.entities import XrayEntity
from raydrop.core.domain.results import ImportResult
from raydrop.core.interfaces.repository import IXrayClient
from . import linking
from .disposition import PostImportDisposition
from .draft_lifecycle import DraftLifecycleController
from .entity_cache import ProjectEntityCache
from .logger import get_logger
from .validators import (
    STEP_DETAILS,
    STEP_LINKS,
    StatusBadge,
    all_step_errors,
    completed_steps,
    current_step,
    is_complete,
    status_badge,
    step_errors,
)

logger = get_logger("wizard")

EDITABLE_FIELDS = ('summary', 'description', 'test_type', 'priority')
STEP_FIELDS = ('action', 'data', 'result')

_LINK_ERROR_KEYS = {
    LinkType.TEST_PLAN: 'test_plan_ids',
    LinkType.TEST_EXECUTION: 'test_execution_ids',
    LinkType.TEST_SET: 'test_set_ids',
    LinkType.PRECONDITION: 'precondition_ids',
}


@dataclass(frozen=True)
class WizardState:
    """Ephemeral wizard state; never persisted."""
    draft: Draft = field(default_factory=Draft)
    current_step: int = STEP_DETAILS
    has_unsaved_changes: bool = False
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def is_read_only(self) -> bool:
        return self.draft.is_imported


@dataclass(frozen=True)
class WizardProgress:
    """Progress shown above the wizard."""
    current_step: int
    completed_steps: List[int]
    badge: StatusBadge
    is_read_only: bool


def open_draft(draft: Optional[Draft] = None) -> WizardState:
    """Open a draft, positioned at its first incomplete step (at most Links)."""
    draft = draft or Draft()
    return WizardState(draft=draft, current_step=min(current_step(draft), STEP_LINKS))


def _mutate(state: WizardState, draft: Draft, *touched: str) -> WizardState:
    if state.is_read_only:
        return state
    errors = {k: v for k, v in state.errors.items() if k not in touched}
    return replace(state, draft=draft, has_unsaved_changes=True, errors=errors)


def _without_step_errors(state: WizardState) -> WizardState:
    errors = {k: v for k, v in state.errors.items() if not k.startswith('step_') and k != 'steps'}
    return replace(state, errors=errors)


# Navigation

def next_step(state: WizardState) -> WizardState:
    """Advance when the current step validates, else report its errors."""
    errors = step_errors(state.draft, state.current_step)
    if errors:
        return replace(state, errors=errors)
    if state.current_step >= STEP_LINKS:
        return replace(state, errors={})
    return replace(state, current_step=state.current_step + 1, errors={})


def previous_step(state: WizardState) -> WizardState:
    if state.current_step <= STEP_DETAILS:
        return state
    return replace(state, current_step=state.current_step - 1, errors={})


def jump_to(state: WizardState, step: int) -> WizardState:
    """Jump to a completed step (or stay on the current one)."""
    if step == state.current_step:
        return state
    if not STEP_DETAILS <= step <= STEP_LINKS or step not in completed_steps(state.draft):
        return state
    return replace(state, current_step=step, errors={})


# Field mutations

def set_field(state: WizardState, name: str, value: Any) -> WizardState:
    if name not in EDITABLE_FIELDS:
        raise ValueError(f"Unknown draft field: {name}")
    return _mutate(state, replace(state.draft, **{name: value}), name)


def add_label(state: WizardState, label: str) -> WizardState:
    label = (label or "").strip()
    if not label or label in state.draft.labels:
        return state
    return _mutate(state, replace(state.draft, labels=state.draft.labels + [label]), 'labels')


def remove_label(state: WizardState, label: str) -> WizardState:
    if label not in state.draft.labels:
        return state
    labels = [existing for existing in state.draft.labels if existing != label]
    return _mutate(state, replace(state.draft, labels=labels), 'labels')


def add_step(state: WizardState) -> WizardState:
    steps = state.draft.steps + [TestStep()]
    return _mutate(state, replace(state.draft, steps=steps), 'steps')


def remove_step(state: WizardState, index: int) -> WizardState:
    """Remove a step; the last remaining step cannot be removed."""
    steps = state.draft.steps
    if len(steps) <= 1 or not 0 <= index < len(steps):
        return state
    new_steps = steps[:index] + steps[index + 1:]
    # Indexes shift, so per-step errors no longer point at the right rows
    return _mutate(_without_step_errors(state), replace(state.draft, steps=new_steps))


def update_step(state: WizardState, index: int, field_name: str, value: str) -> WizardState:
    steps = state.draft.steps
    if field_name not in STEP_FIELDS or not 0 <= index < len(steps):
        return state
    new_steps = list(steps)
    new_steps[index] = replace(steps[index], **{field_name: value})
    return _mutate(
        state,
        replace(state.draft, steps=new_steps),
        f"step_{index}_{field_name}",
        'steps'
    )


def move_step(state: WizardState, from_index: int, to_index: int) -> WizardState:
    steps = list(state.draft.steps)
    if from_index == to_index or not (0 <= from_index < len(steps) and 0 <= to_index < len(steps)):
        return state
    steps.insert(to_index, steps.pop(from_index))
    return _mutate(_without_step_errors(state), replace(state.draft, steps=steps))


def select_link(state: WizardState, link_type: LinkType, entity: XrayEntity) -> WizardState:
    new_linking = linking.select_link(state.draft.xray_linking, link_type, entity)
    if new_linking is state.draft.xray_linking:
        return state
    return _mutate(state, replace(state.draft, xray_linking=new_linking), _LINK_ERROR_KEYS[link_type])


def deselect_link(state: WizardState, link_type: LinkType, value: str) -> WizardState:
    if value not in state.draft.xray_linking.ids_for(link_type):
        return state
    new_linking = linking.deselect_link(state.draft.xray_linking, link_type, value)
    return _mutate(state, replace(state.draft, xray_linking=new_linking), _LINK_ERROR_KEYS[link_type])


def set_folder_path(state: WizardState, path: str) -> WizardState:
    new_linking = replace(state.draft.xray_linking, folder_path=path or "")
    return _mutate(state, replace(state.draft, xray_linking=new_linking), 'folder_path')


def set_collection(state: WizardState, collection_id: Optional[str]) -> WizardState:
    return _mutate(state, replace(state.draft, collection_id=collection_id or None), 'collection_id')


class WizardController:
    """Holds the wizard state and runs save / submit against the collaborators."""

    def __init__(
        self,
        lifecycle: DraftLifecycleController,
        xray_client: IXrayClient,
        disposition: Optional[PostImportDisposition] = None
    ):
        """Initialize the controller.

        Args:
            lifecycle: Draft lifecycle controller used for persistence
            xray_client: Xray client used for single imports and linking
            disposition: Disposition step opened after a successful import
        """
        self._lifecycle = lifecycle
        self._client = xray_client
        self._disposition = disposition or PostImportDisposition(lifecycle)
        self.state = open_draft()
        self.saving = False
        self.importing = False

    @property
    def draft(self) -> Draft:
        return self.state.draft

    @property
    def has_unsaved_changes(self) -> bool:
        return self.state.has_unsaved_changes

    @property
    def is_read_only(self) -> bool:
        return self.state.is_read_only

    @property
    def disposition(self) -> PostImportDisposition:
        return self._disposition

    @property
    def progress(self) -> WizardProgress:
        return WizardProgress(
            current_step=self.state.current_step,
            completed_steps=completed_steps(self.state.draft),
            badge=status_badge(self.state.draft),
            is_read_only=self.is_read_only,
        )

    def open(self, draft: Optional[Draft] = None, project_key: Optional[str] = None) -> WizardState:
        """Open an existing draft, or a blank one authored under `project_key`."""
        self.state = open_draft(draft or Draft(project_key=project_key))
        return self.state

    def apply(self, transition: Callable[..., WizardState], *args: Any, **kwargs: Any) -> WizardState:
        """Run a pure transition against the current state and keep the result.

        Example:
            controller.apply(set_field, 'summary', 'Login works')
        """
        self.state = transition(self.state, *args, **kwargs)
        return self.state

    def discard_changes(self) -> None:
        self.state = replace(self.state, has_unsaved_changes=False)

    def apply_entity_cache(self, project_cache: Optional[ProjectEntityCache]) -> Draft:
        """Reflect a loaded entity cache on the open draft.

        Enrichment is not a user edit, so the unsaved flag is left alone.
        """
        enriched = linking.enrich_draft_from_cache(self.state.draft, project_cache)
        if enriched is not self.state.draft:
            self.state = replace(self.state, draft=enriched)
        return enriched

    def project_mismatch(self, active_project: Optional[str]) -> bool:
        """The draft belongs to a project other than the active one."""
        key = self.state.draft.project_key
        return bool(key and active_project and key != active_project)

    @property
    def already_sent(self) -> bool:
        """The open draft has a test in Xray, or is waiting for keep/delete."""
        draft = self.state.draft
        return bool(draft.test_key) or bool(draft.id and self._disposition.is_pending(draft.id))

    def can_submit(self, active_project: Optional[str]) -> bool:
        return (
            self.state.current_step == STEP_LINKS
            and not self.is_read_only
            and not self.already_sent
            and not self.importing
            and not self.project_mismatch(active_project)
            and is_complete(self.state.draft)
        )

    async def save(self) -> Optional[Draft]:
        """Persist the draft: create when new, update otherwise.

        Returns:
            The saved draft, or None when nothing was saved
        """
        if self.is_read_only:
            return None

        draft = self.state.draft
        self.saving = True
        try:
            if draft.is_new:
                result = await self._lifecycle.create(draft)
                saved = result.draft if result else None
            else:
                saved = await self._lifecycle.update(draft.id, draft)
        finally:
            self.saving = False

        if saved is None:
            return None
        self.state = replace(self.state, draft=saved, has_unsaved_changes=False)
        return saved

    async def submit(self, active_project: Optional[str]) -> ImportResult:
        """Save, import and link the draft, then open the disposition step.

        Steps 1-3 are re-validated in full first. Linking problems are
        reported as warnings; the import itself still counts as successful.

        Args:
            active_project: Currently active Jira project key

        Returns:
            ImportResult for the single draft
        """
        if self.is_read_only:
            return ImportResult(success=False, error="This test case has already been imported")
        if self.already_sent:
            return ImportResult(success=False, error="This test case has already been sent to Xray")
        if self.state.current_step != STEP_LINKS:
            return ImportResult(success=False, error="Complete all steps before importing")
        if self.project_mismatch(active_project):
            return ImportResult(
                success=False,
                error=(
                    f"This test case belongs to project {self.state.draft.project_key}. "
                    f"Switch to {self.state.draft.project_key} to import it."
                )
            )

        errors = all_step_errors(self.state.draft)
        if errors:
            self.state = replace(self.state, errors=errors)
            return ImportResult(success=False, error="Please complete all required fields")

        self.importing = True
        try:
            return await self._import()
        finally:
            self.importing = False

    async def _import(self) -> ImportResult:
        saved = await self.save()
        if saved is None:
            return ImportResult(success=False, error="Failed to save draft before import")

        try:
            response = await self._client.import_draft(saved.id)
        except Exception as e:
            logger.error("import_failed", exc_info=True, draft_id=saved.id, error=str(e))
            return ImportResult(success=False, draft_ids=[saved.id], error=str(e) or "Import failed")

        if not response.success:
            error = response.error or "Import failed"
            logger.log_import([saved.id], success=False, error=error)
            return ImportResult(success=False, draft_ids=[saved.id], error=error)

        warnings: List[str] = []
        if response.test_issue_id:
            try:
                link_response = await self._client.link_test_to_entities(
                    response.test_issue_id, saved.xray_linking, saved.project_key
                )
                warnings.extend(link_response.warnings)
            except Exception as e:
                warnings.append(f"Linking failed: {e}")
        for warning in warnings:
            logger.warning("link_warning", draft_id=saved.id, warning=warning)

        await self._lifecycle.record_import(saved.id, response.test_key, response.test_issue_id)
        self.state = replace(self.state, draft=self._lifecycle.get(saved.id) or saved)

        result = ImportResult(
            success=True,
            draft_ids=[saved.id],
            job_id=response.job_id,
            test_keys=[response.test_key] if response.test_key else [],
            is_bulk_import=False,
            warnings=warnings,
        )
        logger.log_import(
            [saved.id],
            success=True,
            job_id=response.job_id,
            test_keys=result.test_keys,
            warnings=len(warnings)
        )
        await self._disposition.begin([saved.id], is_bulk=False, result=result)
        return result

"""
Draft completeness validators.

Pure functions over a Draft snapshot. Missing or malformed fields count as
invalid; nothing here raises.
"""
from enum import Enum
from typing import Dict, List

from raydrop.core.domain.draft import Draft, DraftStatus

STEP_DETAILS = 1
STEP_TEST_STEPS = 2
STEP_LINKS = 3
STEP_IMPORTED = 4

WIZARD_STEPS = (STEP_DETAILS, STEP_TEST_STEPS, STEP_LINKS)

STEP_LABELS = {
    STEP_DETAILS: "Details",
    STEP_TEST_STEPS: "Test Steps",
    STEP_LINKS: "Links",
    STEP_IMPORTED: "Imported",
}

REQUIRED_LINK_FIELDS = ('test_plan_ids', 'test_execution_ids', 'test_set_ids')


class StatusBadge(str, Enum):
    """Badge shown next to a draft."""
    NEW = "New"
    DRAFT = "Draft"
    DRAFT_COMPLETE = "Draft ✓"
    IMPORTED = "Imported"


def _blank(value) -> bool:
    return not isinstance(value, str) or not value.strip()


def _steps(draft: Draft) -> list:
    steps = getattr(draft, 'steps', None)
    return steps if isinstance(steps, list) else []


def step_field_key(index: int, field_name: str) -> str:
    """Error key of one field of one test step."""
    return f"step_{index}_{field_name}"


def details_errors(draft: Draft) -> Dict[str, str]:
    errors = {}
    if _blank(getattr(draft, 'summary', None)):
        errors['summary'] = 'Summary is required'
    if _blank(getattr(draft, 'description', None)):
        errors['description'] = 'Description is required'
    return errors


def steps_errors(draft: Draft) -> Dict[str, str]:
    steps = _steps(draft)
    if not steps:
        return {'steps': 'At least one step is required'}
    errors = {}
    for index, step in enumerate(steps):
        if _blank(getattr(step, 'action', None)):
            errors[step_field_key(index, 'action')] = 'Action is required'
        if _blank(getattr(step, 'result', None)):
            errors[step_field_key(index, 'result')] = 'Expected Result is required'
    return errors


def links_errors(draft: Draft) -> Dict[str, str]:
    linking = getattr(draft, 'xray_linking', None)
    errors = {}
    for field_name in REQUIRED_LINK_FIELDS:
        ids = getattr(linking, field_name, None)
        if not isinstance(ids, list) or not ids:
            errors[field_name] = 'At least one required'
    if _blank(getattr(linking, 'folder_path', None)):
        errors['folder_path'] = 'Folder is required'
    return errors


_STEP_CHECKS = {
    STEP_DETAILS: details_errors,
    STEP_TEST_STEPS: steps_errors,
    STEP_LINKS: links_errors,
}


def step_errors(draft: Draft, step: int) -> Dict[str, str]:
    """Field -> message map for every failing field of a wizard step.

    Args:
        draft: Draft snapshot
        step: Wizard step (1-3)

    Returns:
        Empty dict when the step validates
    """
    check = _STEP_CHECKS.get(step)
    return check(draft) if check else {}


def all_step_errors(draft: Draft) -> Dict[str, str]:
    """Errors of steps 1-3 combined."""
    errors: Dict[str, str] = {}
    for step in WIZARD_STEPS:
        errors.update(step_errors(draft, step))
    return errors


def is_step1_valid(draft: Draft) -> bool:
    """Summary and description are both non-blank."""
    return not details_errors(draft)


def is_step2_valid(draft: Draft) -> bool:
    """At least one step, and every step has an action and a result."""
    return not steps_errors(draft)


def is_step3_valid(draft: Draft) -> bool:
    """Plans, executions and sets selected, and a folder chosen."""
    return not links_errors(draft)


def is_step_valid(draft: Draft, step: int) -> bool:
    return step in _STEP_CHECKS and not step_errors(draft, step)


def is_complete(draft: Draft) -> bool:
    """True when every required field across the three steps is populated."""
    return is_step1_valid(draft) and is_step2_valid(draft) and is_step3_valid(draft)


def is_imported(draft: Draft) -> bool:
    return getattr(draft, 'status', None) is DraftStatus.IMPORTED


def completed_steps(draft: Draft) -> List[int]:
    """Steps that currently validate, plus step 4 when imported.

    A step can be complete while the wizard sits before it, which is what
    allows jumping back and forth between completed steps.
    """
    steps = [step for step in WIZARD_STEPS if is_step_valid(draft, step)]
    if is_imported(draft):
        steps.append(STEP_IMPORTED)
    return steps


def current_step(draft: Draft) -> int:
    """First step still needing input; 4 when imported or fully complete."""
    if is_imported(draft):
        return STEP_IMPORTED
    done = completed_steps(draft)
    for step in WIZARD_STEPS:
        if step not in done:
            return step
    return STEP_IMPORTED


def status_badge(draft: Draft) -> StatusBadge:
    """Derive the badge: New, Draft, Draft ✓ or Imported."""
    if is_imported(draft):
        return StatusBadge.IMPORTED
    if not getattr(draft, 'id', None):
        return StatusBadge.NEW
    if is_complete(draft):
        return StatusBadge.DRAFT_COMPLETE
    return StatusBadge.DRAFT

"""
Unit tests for draft completeness validators.
"""
from dataclasses import replace

from raydrop.core.domain.draft import Draft, DraftStatus, TestStep, XrayLinking
from raydrop.core.services.validators import (
    StatusBadge,
    all_step_errors,
    completed_steps,
    current_step,
    is_complete,
    is_step1_valid,
    is_step2_valid,
    is_step3_valid,
    status_badge,
    step_errors,
)
from tests.fakes import complete_draft


class TestStepValidity:
    """Per-step predicates."""

    def test_blank_description_fails_step1(self):
        draft = Draft.from_dict({
            'summary': 'Login',
            'description': '',
            'steps': [{'action': '', 'result': ''}],
        })

        assert is_step1_valid(draft) is False
        assert current_step(draft) == 1

    def test_whitespace_only_summary_is_blank(self):
        draft = Draft(summary="   ", description="Something")
        assert is_step1_valid(draft) is False

    def test_step2_requires_at_least_one_step(self):
        assert is_step2_valid(Draft(steps=[])) is False

    def test_step2_requires_action_and_result(self):
        draft = Draft(steps=[
            TestStep(action="Open page", result="Page shown"),
            TestStep(action="Click login", result=""),
        ])
        assert is_step2_valid(draft) is False

    def test_step2_data_is_optional(self):
        draft = Draft(steps=[TestStep(action="Open page", data="", result="Page shown")])
        assert is_step2_valid(draft) is True

    def test_step3_preconditions_optional(self):
        draft = complete_draft()
        assert draft.xray_linking.precondition_ids == []
        assert is_step3_valid(draft) is True

    def test_step3_requires_each_link_type_and_folder(self):
        linking = XrayLinking(test_plan_ids=["1"], test_execution_ids=["2"], test_set_ids=[], folder_path="/A")
        assert is_step3_valid(Draft(xray_linking=linking)) is False

        linking = XrayLinking(test_plan_ids=["1"], test_execution_ids=["2"], test_set_ids=["3"], folder_path=" ")
        assert is_step3_valid(Draft(xray_linking=linking)) is False

    def test_complete_draft(self):
        assert is_complete(complete_draft()) is True

    def test_malformed_fields_count_as_invalid(self):
        draft = Draft(summary=None, description=42, steps=None, xray_linking=None)

        assert is_step1_valid(draft) is False
        assert is_step2_valid(draft) is False
        assert is_step3_valid(draft) is False
        assert is_complete(draft) is False


class TestStepErrors:
    """Field -> message maps."""

    def test_details_errors(self):
        errors = step_errors(Draft(), 1)
        assert errors == {
            'summary': 'Summary is required',
            'description': 'Description is required',
        }

    def test_step_errors_are_keyed_by_index(self):
        draft = Draft(steps=[
            TestStep(action="Open", result="Shown"),
            TestStep(action="", result=""),
        ])
        errors = step_errors(draft, 2)

        assert errors == {
            'step_1_action': 'Action is required',
            'step_1_result': 'Expected Result is required',
        }

    def test_no_steps_error(self):
        assert step_errors(Draft(steps=[]), 2) == {'steps': 'At least one step is required'}

    def test_link_errors(self):
        errors = step_errors(Draft(), 3)
        assert errors['test_plan_ids'] == 'At least one required'
        assert errors['test_execution_ids'] == 'At least one required'
        assert errors['test_set_ids'] == 'At least one required'
        assert errors['folder_path'] == 'Folder is required'
        assert 'precondition_ids' not in errors

    def test_unknown_step_has_no_errors(self):
        assert step_errors(Draft(), 4) == {}

    def test_all_step_errors_combines_steps(self):
        errors = all_step_errors(Draft())
        assert 'summary' in errors
        assert 'step_0_action' in errors
        assert 'folder_path' in errors


class TestProgress:
    """completed_steps / current_step derivation."""

    def test_new_draft_starts_at_step1(self):
        assert completed_steps(Draft()) == []
        assert current_step(Draft()) == 1

    def test_current_step_is_lowest_incomplete(self):
        draft = replace(complete_draft(), steps=[TestStep()])
        assert completed_steps(draft) == [1, 3]
        assert current_step(draft) == 2

    def test_complete_draft_reaches_step4(self):
        assert completed_steps(complete_draft()) == [1, 2, 3]
        assert current_step(complete_draft()) == 4

    def test_imported_draft(self):
        draft = complete_draft("a", status=DraftStatus.IMPORTED)
        assert completed_steps(draft) == [1, 2, 3, 4]
        assert current_step(draft) == 4

    def test_imported_incomplete_draft_is_still_step4(self):
        draft = Draft(id="a", status=DraftStatus.IMPORTED)
        assert current_step(draft) == 4


def _fill(draft, field_name):
    """Populate one required field of a draft."""
    linking = draft.xray_linking
    step = draft.steps[0] if draft.steps else TestStep()
    if field_name == 'summary':
        return replace(draft, summary='Login works')
    if field_name == 'description':
        return replace(draft, description='User can log in')
    if field_name == 'action':
        return replace(draft, steps=[replace(step, action='Open login page')])
    if field_name == 'result':
        return replace(draft, steps=[replace(step, result='Login form shown')])
    if field_name == 'folder':
        return replace(draft, xray_linking=replace(linking, folder_path='/Auth'))
    ids = {'plans': 'test_plan_ids', 'executions': 'test_execution_ids', 'sets': 'test_set_ids'}
    return replace(draft, xray_linking=replace(linking, **{ids[field_name]: ['1']}))


FIELDS_BY_STEP = {
    'summary': 1, 'description': 1,
    'action': 2, 'result': 2,
    'plans': 3, 'executions': 3, 'sets': 3, 'folder': 3,
}


class TestCompletedStepsMonotonic:
    """Filling fields never un-completes a step."""

    def _assert_growing(self, order):
        draft = Draft(steps=[TestStep()])
        done = set(completed_steps(draft))
        for field_name in order:
            draft = _fill(draft, field_name)
            now = set(completed_steps(draft))
            assert done <= now, field_name
            done = now
        assert done == {1, 2, 3}

    def test_filling_in_wizard_order(self):
        self._assert_growing(list(FIELDS_BY_STEP))

    def test_filling_in_reverse_order(self):
        self._assert_growing(list(reversed(list(FIELDS_BY_STEP))))

    def test_filling_links_before_details(self):
        self._assert_growing(['folder', 'sets', 'plans', 'executions', 'result', 'summary', 'action', 'description'])

    def test_blanking_a_field_removes_only_its_step(self):
        blanked = {
            'summary': lambda d: replace(d, summary=''),
            'description': lambda d: replace(d, description='  '),
            'action': lambda d: replace(d, steps=[replace(d.steps[0], action='')]),
            'result': lambda d: replace(d, steps=[replace(d.steps[0], result='')]),
            'plans': lambda d: replace(d, xray_linking=replace(d.xray_linking, test_plan_ids=[])),
            'executions': lambda d: replace(d, xray_linking=replace(d.xray_linking, test_execution_ids=[])),
            'sets': lambda d: replace(d, xray_linking=replace(d.xray_linking, test_set_ids=[])),
            'folder': lambda d: replace(d, xray_linking=replace(d.xray_linking, folder_path='')),
        }
        for field_name, blank in blanked.items():
            draft = blank(complete_draft())
            assert set(completed_steps(draft)) == {1, 2, 3} - {FIELDS_BY_STEP[field_name]}, field_name


class TestStatusBadge:
    """Badge derivation."""

    def test_new(self):
        assert status_badge(Draft()) == StatusBadge.NEW

    def test_incomplete_draft(self):
        assert status_badge(Draft(id="a")) == StatusBadge.DRAFT

    def test_complete_draft(self):
        assert status_badge(complete_draft("a")) == StatusBadge.DRAFT_COMPLETE
        assert status_badge(complete_draft("a")).value == "Draft ✓"

    def test_imported(self):
        assert status_badge(complete_draft("a", status=DraftStatus.IMPORTED)) == StatusBadge.IMPORTED

"""
Unit tests for the Draft domain model.
"""
from raydrop.core.domain.draft import (
    Draft,
    DraftStatus,
    LinkDisplay,
    LinkType,
    TestStep,
    XrayLinking,
)
from raydrop.core.domain.entities import FolderNode, XrayEntity


class TestDraftFromDict:
    """Parsing stored drafts."""

    def test_parses_camel_case_record(self):
        draft = Draft.from_dict({
            'id': 'abc',
            'summary': 'Login',
            'description': 'Valid login',
            'testType': 'Manual',
            'labels': ['smoke', 'auth'],
            'collectionId': 'col-1',
            'steps': [{'action': 'Open', 'data': 'user', 'result': 'Shown'}],
            'xrayLinking': {
                'testPlanIds': ['1001'],
                'testPlanDisplays': [{'id': '1001', 'display': 'PROJ-1: Plan'}],
                'folderPath': '/Auth',
                'projectId': 10001,
            },
            'projectKey': 'PROJ',
            'status': 'imported',
            'testKey': 'PROJ-9',
            'updatedAt': 1700000000000,
        })

        assert draft.id == 'abc'
        assert draft.collection_id == 'col-1'
        assert draft.steps == [TestStep(action='Open', data='user', result='Shown')]
        assert draft.xray_linking.test_plan_ids == ['1001']
        assert draft.xray_linking.displays_for(LinkType.TEST_PLAN)[0].display == 'PROJ-1: Plan'
        assert draft.xray_linking.project_id == '10001'
        assert draft.status is DraftStatus.IMPORTED
        assert draft.is_imported
        assert draft.test_key == 'PROJ-9'
        assert draft.updated_at == 1700000000000

    def test_garbled_fields_become_empty(self):
        draft = Draft.from_dict({
            'summary': 12,
            'labels': 'smoke',
            'steps': 'nope',
            'xrayLinking': ['bad'],
            'status': 'weird',
            'updatedAt': 'yesterday',
        })

        assert draft.summary == ''
        assert draft.labels == []
        assert draft.steps == []
        assert draft.xray_linking == XrayLinking()
        assert draft.status is DraftStatus.DRAFT
        assert draft.updated_at is None

    def test_non_dict_input(self):
        draft = Draft.from_dict(None)
        assert draft.is_new
        assert draft.summary == ''

    def test_labels_are_deduplicated_in_order(self):
        draft = Draft.from_dict({'labels': ['b', 'a', 'b', 'c', 'a']})
        assert draft.labels == ['b', 'a', 'c']

    def test_new_draft_has_one_blank_step(self):
        assert Draft().steps == [TestStep()]
        assert Draft().is_new


class TestDraftSerialization:
    """Stored shape."""

    def test_payload_excludes_lifecycle_fields(self):
        payload = Draft(id='a', summary='S', project_key='PROJ').to_payload()

        assert payload['summary'] == 'S'
        assert payload['projectKey'] == 'PROJ'
        assert 'id' not in payload
        assert 'status' not in payload
        assert 'testKey' not in payload

    def test_to_dict_uses_stored_keys(self):
        data = Draft(id='a', status=DraftStatus.IMPORTED, imported_at=5).to_dict()

        assert data['id'] == 'a'
        assert data['status'] == 'imported'
        assert data['importedAt'] == 5
        assert data['xrayLinking']['testPlanIds'] == []
        assert data['xrayLinking']['folderPath'] == ''


class TestXrayLinking:
    """Link id lists and displays."""

    def test_with_ids_deduplicates(self):
        linking = XrayLinking().with_ids(LinkType.TEST_SET, ['1', '2', '1'])
        assert linking.test_set_ids == ['1', '2']

    def test_with_ids_keeps_displays_unless_given(self):
        display = LinkDisplay(id='1', display='PROJ-1: Set')
        linking = XrayLinking().with_ids(LinkType.TEST_SET, ['1'], [display])
        updated = linking.with_ids(LinkType.TEST_SET, ['1', '2'])

        assert updated.displays_for(LinkType.TEST_SET) == [display]
        assert linking.test_set_ids == ['1']

    def test_link_display_key(self):
        assert LinkDisplay(id='1', display='PROJ-7: Regression').key == 'PROJ-7'


class TestEntities:
    """Xray entities."""

    def test_entity_display(self):
        entity = XrayEntity.from_dict({'issueId': '1001', 'key': 'PROJ-1', 'summary': 'Release plan'})
        assert entity.display == 'PROJ-1: Release plan'

    def test_folder_walk(self):
        root = FolderNode.from_dict({
            'name': '',
            'path': '/',
            'folders': [
                {'name': 'Auth', 'path': '/Auth', 'folders': [{'name': 'SSO', 'path': '/Auth/SSO'}]},
                {'name': 'Cart', 'path': '/Cart'},
            ],
        })

        assert [f.path for f in root.walk()] == ['/', '/Auth', '/Auth/SSO', '/Cart']

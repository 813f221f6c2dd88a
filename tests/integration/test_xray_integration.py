"""
Test the Xray integration with mock stubs.

Verifies the HTTP client and the API client without real network calls.
"""
import asyncio
from unittest.mock import Mock, patch

import pytest
import requests

from raydrop.core.domain.draft import DraftStatus, XrayLinking
from raydrop.core.domain.entities import EntityType
from raydrop.infrastructure.xray.http_client import XrayApiError, XrayHttpClient
from raydrop.infrastructure.xray.xray_client import XrayApiClient, to_bulk_import_format
from tests.fakes import FakeDraftStore, complete_draft, incomplete_draft


def _response(body, status_code=200):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = body
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(response=response)
    else:
        response.raise_for_status.return_value = None
    return response


class TestXrayHttpClient:
    """Authentication and request plumbing."""

    def test_requires_credentials(self):
        with pytest.raises(ValueError):
            XrayHttpClient(client_id='', client_secret='secret')
        with pytest.raises(ValueError):
            XrayHttpClient(client_id='id', client_secret='')

    @patch('raydrop.infrastructure.xray.http_client.requests.post')
    def test_token_is_cached(self, mock_post):
        mock_post.return_value = _response('token-123')
        client = XrayHttpClient('id', 'secret', base_url='https://xray.example/')

        assert client.authenticate() == 'token-123'
        assert client.authenticate() == 'token-123'

        assert mock_post.call_count == 1
        assert mock_post.call_args[0][0] == 'https://xray.example/api/v2/authenticate'
        assert client.is_token_valid() is True

    @patch('raydrop.infrastructure.xray.http_client.time.time')
    @patch('raydrop.infrastructure.xray.http_client.requests.post')
    def test_token_refreshed_inside_buffer(self, mock_post, mock_time):
        mock_post.return_value = _response('token-123')
        mock_time.return_value = 0
        client = XrayHttpClient('id', 'secret')
        client.authenticate()

        # 23h31m later: inside the 30 minute refresh buffer
        mock_time.return_value = (23 * 60 + 31) * 60
        assert client.is_token_valid() is False

        client.authenticate()
        assert mock_post.call_count == 2

    @patch('raydrop.infrastructure.xray.http_client.requests.post')
    def test_empty_token_rejected(self, mock_post):
        mock_post.return_value = _response('')
        client = XrayHttpClient('id', 'secret')

        with pytest.raises(XrayApiError):
            client.authenticate()

    @patch('raydrop.infrastructure.xray.http_client.requests.post')
    def test_graphql_errors_raise(self, mock_post):
        mock_post.side_effect = [
            _response('token'),
            _response({'errors': [{'message': 'Field not found'}]}),
        ]
        client = XrayHttpClient('id', 'secret')

        with pytest.raises(XrayApiError, match='Field not found'):
            client.graphql('query { x }')

    @patch('raydrop.infrastructure.xray.http_client.requests.post')
    def test_graphql_returns_data(self, mock_post):
        mock_post.side_effect = [_response('token'), _response({'data': {'x': 1}})]
        client = XrayHttpClient('id', 'secret')

        assert client.graphql('query { x }', {'a': 1}) == {'x': 1}
        headers = mock_post.call_args[1]['headers']
        assert headers['Authorization'] == 'Bearer token'

    @patch('raydrop.infrastructure.xray.http_client.requests.get')
    @patch('raydrop.infrastructure.xray.http_client.requests.post')
    def test_job_status(self, mock_post, mock_get):
        mock_post.return_value = _response('token')
        mock_get.return_value = _response({'status': 'working'})
        client = XrayHttpClient('id', 'secret', base_url='https://xray.example')

        assert client.job_status('job-1') == {'status': 'working'}
        assert mock_get.call_args[0][0] == 'https://xray.example/api/v1/import/test/bulk/job-1/status'


class TestXrayApiClient:
    """Import, job polling and linking over a mocked HTTP client."""

    def setup_method(self):
        """Set up test fixtures."""
        self.store = FakeDraftStore([
            complete_draft("a"),
            complete_draft("b", summary="Logout works"),
            incomplete_draft("c"),
            complete_draft("d", status=DraftStatus.IMPORTED),
        ])
        self.http = Mock(spec=XrayHttpClient)
        self.http.bulk_import.return_value = {'jobId': 'job-1'}
        self.http.job_status.return_value = {
            'status': 'successful',
            'result': {'issues': [{'id': '50001', 'key': 'PROJ-101'}]},
        }
        self.client = XrayApiClient(self.http, self.store, job_poll_attempts=3, job_poll_interval=0)

    def test_bulk_import_format(self):
        payload = to_bulk_import_format([complete_draft("a")], 'PROJ')

        assert payload == [{
            'testtype': 'Manual',
            'fields': {
                'summary': 'Login works',
                'project': {'key': 'PROJ'},
                'description': 'User can log in with valid credentials',
                'labels': ['smoke'],
            },
            'steps': [{'action': 'Open login page', 'data': '', 'result': 'Login form shown'}],
        }]

    def test_import_draft(self):
        response = asyncio.run(self.client.import_draft('a'))

        assert response.success is True
        assert response.job_id == 'job-1'
        assert response.test_key == 'PROJ-101'
        assert response.test_issue_id == '50001'
        self.http.job_status.assert_called_once_with('job-1')

    def test_job_polled_until_finished(self):
        self.http.job_status.side_effect = [
            {'status': 'pending'},
            {'status': 'working'},
            {'status': 'successful', 'result': {'issues': [{'id': '1', 'key': 'PROJ-1'}]}},
        ]

        response = asyncio.run(self.client.import_draft('a'))

        assert response.success is True
        assert self.http.job_status.call_count == 3

    def test_job_polling_times_out(self):
        self.http.job_status.return_value = {'status': 'working'}

        response = asyncio.run(self.client.import_draft('a'))

        assert response.success is False
        assert response.error == 'Job status polling timed out'

    def test_failed_job_reports_error(self):
        self.http.job_status.return_value = {
            'status': 'failed', 'result': {'errors': ['Summary too long', 'Bad type']},
        }

        response = asyncio.run(self.client.import_draft('a'))

        assert response.success is False
        assert response.error == 'Summary too long, Bad type'

    def test_missing_job_id(self):
        self.http.bulk_import.return_value = {}

        response = asyncio.run(self.client.import_draft('a'))

        assert response.error == 'Import completed but no jobId returned'

    def test_http_error_message(self):
        self.http.bulk_import.side_effect = requests.HTTPError(
            response=_response({'error': 'Quota exceeded'}, status_code=429)
        )

        response = asyncio.run(self.client.import_draft('a'))

        assert response.success is False
        assert response.error == 'Import failed: Quota exceeded'

    def test_refuses_incomplete_and_imported_drafts(self):
        incomplete = asyncio.run(self.client.import_draft('c'))
        imported = asyncio.run(self.client.import_draft('d'))
        missing = asyncio.run(self.client.import_draft('zzz'))

        assert incomplete.error.startswith('Cannot import incomplete test case')
        assert imported.error.startswith('Test case already imported')
        assert missing.error == 'Draft zzz not found'
        self.http.bulk_import.assert_not_called()

    def test_project_key_required(self):
        self.store.add(complete_draft("e", project_key=None))

        response = asyncio.run(self.client.import_draft('e'))

        assert response.error == 'No project key specified'

    def test_bulk_import_submits_one_payload(self):
        self.http.job_status.return_value = {
            'status': 'successful',
            'result': {'issues': [{'id': '1', 'key': 'PROJ-1'}, {'id': '2', 'key': 'PROJ-2'}]},
        }

        response = asyncio.run(self.client.bulk_import(['a', 'b']))

        assert response.success is True
        assert response.draft_ids == ['a', 'b']
        assert response.test_keys == ['PROJ-1', 'PROJ-2']
        assert response.test_key is None
        payload = self.http.bulk_import.call_args[0][0]
        assert [t['fields']['summary'] for t in payload] == ['Login works', 'Logout works']

    def test_bulk_import_without_ids(self):
        response = asyncio.run(self.client.bulk_import([]))
        assert response.error == 'No draft IDs provided'

    def test_fetch_entities(self):
        self.http.graphql.return_value = {'getTestPlans': {'total': 1, 'results': [
            {'issueId': '1001', 'jira': {'key': 'PROJ-1', 'summary': 'Release plan'}},
        ]}}

        result = asyncio.run(self.client.fetch_entities(EntityType.TEST_PLANS, 'PROJ'))

        assert result.items[0].issue_id == '1001'
        assert result.items[0].display == 'PROJ-1: Release plan'
        variables = self.http.graphql.call_args[0][1]
        assert variables == {'jql': "project = 'PROJ'", 'limit': 100}

    def test_fetch_folders_resolves_project_id(self):
        self.http.graphql.side_effect = [
            {'getProjectSettings': {'projectId': '10001'}},
            {'getFolder': {'name': '', 'path': '/', 'testsCount': 0,
                           'folders': [{'name': 'Auth', 'path': '/Auth'}]}},
        ]

        result = asyncio.run(self.client.fetch_entities(EntityType.FOLDERS, 'PROJ'))

        assert result.project_id == '10001'
        assert result.items[0].path == '/'

    def test_unresolvable_project_raises(self):
        self.http.graphql.return_value = {'getProjectSettings': None}

        with pytest.raises(XrayApiError):
            asyncio.run(self.client.fetch_entities(EntityType.FOLDERS, 'PROJ'))

    def test_link_all_targets(self):
        self.http.graphql.return_value = {}
        linking = XrayLinking(
            test_plan_ids=['1001'],
            test_execution_ids=['2001'],
            test_set_ids=['3001'],
            precondition_ids=['4001'],
            folder_path='/Auth',
            project_id='10001',
        )

        response = asyncio.run(self.client.link_test_to_entities('50001', linking, 'PROJ'))

        assert response.warnings == []
        assert self.http.graphql.call_count == 5
        assert response.results['testPlans'][0]['success'] is True

    def test_link_failures_become_warnings(self):
        def graphql(query, variables):
            if 'addTestsToTestSet' in query:
                raise XrayApiError('Test Set is closed')
            if 'getProjectSettings' in query:
                raise requests.ConnectionError('offline')
            return {'addTestsToTestPlan': {'warning': 'already linked'}}

        self.http.graphql.side_effect = graphql
        linking = XrayLinking(test_plan_ids=['1001'], test_set_ids=['3001'], folder_path='/Auth')

        response = asyncio.run(self.client.link_test_to_entities('50001', linking, 'PROJ'))

        assert response.warnings == [
            'Folder linking skipped: could not resolve the project ID',
            'Test Plan 1001: already linked',
            'Test Set 3001 linking failed: Test Set is closed',
        ]
        assert response.results['testSets'][0]['success'] is False

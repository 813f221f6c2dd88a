"""
Xray API client used by the draft engine.

Adapts the blocking XrayHttpClient to the async IXrayClient interface: entity
queries, single and bulk import with job polling, and linking of imported
tests to plans, executions, sets, folders and preconditions.
"""
import asyncio
from typing import Any, Dict, List, Optional

import requests

from raydrop.core.domain.draft import Draft, XrayLinking
from raydrop.core.domain.entities import EntityFetchResult, EntityType, FolderNode, XrayEntity
from raydrop.core.domain.results import ImportResponse, LinkResponse
from raydrop.core.interfaces.repository import IDraftStore, IXrayClient
from raydrop.core.services.logger import get_logger
from raydrop.core.services.validators import is_complete
from .http_client import XrayApiError, XrayHttpClient

logger = get_logger("xray_client")

ENTITY_LIMIT = 100

_ENTITY_QUERIES = {
    EntityType.TEST_PLANS: "getTestPlans",
    EntityType.TEST_EXECUTIONS: "getTestExecutions",
    EntityType.TEST_SETS: "getTestSets",
    EntityType.PRECONDITIONS: "getPreconditions",
}

ENTITY_QUERY = """
query Get($jql: String!, $limit: Int!) {
  %s(jql: $jql, limit: $limit) {
    total
    results {
      issueId
      jira(fields: ["key", "summary"])
    }
  }
}
"""

PROJECT_SETTINGS_QUERY = """
query GetProjectSettings($projectIdOrKey: String!) {
  getProjectSettings(projectIdOrKey: $projectIdOrKey) {
    projectId
  }
}
"""

FOLDER_QUERY = """
query GetFolder($projectId: String!, $path: String!) {
  getFolder(projectId: $projectId, path: $path) {
    name
    path
    testsCount
    folders
  }
}
"""

ADD_TESTS_MUTATION = """
mutation Add($issueId: String!, $testIssueIds: [String]!) {
  %s(issueId: $issueId, testIssueIds: $testIssueIds) {
    addedTests
    warning
  }
}
"""

ADD_TESTS_TO_FOLDER_MUTATION = """
mutation AddTestsToFolder($projectId: String!, $path: String!, $testIssueIds: [String]!) {
  addTestsToFolder(projectId: $projectId, path: $path, testIssueIds: $testIssueIds) {
    folder {
      name
      path
      testsCount
    }
    warnings
  }
}
"""

ADD_PRECONDITIONS_MUTATION = """
mutation AddPreconditionsToTest($issueId: String!, $preconditionIssueIds: [String]!) {
  addPreconditionsToTest(issueId: $issueId, preconditionIssueIds: $preconditionIssueIds) {
    addedPreconditions
    warning
  }
}
"""

# (mutation, linking attribute, results key, label used in warnings)
_LINK_TARGETS = (
    ('addTestsToTestPlan', 'test_plan_ids', 'testPlans', 'Test Plan'),
    ('addTestsToTestExecution', 'test_execution_ids', 'testExecutions', 'Test Execution'),
    ('addTestsToTestSet', 'test_set_ids', 'testSets', 'Test Set'),
)


def _error_message(error: Exception) -> str:
    """Best human readable message of a transport or API error."""
    if isinstance(error, requests.HTTPError) and error.response is not None:
        try:
            body = error.response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get('error'):
            return str(body['error'])
    return str(error)


def to_bulk_import_format(drafts: List[Draft], project_key: str) -> List[Dict[str, Any]]:
    """Convert drafts to the Xray bulk-import payload."""
    return [
        {
            'testtype': draft.test_type or 'Manual',
            'fields': {
                'summary': draft.summary,
                'project': {'key': project_key},
                'description': draft.description or '',
                'labels': list(draft.labels),
            },
            'steps': [
                {'action': s.action or '', 'data': s.data or '', 'result': s.result or ''}
                for s in draft.steps
            ],
        }
        for draft in drafts
    ]


class XrayApiClient(IXrayClient):
    """IXrayClient implementation over Xray Cloud."""

    def __init__(
        self,
        http_client: XrayHttpClient,
        draft_store: IDraftStore,
        default_project_key: Optional[str] = None,
        job_poll_attempts: int = 30,
        job_poll_interval: float = 2.0
    ):
        """Initialize the client.

        Args:
            http_client: Low-level Xray HTTP client
            draft_store: Store the drafts to import are read from
            default_project_key: Project used when a draft carries none
            job_poll_attempts: Maximum number of job status polls
            job_poll_interval: Seconds between job status polls
        """
        self._http = http_client
        self._store = draft_store
        self._default_project_key = default_project_key
        self._poll_attempts = job_poll_attempts
        self._poll_interval = job_poll_interval

    async def _graphql(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        return await asyncio.to_thread(self._http.graphql, query, variables)

    # Entities

    async def get_project_id(self, project_key: str) -> str:
        """Resolve a project key to Xray's internal project id.

        Raises:
            XrayApiError: If the project cannot be resolved
        """
        data = await self._graphql(PROJECT_SETTINGS_QUERY, {'projectIdOrKey': project_key})
        project_id = (data.get('getProjectSettings') or {}).get('projectId')
        if not project_id:
            raise XrayApiError(f"Could not resolve project ID for {project_key}")
        return str(project_id)

    async def fetch_entities(self, entity_type: EntityType, project_key: str) -> EntityFetchResult:
        """Fetch linking candidates; errors propagate to the caller.

        Args:
            entity_type: Entity type to fetch
            project_key: Jira project key

        Returns:
            EntityFetchResult (folders also carry the resolved project id)
        """
        if entity_type is EntityType.FOLDERS:
            project_id = await self.get_project_id(project_key)
            data = await self._graphql(FOLDER_QUERY, {'projectId': project_id, 'path': '/'})
            folder = data.get('getFolder')
            items = [FolderNode.from_dict(folder)] if isinstance(folder, dict) else []
            return EntityFetchResult(items=items, project_id=project_id)

        name = _ENTITY_QUERIES[entity_type]
        data = await self._graphql(
            ENTITY_QUERY % name,
            {'jql': f"project = '{project_key}'", 'limit': ENTITY_LIMIT}
        )
        results = (data.get(name) or {}).get('results') or []
        items = []
        for result in results:
            jira = result.get('jira') or {}
            items.append(XrayEntity(
                issue_id=str(result.get('issueId') or ''),
                key=str(jira.get('key') or ''),
                summary=str(jira.get('summary') or ''),
            ))
        return EntityFetchResult(items=items)

    # Import

    async def _load_drafts(self, draft_ids: List[str]) -> List[Draft]:
        """Read and check the drafts to import.

        Raises:
            XrayApiError: If a draft is missing, imported or incomplete
        """
        drafts = []
        for draft_id in draft_ids:
            result = await self._store.get(draft_id)
            if not result.success or result.draft is None:
                raise XrayApiError(f"Draft {draft_id} not found")
            draft = result.draft
            if draft.is_imported:
                raise XrayApiError(f"Test case already imported: {draft.summary or draft_id}")
            if not is_complete(draft):
                raise XrayApiError(f"Cannot import incomplete test case: {draft.summary or draft_id}")
            drafts.append(draft)
        return drafts

    async def _wait_for_job(self, job_id: str) -> Dict[str, Any]:
        """Poll a bulk-import job until it succeeds, fails or polling runs out.

        Returns:
            Dict with `test_issue_ids` and `test_keys`

        Raises:
            XrayApiError: If the job failed or never finished
        """
        for attempt in range(self._poll_attempts):
            body = await asyncio.to_thread(self._http.job_status, job_id)
            status = body.get('status')
            result = body.get('result') or {}

            if status == 'successful':
                issues = result.get('issues') or result.get('createdIssues') or []
                return {
                    'test_issue_ids': [str(i.get('id')) for i in issues if i.get('id')],
                    'test_keys': [str(i.get('key')) for i in issues if i.get('key')],
                }
            if status == 'failed':
                if isinstance(result, dict):
                    errors = result.get('errors')
                    message = (
                        result.get('error')
                        or result.get('message')
                        or (', '.join(str(e) for e in errors) if isinstance(errors, list) else None)
                    )
                else:
                    message = str(result)
                raise XrayApiError(message or 'Import job failed')

            logger.debug("import_job_pending", job_id=job_id, status=status, attempt=attempt + 1)
            await asyncio.sleep(self._poll_interval)

        raise XrayApiError('Job status polling timed out')

    async def _import(self, draft_ids: List[str]) -> ImportResponse:
        if not draft_ids:
            return ImportResponse(success=False, error='No draft IDs provided')

        try:
            drafts = await self._load_drafts(draft_ids)
        except XrayApiError as e:
            return ImportResponse(success=False, draft_ids=list(draft_ids), error=str(e))

        project_key = drafts[0].project_key or self._default_project_key
        if not project_key:
            return ImportResponse(success=False, draft_ids=list(draft_ids), error='No project key specified')

        payload = to_bulk_import_format(drafts, project_key)
        try:
            body = await asyncio.to_thread(self._http.bulk_import, payload)
        except (requests.RequestException, XrayApiError) as e:
            logger.warning("xray_import_failed", count=len(draft_ids), error=_error_message(e))
            return ImportResponse(
                success=False, draft_ids=list(draft_ids), error=f"Import failed: {_error_message(e)}"
            )

        job_id = body.get('jobId') if isinstance(body, dict) else None
        if not job_id:
            return ImportResponse(
                success=False, draft_ids=list(draft_ids), error='Import completed but no jobId returned'
            )

        try:
            job = await self._wait_for_job(job_id)
        except (requests.RequestException, XrayApiError) as e:
            logger.warning("xray_import_job_failed", job_id=job_id, error=_error_message(e))
            return ImportResponse(
                success=False, job_id=job_id, draft_ids=list(draft_ids), error=_error_message(e)
            )

        logger.info("xray_import_job_completed", job_id=job_id, tests=len(job['test_keys']))
        return ImportResponse(
            success=True,
            job_id=job_id,
            draft_ids=list(draft_ids),
            test_keys=job['test_keys'],
            test_issue_ids=job['test_issue_ids'],
            test_issue_id=job['test_issue_ids'][0] if job['test_issue_ids'] else None,
            test_key=job['test_keys'][0] if job['test_keys'] else None,
        )

    async def import_draft(self, draft_id: str) -> ImportResponse:
        return await self._import([draft_id])

    async def bulk_import(self, draft_ids: List[str]) -> ImportResponse:
        response = await self._import(list(draft_ids))
        if response.success:
            # The created test of a batch is not attributed to a single draft
            response.test_issue_id = None
            response.test_key = None
        return response

    # Linking

    async def link_test_to_entities(
        self,
        test_issue_id: str,
        linking: XrayLinking,
        project_key: Optional[str] = None
    ) -> LinkResponse:
        """Link an imported test; every failure becomes a warning.

        Args:
            test_issue_id: Issue id of the imported test
            linking: Linking selection of the draft
            project_key: Used to resolve the project id for folder placement

        Returns:
            LinkResponse with per-target results and warnings
        """
        response = LinkResponse(results={
            'testPlans': [], 'testExecutions': [], 'testSets': [],
            'folder': None, 'preconditions': None,
        })
        warnings = response.warnings

        project_id = linking.project_id
        if not project_id and project_key and linking.folder_path:
            try:
                project_id = await self.get_project_id(project_key)
            except (requests.RequestException, XrayApiError):
                warnings.append('Folder linking skipped: could not resolve the project ID')

        for mutation, attribute, results_key, label in _LINK_TARGETS:
            for entity_id in getattr(linking, attribute):
                try:
                    data = await self._graphql(
                        ADD_TESTS_MUTATION % mutation,
                        {'issueId': entity_id, 'testIssueIds': [test_issue_id]}
                    )
                    result = data.get(mutation) or {}
                    response.results[results_key].append({'id': entity_id, 'success': True, 'result': result})
                    if result.get('warning'):
                        warnings.append(f"{label} {entity_id}: {result['warning']}")
                except (requests.RequestException, XrayApiError) as e:
                    response.results[results_key].append(
                        {'id': entity_id, 'success': False, 'error': _error_message(e)}
                    )
                    warnings.append(f"{label} {entity_id} linking failed: {_error_message(e)}")

        if project_id and linking.folder_path:
            try:
                data = await self._graphql(
                    ADD_TESTS_TO_FOLDER_MUTATION,
                    {'projectId': project_id, 'path': linking.folder_path, 'testIssueIds': [test_issue_id]}
                )
                folder = data.get('addTestsToFolder') or {}
                response.results['folder'] = folder
                if folder.get('warnings'):
                    warnings.append(f"Folder: {', '.join(folder['warnings'])}")
            except (requests.RequestException, XrayApiError) as e:
                warnings.append(f"Folder linking failed: {_error_message(e)}")

        if linking.precondition_ids:
            try:
                data = await self._graphql(
                    ADD_PRECONDITIONS_MUTATION,
                    {'issueId': test_issue_id, 'preconditionIssueIds': list(linking.precondition_ids)}
                )
                preconditions = data.get('addPreconditionsToTest') or {}
                response.results['preconditions'] = preconditions
                if preconditions.get('warning'):
                    warnings.append(f"Preconditions: {preconditions['warning']}")
            except (requests.RequestException, XrayApiError) as e:
                warnings.append(f"Preconditions linking failed: {_error_message(e)}")

        return response

"""
Xray HTTP Client - Low-level HTTP interactions with Xray Cloud.

This class handles only HTTP concerns: authentication, the GraphQL endpoint
and the bulk-import REST endpoints. It knows nothing about drafts.
"""
import time
from typing import Any, Dict, List, Optional

import requests

from raydrop.config import XRAY_BASE_URL

TOKEN_EXPIRY_HOURS = 24
TOKEN_REFRESH_BUFFER_MINUTES = 30


class XrayApiError(Exception):
    """Raised when Xray answers a request with an application-level error."""


class XrayHttpClient:
    """Low-level HTTP client for the Xray Cloud API."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        base_url: str = XRAY_BASE_URL,
        timeout: int = 30,
        import_timeout: int = 60
    ):
        """Initialize Xray HTTP client.

        Args:
            client_id: Xray API client id
            client_secret: Xray API client secret
            base_url: Xray Cloud URL
            timeout: Request timeout in seconds
            import_timeout: Timeout of the bulk-import request in seconds
        """
        if not client_id:
            raise ValueError("Xray client ID is required")
        if not client_secret:
            raise ValueError("Xray client secret is required")

        self._client_id = client_id
        self._client_secret = client_secret
        self._base_url = base_url.rstrip('/')
        self._timeout = timeout
        self._import_timeout = import_timeout
        self._token: Optional[str] = None
        self._token_timestamp: float = 0.0

    @property
    def base_url(self) -> str:
        """Base URL for API calls."""
        return self._base_url

    @property
    def auth_url(self) -> str:
        return f"{self._base_url}/api/v2/authenticate"

    @property
    def graphql_url(self) -> str:
        return f"{self._base_url}/api/v2/graphql"

    @property
    def bulk_import_url(self) -> str:
        return f"{self._base_url}/api/v1/import/test/bulk"

    def is_token_valid(self) -> bool:
        """The cached token is younger than its lifetime minus the refresh buffer."""
        if not self._token:
            return False
        max_age = (TOKEN_EXPIRY_HOURS * 60 - TOKEN_REFRESH_BUFFER_MINUTES) * 60
        return time.time() - self._token_timestamp < max_age

    def authenticate(self, force: bool = False) -> str:
        """Get a bearer token, cached until shortly before it expires.

        Args:
            force: Request a fresh token even if the cached one is valid

        Returns:
            Bearer token

        Raises:
            requests.HTTPError: If the credentials are rejected
        """
        if not force and self.is_token_valid():
            return self._token

        response = requests.post(
            self.auth_url,
            json={'client_id': self._client_id, 'client_secret': self._client_secret},
            headers={'Content-Type': 'application/json'},
            timeout=self._timeout
        )
        response.raise_for_status()

        # Xray answers with the token as a JSON string
        token = response.json()
        if not token:
            raise XrayApiError("Authentication failed: No token received")
        self._token = str(token)
        self._token_timestamp = time.time()
        return self._token

    def _headers(self) -> Dict[str, str]:
        return {
            'Authorization': f'Bearer {self.authenticate()}',
            'Content-Type': 'application/json',
        }

    def graphql(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Execute a GraphQL query or mutation.

        Args:
            query: GraphQL document
            variables: Query variables

        Returns:
            The `data` member of the response

        Raises:
            requests.HTTPError: If request fails
            XrayApiError: If the response carries GraphQL errors
        """
        response = requests.post(
            self.graphql_url,
            json={'query': query, 'variables': variables or {}},
            headers=self._headers(),
            timeout=self._timeout
        )
        response.raise_for_status()
        body = response.json()

        errors = body.get('errors')
        if errors:
            first = errors[0] if isinstance(errors[0], dict) else {}
            raise XrayApiError(first.get('message') or 'GraphQL error')
        return body.get('data') or {}

    def bulk_import(self, tests: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Submit tests to the bulk-import endpoint.

        Args:
            tests: Tests in Xray bulk-import format

        Returns:
            Response body (carries `jobId`)
        """
        response = requests.post(
            self.bulk_import_url,
            json=tests,
            headers=self._headers(),
            timeout=self._import_timeout
        )
        response.raise_for_status()
        return response.json()

    def job_status(self, job_id: str) -> Dict[str, Any]:
        """Get the status of a bulk-import job.

        Args:
            job_id: Job id returned by `bulk_import`

        Returns:
            Response body with `status` and `result`
        """
        response = requests.get(
            f"{self.bulk_import_url}/{job_id}/status",
            headers=self._headers(),
            timeout=self._timeout
        )
        response.raise_for_status()
        return response.json()

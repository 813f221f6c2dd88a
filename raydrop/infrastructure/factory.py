"""
Factory wiring the draft engine from configuration.

Creates the concrete store and Xray client and assembles an authoring session
over them.
"""
from typing import Callable, Optional

from raydrop.config import AppConfig
from raydrop.core.interfaces.repository import IDraftStore, IXrayClient
from raydrop.core.services.authoring_session import AuthoringSession
from raydrop.core.services.draft_lifecycle import DraftLifecycleController
from raydrop.core.services.migration import LegacyMigrator
from .storage.file_draft_store import FileDraftStore
from .xray.http_client import XrayHttpClient
from .xray.xray_client import XrayApiClient


def create_draft_store(config: AppConfig) -> IDraftStore:
    """Create the file-based draft store."""
    return FileDraftStore(drafts_dir=config.storage.drafts_dir)


def create_xray_client(config: AppConfig, store: IDraftStore) -> IXrayClient:
    """Create the Xray client.

    Args:
        config: Application configuration
        store: Store the client reads drafts from when importing

    Returns:
        Xray client implementation

    Raises:
        ValueError: If Xray credentials are missing
    """
    if not config.xray.is_complete():
        raise ValueError(
            "Xray configuration incomplete. Set XRAY_CLIENT_ID, XRAY_CLIENT_SECRET "
            "and JIRA_BASE_URL in your environment or .env file."
        )
    http_client = XrayHttpClient(
        client_id=config.xray.client_id,
        client_secret=config.xray.client_secret,
        base_url=config.xray.base_url,
        timeout=config.xray.timeout,
        import_timeout=config.xray.import_timeout
    )
    return XrayApiClient(
        http_client,
        store,
        default_project_key=config.active_project,
        job_poll_attempts=config.xray.job_poll_attempts,
        job_poll_interval=config.xray.job_poll_interval
    )


def create_migrator(config: AppConfig, store: IDraftStore) -> LegacyMigrator:
    return LegacyMigrator(store, config.storage.legacy_file)


def create_session(
    config: Optional[AppConfig] = None,
    notify: Optional[Callable[[str], None]] = None,
    store: Optional[IDraftStore] = None,
    xray_client: Optional[IXrayClient] = None
) -> AuthoringSession:
    """Assemble an authoring session.

    Args:
        config: Application configuration (loaded from the environment if omitted)
        notify: Callback receiving user-visible messages
        store: Draft store override
        xray_client: Xray client override

    Returns:
        AuthoringSession ready to `start()`
    """
    config = config or AppConfig.load()
    store = store or create_draft_store(config)
    xray_client = xray_client or create_xray_client(config, store)
    lifecycle = DraftLifecycleController(store, notify=notify)
    return AuthoringSession(lifecycle, xray_client, active_project=config.active_project)

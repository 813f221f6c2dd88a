"""
Infrastructure layer - implementations of interfaces.

Contains:
- storage: file-based draft store
- xray: Xray Cloud HTTP and API clients
- factory: wiring from configuration
"""
from .storage import FileDraftStore
from .xray import XrayApiClient, XrayApiError, XrayHttpClient
from .factory import create_draft_store, create_migrator, create_session, create_xray_client

__all__ = [
    'FileDraftStore',
    'XrayApiClient',
    'XrayApiError',
    'XrayHttpClient',
    'create_draft_store',
    'create_migrator',
    'create_session',
    'create_xray_client',
]

"""
Xray infrastructure module.

Provides the HTTP client and the IXrayClient implementation for Xray Cloud.
"""
from .http_client import XrayApiError, XrayHttpClient
from .xray_client import XrayApiClient

__all__ = ['XrayApiError', 'XrayHttpClient', 'XrayApiClient']

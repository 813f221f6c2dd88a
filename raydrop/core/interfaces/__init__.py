"""
Interfaces (abstract base classes) for dependency inversion.
"""
from .repository import IDraftStore, IXrayClient

__all__ = [
    'IDraftStore',
    'IXrayClient',
]

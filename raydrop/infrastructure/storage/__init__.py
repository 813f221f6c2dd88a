"""
Local draft storage.
"""
from .file_draft_store import FileDraftStore

__all__ = ['FileDraftStore']

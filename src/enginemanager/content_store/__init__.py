"""
Content store management.

This package handles:
1. The interface the engine manager uses to record installed engines and modules
2. A JSON-file reference adapter that persists those records atomically
"""

from .content_store import ContentStore, ContentStoreData, JsonContentStore

__all__ = ["ContentStore", "ContentStoreData", "JsonContentStore"]

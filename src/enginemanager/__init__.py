"""
enginemanager resolves, downloads, verifies and installs game engine builds and
engine modules published through remote manifests.
"""

from enginemanager.cancellation import CancellationToken
from enginemanager.content_store import ContentStore, JsonContentStore
from enginemanager.engine_downloader import EngineManager, SignatureVerifier
from enginemanager.enginemanager_config import EngineManagerConfig
from enginemanager.enginemanager_logger import EngineManagerLogger

__all__ = [
    "CancellationToken",
    "ContentStore",
    "JsonContentStore",
    "EngineManager",
    "SignatureVerifier",
    "EngineManagerConfig",
    "EngineManagerLogger",
]

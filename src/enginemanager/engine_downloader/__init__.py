"""
Engine and engine module downloader.

This package handles:
1. Fetching the engine build and module manifests
2. Resolving the module version and platform build to install
3. Streaming downloads with cancellation
4. Verifying module signatures
5. Installing into the content store and housekeeping
"""

from .downloader import ArtifactDownloader, ProgressCallback
from .engine_manager import CullResult, EngineManager
from .manifest_client import ManifestClient
from .module_resolver import resolve_module_version
from .signature import SignatureVerifier

__all__ = [
    "ArtifactDownloader",
    "ProgressCallback",
    "CullResult",
    "EngineManager",
    "ManifestClient",
    "resolve_module_version",
    "SignatureVerifier",
]

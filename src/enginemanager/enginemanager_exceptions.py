"""
This module contains the exceptions raised by the enginemanager framework.
"""

from typing import List, Optional


class EngineManagerException(Exception):
    """
    Base exception for all enginemanager errors
    """

    def __init__(self, message: str):
        super().__init__(message)


class ManifestFetchError(EngineManagerException):
    """Raised when a manifest could not be retrieved over the network."""


class ManifestDecodeError(EngineManagerException):
    """Raised when a manifest response body is not valid JSON."""


class ManifestSchemaError(ManifestDecodeError):
    """
    Raised when a manifest is syntactically valid JSON but does not match the
    expected schema, e.g. a required field is missing.
    """


class UnknownVersionError(EngineManagerException):
    """Raised when an engine version is not present in the manifest or the store."""


class InsecureVersionError(EngineManagerException):
    """Raised when the manifest flags the requested engine version as insecure."""


class UnsupportedPlatformError(EngineManagerException):
    """Raised when no artifact in a platform map matches the host platform."""


class ModuleResolutionError(EngineManagerException):
    """Raised when no module version is compatible with an engine version."""


class SignatureVerificationError(EngineManagerException):
    """Raised when a downloaded artifact fails Ed25519 verification."""


class ArtifactTooLargeError(EngineManagerException):
    """Raised when an artifact exceeds the size the verifier can map."""


class ArtifactDownloadError(EngineManagerException):
    """Raised when an artifact stream fails at the transport level."""


class FilesystemError(EngineManagerException):
    """Raised on I/O failures while staging, extracting or deleting artifacts."""


class ClearEnginesError(FilesystemError):
    """
    Raised by a bulk clear when one or more paths could not be deleted. Every
    other path was still processed.
    """

    def __init__(self, message: str, failed_paths: Optional[List[str]] = None):
        super().__init__(message)
        self.failed_paths = failed_paths or []

"""
Manifest and installation models for the engine manager.

This package provides Pydantic data models for parsing the remote engine
build and module manifests, and for the records the content store keeps
about installed engines and modules.
"""

from .manifests import (
    BuildArtifact,
    EngineVersionInfo,
    EngineManifest,
    ModuleVersionInfo,
    ModuleInfo,
    ModuleManifest,
)
from .installations import (
    InstalledEngineVersion,
    InstalledEngineModule,
)

__all__ = [
    # Manifests
    "BuildArtifact",
    "EngineVersionInfo",
    "EngineManifest",
    "ModuleVersionInfo",
    "ModuleInfo",
    "ModuleManifest",
    # Installations
    "InstalledEngineVersion",
    "InstalledEngineModule",
]

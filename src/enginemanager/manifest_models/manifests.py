"""
Pydantic data models for the engine build manifest and the engine module manifest.

Engine build manifest structure:
{
  "0.7.6": {
    "insecure": false,
    "platforms": {
      "linux-x64": {"url": "...", "sha256": "...", "sig": "<hex>"},
      "win-x64": {...}
    }
  },
  ...
}

Module manifest structure:
{
  "modules": {
    "Robust.Client.WebView": {
      "versions": {
        "1.0.0": {"platforms": {"linux-x64": {"url": "...", "sha256": "...", "sig": "<hex>"}}}
      }
    }
  }
}
"""

from typing import Any, Dict, Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field, RootModel


class BuildArtifact(BaseModel):
    """
    One downloadable file for one (version, platform) pair.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    url: str = Field(..., description="URL to download the artifact from")
    content_digest: str = Field(..., alias="sha256", description="Hex SHA-256 of the artifact")
    signature: str = Field(..., alias="sig", description="Hex Ed25519 signature over the artifact")


class EngineVersionInfo(BaseModel):
    """
    A single engine version entry of the build manifest.
    """

    model_config = ConfigDict(frozen=True)

    insecure: bool = Field(False, description="Versions flagged insecure must never be installed")
    platforms: Dict[str, BuildArtifact] = Field(..., description="Artifacts keyed by platform id")


class EngineManifest(RootModel[Dict[str, EngineVersionInfo]]):
    """
    Complete engine build manifest, keyed by engine version.
    """

    model_config = ConfigDict(frozen=True)

    def __contains__(self, version: str) -> bool:
        return version in self.root

    def __iter__(self) -> Iterator[str]:
        return iter(self.root)

    def __len__(self) -> int:
        return len(self.root)

    def get(self, version: str) -> Optional[EngineVersionInfo]:
        return self.root.get(version)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineManifest":
        return cls.model_validate(data)


class ModuleVersionInfo(BaseModel):
    """
    A single version of an engine module.
    """

    model_config = ConfigDict(frozen=True)

    platforms: Dict[str, BuildArtifact] = Field(..., description="Artifacts keyed by platform id")


class ModuleInfo(BaseModel):
    """
    All published versions of one engine module. Version keys are the minimum
    engine version each module version is compatible with.
    """

    model_config = ConfigDict(frozen=True)

    versions: Dict[str, ModuleVersionInfo] = Field(..., description="Module versions keyed by version string")


class ModuleManifest(BaseModel):
    """
    Complete engine module manifest.
    """

    model_config = ConfigDict(frozen=True)

    modules: Dict[str, ModuleInfo] = Field(..., description="Modules keyed by module name")

    def get_module(self, module_name: str) -> Optional[ModuleInfo]:
        return self.modules.get(module_name)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModuleManifest":
        return cls.model_validate(data)

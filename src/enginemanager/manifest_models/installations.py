"""
Records of what is installed in the local content store.
"""

from pydantic import BaseModel, ConfigDict, Field


class InstalledEngineVersion(BaseModel):
    """An engine build present as `{version}.zip`; unique per version."""

    model_config = ConfigDict(frozen=True)

    version: str = Field(..., description="Engine version string")
    signature: str = Field(..., description="Hex Ed25519 signature from the manifest, kept for later verification")


class InstalledEngineModule(BaseModel):
    """An extracted engine module; unique per (name, version)."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str

    def __str__(self) -> str:
        return f"{self.name} {self.version}"

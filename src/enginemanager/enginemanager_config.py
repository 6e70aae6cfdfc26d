"""
Configuration parameters for enginemanager.
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

try:
    import tomllib
except ModuleNotFoundError:
    # Python < 3.11
    import tomli as tomllib

from enginemanager.enginemanager_exceptions import EngineManagerException
from enginemanager.enginemanager_settings import EngineManagerSettings

DEFAULT_ENGINE_BUILDS_MANIFEST_URL = "https://robust-builds.cdn.spacestation14.com/manifest.json"
DEFAULT_MODULES_MANIFEST_URL = "https://robust-builds.cdn.spacestation14.com/modules.json"
DEFAULT_DOWNLOAD_CHUNK_SIZE = 64 * 1024


@dataclass
class EngineManagerConfig:
    """
    Configuration parameters
    """

    engine_builds_manifest_url: str = DEFAULT_ENGINE_BUILDS_MANIFEST_URL
    modules_manifest_url: str = DEFAULT_MODULES_MANIFEST_URL
    engine_installations_dir: Optional[str] = None
    module_installations_dir: Optional[str] = None
    download_chunk_size: int = DEFAULT_DOWNLOAD_CHUNK_SIZE
    # Culling of installs no longer referenced by server content is opt-in.
    enable_culling: bool = False
    # File holding the hex Ed25519 key that module archives are verified against.
    # The built-in key is used when unset.
    public_key_path: Optional[str] = None

    def __post_init__(self):
        if self.engine_installations_dir is None:
            self.engine_installations_dir = EngineManagerSettings.get_engine_installations_directory()
        if self.module_installations_dir is None:
            self.module_installations_dir = EngineManagerSettings.get_module_installations_directory()

    def validate(self) -> None:
        """
        Validate the configuration.

        Raises:
            EngineManagerException: If a value is out of range or malformed
        """
        for name in ("engine_builds_manifest_url", "modules_manifest_url"):
            url = getattr(self, name)
            if not isinstance(url, str) or not url.startswith(("http://", "https://")):
                raise EngineManagerException(f"'{name}' must be an http(s) URL, got {url!r}")

        if not isinstance(self.download_chunk_size, int) or self.download_chunk_size <= 0:
            raise EngineManagerException("'download_chunk_size' must be a positive integer")

        if self.public_key_path is not None and not isinstance(self.public_key_path, str):
            raise EngineManagerException("'public_key_path' must be a path")

        if os.path.abspath(self.engine_installations_dir) == os.path.abspath(self.module_installations_dir):
            raise EngineManagerException(
                "Engine and module installation directories must be distinct"
            )

    @classmethod
    def from_dict(cls, env: Dict[str, Any]) -> "EngineManagerConfig":
        """
        Create an EngineManagerConfig instance from a dictionary

        Raises:
            EngineManagerException: If configuration is invalid
        """
        known = set(cls.__dataclass_fields__.keys())
        unknown = set(env.keys()) - known
        if unknown:
            raise EngineManagerException(f"Unknown configuration keys: {sorted(unknown)}")

        instance = cls(**env)
        instance.validate()
        return instance

    @classmethod
    def from_toml(cls, path: str) -> "EngineManagerConfig":
        """
        Load the `[enginemanager]` table of a TOML file.

        Raises:
            EngineManagerException: If the file is missing, malformed or invalid
        """
        try:
            with open(path, "rb") as f:
                toml_dict = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise EngineManagerException(f"Failed to load configuration from {path}: {e}") from e

        return cls.from_dict(toml_dict.get("enginemanager", {}))

"""
Content store adapter.

Tracks which engine versions and engine modules are installed. The engine
manager only ever talks to the `ContentStore` protocol; `JsonContentStore` is
a reference adapter that keeps the records in a single JSON document.
"""

import contextlib
import os
import pathlib
from typing import Dict, List, Optional, Protocol, Tuple

from pydantic import BaseModel, Field, ValidationError

from enginemanager.enginemanager_exceptions import EngineManagerException, FilesystemError
from enginemanager.manifest_models import InstalledEngineModule, InstalledEngineVersion


class ContentStore(Protocol):
    """
    Interface the engine manager requires from the persisted configuration store.

    Changes made through the add/remove methods are pending until `commit()`
    durably persists them.
    """

    @property
    def disable_signing(self) -> bool:
        ...

    def lookup_engine_installation(self, version: str) -> Optional[InstalledEngineVersion]:
        ...

    def list_engine_installations(self) -> List[InstalledEngineVersion]:
        ...

    def add_engine_installation(self, installation: InstalledEngineVersion) -> None:
        ...

    def remove_engine_installation(self, installation: InstalledEngineVersion) -> None:
        ...

    def list_engine_modules(self) -> List[InstalledEngineModule]:
        ...

    def add_engine_module(self, module: InstalledEngineModule) -> None:
        ...

    def remove_engine_module(self, module: InstalledEngineModule) -> None:
        ...

    def commit(self) -> None:
        ...


class ContentStoreData(BaseModel):
    """
    On-disk document of the JSON content store.
    """

    engine_installations: List[InstalledEngineVersion] = Field(default_factory=list)
    engine_modules: List[InstalledEngineModule] = Field(default_factory=list)
    # Developer-only; has no effect outside development builds.
    disable_signing: bool = False


class JsonContentStore:
    """
    Content store persisted as a JSON document at `path`.

    Records are keyed by engine version and by (module name, module version),
    so adding a record with an existing key replaces it.
    """

    def __init__(self, path: str):
        """
        Load the store from `path`. A missing file yields an empty store.

        Raises:
            FilesystemError: If the file exists but cannot be read
            EngineManagerException: If the file content is not a valid store document
        """
        self.path = path
        self._engine_installations: Dict[str, InstalledEngineVersion] = {}
        self._engine_modules: Dict[Tuple[str, str], InstalledEngineModule] = {}
        self._disable_signing = False

        if os.path.exists(path):
            self._load()

    def _load(self) -> None:
        try:
            raw = pathlib.Path(self.path).read_text(encoding="utf-8")
        except OSError as e:
            raise FilesystemError(f"Unable to read content store {self.path}: {e}") from e

        try:
            data = ContentStoreData.model_validate_json(raw)
        except ValidationError as e:
            raise EngineManagerException(f"Content store {self.path} is corrupt: {e}") from e

        for installation in data.engine_installations:
            self._engine_installations[installation.version] = installation
        for module in data.engine_modules:
            self._engine_modules[(module.name, module.version)] = module
        self._disable_signing = data.disable_signing

    @property
    def disable_signing(self) -> bool:
        return self._disable_signing

    @disable_signing.setter
    def disable_signing(self, value: bool) -> None:
        self._disable_signing = value

    def lookup_engine_installation(self, version: str) -> Optional[InstalledEngineVersion]:
        return self._engine_installations.get(version)

    def list_engine_installations(self) -> List[InstalledEngineVersion]:
        return list(self._engine_installations.values())

    def add_engine_installation(self, installation: InstalledEngineVersion) -> None:
        self._engine_installations[installation.version] = installation

    def remove_engine_installation(self, installation: InstalledEngineVersion) -> None:
        self._engine_installations.pop(installation.version, None)

    def list_engine_modules(self) -> List[InstalledEngineModule]:
        return list(self._engine_modules.values())

    def add_engine_module(self, module: InstalledEngineModule) -> None:
        self._engine_modules[(module.name, module.version)] = module

    def remove_engine_module(self, module: InstalledEngineModule) -> None:
        self._engine_modules.pop((module.name, module.version), None)

    def commit(self) -> None:
        """
        Atomically write the current state to disk.

        Raises:
            FilesystemError: If the document could not be written
        """
        data = ContentStoreData(
            engine_installations=self.list_engine_installations(),
            engine_modules=self.list_engine_modules(),
            disable_signing=self._disable_signing,
        )

        tmp_path = f"{self.path}.tmp"
        try:
            parent = os.path.dirname(os.path.abspath(self.path))
            os.makedirs(parent, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(data.model_dump_json(indent=2))
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except OSError as e:
            with contextlib.suppress(OSError):
                os.unlink(tmp_path)
            raise FilesystemError(f"Unable to commit content store {self.path}: {e}") from e

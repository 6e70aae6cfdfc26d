"""
Selection of the engine module version compatible with an engine version.
"""

from typing import Optional, Tuple

from packaging.version import InvalidVersion, Version

from enginemanager.enginemanager_exceptions import ModuleResolutionError
from enginemanager.manifest_models import ModuleManifest


def resolve_module_version(manifest: ModuleManifest, module_name: str, engine_version: str) -> str:
    """
    Resolve which version of `module_name` to use with `engine_version`.

    Module version keys name the first engine version they support, so the
    newest module version that is not newer than the engine wins. Keys that
    are not valid versions are ignored. Ties between keys that parse to the
    same version are broken by the key string.

    Raises:
        ModuleResolutionError: If the module is unknown, the engine version is
            malformed, or no module version is compatible
    """
    module = manifest.get_module(module_name)
    if module is None:
        raise ModuleResolutionError(f"Unknown engine module: {module_name}")

    try:
        engine = Version(engine_version)
    except InvalidVersion:
        raise ModuleResolutionError(f"Invalid engine version: {engine_version}")

    best: Optional[Tuple[Version, str]] = None
    for key in module.versions:
        try:
            candidate = (Version(key), key)
        except InvalidVersion:
            continue

        if candidate[0] <= engine and (best is None or candidate > best):
            best = candidate

    if best is None:
        raise ModuleResolutionError(
            f"No version of module {module_name} is compatible with engine version {engine_version}"
        )

    return best[1]

"""
Provides the EngineManager, which downloads engine builds and engine modules
from the published manifests and installs them into the local content store.
"""

import asyncio
import dataclasses
import logging
import os
import shutil
import tempfile
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Iterable, List, Optional

import aiohttp

from enginemanager.cancellation import CancellationToken
from enginemanager.content_store import ContentStore
from enginemanager.engine_downloader.downloader import ArtifactDownloader, ProgressCallback
from enginemanager.engine_downloader.manifest_client import ManifestClient
from enginemanager.engine_downloader.module_resolver import resolve_module_version
from enginemanager.engine_downloader.signature import SignatureVerifier
from enginemanager.enginemanager_config import EngineManagerConfig
from enginemanager.enginemanager_exceptions import (
    ClearEnginesError,
    FilesystemError,
    InsecureVersionError,
    SignatureVerificationError,
    UnknownVersionError,
    UnsupportedPlatformError,
)
from enginemanager.enginemanager_logger import EngineManagerLogger
from enginemanager.enginemanager_settings import EngineManagerSettings
from enginemanager.enginemanager_utils import FileUtils, PlatformUtils
from enginemanager.manifest_models import (
    InstalledEngineModule,
    InstalledEngineVersion,
    ModuleManifest,
)

# Files inside a module that must be executable after extraction on Linux.
MODULE_EXECUTABLES: Dict[str, List[str]] = {
    "Robust.Client.WebView": ["Robust.Client.WebView"],
}


@dataclasses.dataclass
class CullResult:
    """
    Outcome of a culling pass
    """

    removed_engines: List[str] = dataclasses.field(default_factory=list)
    removed_modules: List[InstalledEngineModule] = dataclasses.field(default_factory=list)
    failed_paths: List[str] = dataclasses.field(default_factory=list)


class EngineManager:
    """
    Downloads engine versions and engine modules and keeps the content store in sync.

    Engine builds are stored as `{engine_installations_dir}/{version}.zip`.
    Modules are extracted to `{module_installations_dir}/{name}/{version}/`.
    A version or module counts as installed only once its record has been
    added to the store and committed, which happens after the files are in place.

    Concurrent calls for the same engine version or module version are not
    coordinated and must be serialized by the caller.
    """

    def __init__(
        self,
        config: EngineManagerConfig,
        store: ContentStore,
        session: aiohttp.ClientSession,
        logger: EngineManagerLogger,
        verifier: Optional[SignatureVerifier] = None,
    ):
        self.config = config
        self.store = store
        self.logger = logger
        if verifier is None:
            if config.public_key_path is not None:
                verifier = SignatureVerifier.from_key_file(config.public_key_path)
            else:
                verifier = SignatureVerifier()
        self.verifier = verifier
        self.manifest_client = ManifestClient(session, config, logger)
        self.downloader = ArtifactDownloader(session, logger, config.download_chunk_size)

    @classmethod
    @asynccontextmanager
    async def create(
        cls,
        config: EngineManagerConfig,
        store: ContentStore,
        logger: Optional[EngineManagerLogger] = None,
    ) -> AsyncIterator["EngineManager"]:
        """
        Creates an EngineManager that owns its HTTP session for the duration of the context.
        """
        async with aiohttp.ClientSession() as session:
            yield cls(config, store, session, logger or EngineManagerLogger())

    def get_engine_path(self, engine_version: str) -> str:
        """
        Returns the path of an installed engine archive.

        Raises:
            UnknownVersionError: If the version is not installed
        """
        if self.store.lookup_engine_installation(engine_version) is None:
            raise UnknownVersionError(f"Engine version {engine_version} is not installed")

        return self._engine_archive_path(engine_version)

    def get_engine_module_path(self, module_name: str, module_version: str) -> str:
        return os.path.join(self.config.module_installations_dir, module_name, module_version)

    def get_engine_signature(self, engine_version: str) -> str:
        installation = self.store.lookup_engine_installation(engine_version)
        if installation is None:
            raise UnknownVersionError(f"Engine version {engine_version} is not installed")

        return installation.signature

    def _engine_archive_path(self, engine_version: str) -> str:
        return os.path.join(self.config.engine_installations_dir, f"{engine_version}.zip")

    def _signing_disabled(self) -> bool:
        return self.store.disable_signing and EngineManagerSettings.is_development_build()

    async def get_module_manifest(self, cancel: Optional[CancellationToken] = None) -> ModuleManifest:
        return await self.manifest_client.fetch_module_manifest(cancel)

    async def ensure_engine_installed(
        self,
        engine_version: str,
        progress: Optional[ProgressCallback] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> bool:
        """
        Download an engine version unless it is already installed.

        The archive is stored with the signature from the manifest; it is not
        verified here. Use `verify_engine_installation` to check it later.

        Returns:
            True if a download happened, False if the version was already installed

        Raises:
            UnknownVersionError: If the version is not in the manifest
            InsecureVersionError: If the manifest flags the version as insecure
            UnsupportedPlatformError: If there is no build for this platform
            asyncio.CancelledError: If cancelled; no archive is left behind
        """
        if self.store.lookup_engine_installation(engine_version) is not None:
            # Already have the engine version, we're good.
            return False

        self.logger.log(f"Installing engine version {engine_version}...", logging.INFO)

        manifest = await self.manifest_client.fetch_engine_manifest(cancel)

        version_info = manifest.get(engine_version)
        if version_info is None:
            raise UnknownVersionError(f"Unable to find engine version {engine_version} in manifest")

        if version_info.insecure:
            raise InsecureVersionError(f"Engine version {engine_version} is insecure")

        best_platform = PlatformUtils.find_best_platform(version_info.platforms.keys())
        if best_platform is None:
            raise UnsupportedPlatformError(
                f"No build of engine version {engine_version} available for this platform"
            )

        self.logger.log(f"Selecting platform {best_platform}", logging.DEBUG)
        build = version_info.platforms[best_platform]
        self.logger.log(f"Downloading engine: {build.url}", logging.DEBUG)

        await asyncio.to_thread(FileUtils.ensure_directory_exists, self.config.engine_installations_dir)

        download_target = self._engine_archive_path(engine_version)
        try:
            target_file = open(download_target, "wb")
        except OSError as e:
            raise FilesystemError(f"Unable to create {download_target}: {e}") from e

        try:
            with target_file:
                await self.downloader.download_to_stream(build.url, target_file, progress, cancel)
        except BaseException:
            # Don't leave behind garbage.
            FileUtils.delete_file_if_exists(download_target)
            raise

        installation = InstalledEngineVersion(version=engine_version, signature=build.signature)
        self.store.add_engine_installation(installation)
        try:
            self.store.commit()
        except BaseException:
            # Installed only once the record is persisted.
            self.store.remove_engine_installation(installation)
            FileUtils.delete_file_if_exists(download_target)
            raise

        self.logger.log(f"Installed engine version {engine_version}", logging.INFO)
        return True

    async def verify_engine_installation(self, engine_version: str) -> bool:
        """
        Verify an installed engine archive against the signature recorded at install time.
        """
        path = self.get_engine_path(engine_version)
        signature = self.get_engine_signature(engine_version)
        return await asyncio.to_thread(self.verifier.verify_file, path, signature)

    async def ensure_module_installed(
        self,
        module_name: str,
        engine_version: str,
        module_manifest: ModuleManifest,
        progress: Optional[ProgressCallback] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> bool:
        """
        Download and extract the version of a module compatible with `engine_version`,
        unless it is already installed.

        The module directory is cleared before writing, the archive is staged in
        a temporary file that is always removed, and the archive signature is
        verified before anything is extracted.

        Returns:
            True if a download happened, False if the module version was already installed

        Raises:
            ModuleResolutionError: If no compatible module version exists
            UnsupportedPlatformError: If there is no build for this platform
            SignatureVerificationError: If the archive signature does not verify
            FilesystemError: If staging or extraction fails
            asyncio.CancelledError: If cancelled
        """
        self.logger.log(f"Checking to download {module_name} for engine {engine_version}", logging.DEBUG)

        selected_version = resolve_module_version(module_manifest, module_name, engine_version)
        version_data = module_manifest.modules[module_name].versions[selected_version]

        self.logger.log(f"Selected module {module_name} {selected_version}", logging.DEBUG)

        already_installed = any(
            m.name == module_name and m.version == selected_version
            for m in self.store.list_engine_modules()
        )
        if already_installed:
            self.logger.log("Already have module installed!", logging.DEBUG)
            return False

        self.logger.log(f"Installing {module_name} {selected_version}", logging.INFO)

        best_platform = PlatformUtils.find_best_platform(version_data.platforms.keys())
        if best_platform is None:
            raise UnsupportedPlatformError(
                f"No build of module {module_name} {selected_version} available for this platform"
            )

        self.logger.log(f"Selecting platform {best_platform}", logging.DEBUG)
        artifact = version_data.platforms[best_platform]
        self.logger.log(f"Downloading module: {artifact.url}", logging.DEBUG)

        module_disk_path = os.path.join(self.config.module_installations_dir, module_name)
        module_version_disk_path = os.path.join(module_disk_path, selected_version)

        await asyncio.to_thread(self._prepare_module_directory, module_disk_path, module_version_disk_path)

        try:
            temp_file = tempfile.TemporaryFile(prefix="enginemanager-")
        except OSError as e:
            raise FilesystemError(f"Unable to create temporary download file: {e}") from e

        with temp_file:
            await self.downloader.download_to_stream(artifact.url, temp_file, progress, cancel)

            verified = await self._run_to_completion(self.verifier.verify, temp_file, artifact.signature)
            if not verified:
                if self._signing_disabled():
                    self.logger.log(
                        "Signature check failed for module, ignoring because signing disabled",
                        logging.WARNING,
                    )
                else:
                    raise SignatureVerificationError(
                        f"Failed to verify signature of module {module_name} {selected_version}"
                    )

            CancellationToken.check(cancel)

            self.logger.log(f"Download complete, extracting into: {module_version_disk_path}", logging.DEBUG)
            try:
                await self._run_to_completion(
                    self._extract_module, module_name, module_version_disk_path, temp_file
                )
            except BaseException:
                FileUtils.clear_directory(module_version_disk_path)
                raise

        module = InstalledEngineModule(name=module_name, version=selected_version)
        self.store.add_engine_module(module)
        try:
            self.store.commit()
        except BaseException:
            self.store.remove_engine_module(module)
            FileUtils.clear_directory(module_version_disk_path)
            raise

        self.logger.log("Done installing module!", logging.DEBUG)
        return True

    @staticmethod
    async def _run_to_completion(func, *args):
        """
        Run `func` in a worker thread and return its result.

        Worker threads cannot be interrupted, so if the calling task is
        cancelled this still waits for `func` to return before re-raising.
        Callers may then clean up whatever `func` was using.
        """
        work = asyncio.ensure_future(asyncio.to_thread(func, *args))
        try:
            return await asyncio.shield(work)
        except asyncio.CancelledError:
            while not work.done():
                try:
                    await asyncio.wait({work})
                except asyncio.CancelledError:
                    continue
            raise

    @staticmethod
    def _prepare_module_directory(module_disk_path: str, module_version_disk_path: str) -> None:
        FileUtils.ensure_directory_exists(module_disk_path)
        FileUtils.ensure_directory_exists(module_version_disk_path)
        FileUtils.clear_directory(module_version_disk_path)

    @staticmethod
    def _extract_module(module_name: str, module_version_disk_path: str, archive) -> None:
        FileUtils.extract_zip_to_directory(module_version_disk_path, archive)

        if PlatformUtils.is_linux():
            for relative_path in MODULE_EXECUTABLES.get(module_name, []):
                FileUtils.chmod_plus_x(os.path.join(module_version_disk_path, relative_path))

    def clear_all(self) -> None:
        """
        Remove every installed engine and module, both records and files.

        All paths are attempted even if some fail.

        Raises:
            ClearEnginesError: If any path could not be deleted
        """
        for installation in self.store.list_engine_installations():
            self.store.remove_engine_installation(installation)

        for module in self.store.list_engine_modules():
            self.store.remove_engine_module(module)

        self.store.commit()

        failed_paths: List[str] = []

        engine_dir = self.config.engine_installations_dir
        if os.path.isdir(engine_dir):
            for entry in os.scandir(engine_dir):
                if entry.is_dir(follow_symlinks=False):
                    continue
                try:
                    os.unlink(entry.path)
                except OSError as e:
                    self.logger.log(f"Failed to delete {entry.path}: {e}", logging.ERROR)
                    failed_paths.append(entry.path)

        module_dir = self.config.module_installations_dir
        if os.path.isdir(module_dir):
            for entry in os.scandir(module_dir):
                if not entry.is_dir(follow_symlinks=False):
                    continue
                try:
                    shutil.rmtree(entry.path)
                except OSError as e:
                    self.logger.log(f"Failed to delete {entry.path}: {e}", logging.ERROR)
                    failed_paths.append(entry.path)

        if failed_paths:
            raise ClearEnginesError(f"Failed to delete {len(failed_paths)} path(s)", failed_paths)

        self.logger.log("Cleared all engine installations", logging.INFO)

    async def cull_unused(
        self,
        used_engine_versions: Iterable[str],
        used_modules: Iterable[InstalledEngineModule],
    ) -> CullResult:
        """
        Remove installs that no known server content references.

        Only runs when `enable_culling` is set in the configuration. Best effort:
        failures to delete files are logged and reported, never raised.
        """
        result = CullResult()

        if not self.config.enable_culling:
            self.logger.log("Engine culling is disabled, skipping", logging.DEBUG)
            return result

        self.logger.log("Checking to cull engine versions.", logging.DEBUG)

        used_versions = set(used_engine_versions)
        used_module_set = set(used_modules)

        engines_to_cull = [i for i in self.store.list_engine_installations() if i.version not in used_versions]
        modules_to_cull = [m for m in self.store.list_engine_modules() if m not in used_module_set]

        if not engines_to_cull and not modules_to_cull:
            return result

        for installation in engines_to_cull:
            self.logger.log(f"Culling unused version {installation.version}", logging.DEBUG)
            self.store.remove_engine_installation(installation)
            result.removed_engines.append(installation.version)

        for module in modules_to_cull:
            self.logger.log(f"Culling unused module {module}", logging.DEBUG)
            self.store.remove_engine_module(module)
            result.removed_modules.append(module)

        self.store.commit()

        for version in result.removed_engines:
            path = self._engine_archive_path(version)
            try:
                await asyncio.to_thread(FileUtils.delete_file_if_exists, path)
            except FilesystemError as e:
                self.logger.log(str(e), logging.WARNING)
                result.failed_paths.append(path)

        for module in result.removed_modules:
            path = self.get_engine_module_path(module.name, module.version)
            try:
                await asyncio.to_thread(shutil.rmtree, path)
            except FileNotFoundError:
                pass
            except OSError as e:
                self.logger.log(f"Failed to delete {path}: {e}", logging.WARNING)
                result.failed_paths.append(path)

        return result

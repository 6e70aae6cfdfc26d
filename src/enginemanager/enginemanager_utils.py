"""
This file contains various utility functions like platform detection and
content-store filesystem operations.
"""

import os
import platform
import shutil
import stat
import zipfile
from enum import Enum
from typing import BinaryIO, Dict, Iterable, List, Optional

from enginemanager.enginemanager_exceptions import FilesystemError, UnsupportedPlatformError


class PlatformId(str, Enum):
    """
    Runtime identifiers (RIDs) of the platforms builds are published for.
    """

    WIN_x86 = "win-x86"
    WIN_x64 = "win-x64"
    WIN_arm64 = "win-arm64"
    OSX_x64 = "osx-x64"
    OSX_arm64 = "osx-arm64"
    LINUX_x86 = "linux-x86"
    LINUX_x64 = "linux-x64"
    LINUX_arm64 = "linux-arm64"
    LINUX_arm = "linux-arm"


# Most specific first. Architecture emulation fallbacks come before the
# OS-family identifiers so that a native-looking build is always preferred.
_PLATFORM_FALLBACKS: Dict[PlatformId, List[str]] = {
    PlatformId.WIN_x86: ["win-x86", "win", "any"],
    PlatformId.WIN_x64: ["win-x64", "win-x86", "win", "any"],
    PlatformId.WIN_arm64: ["win-arm64", "win-x64", "win-x86", "win", "any"],
    PlatformId.OSX_x64: ["osx-x64", "osx", "unix", "any"],
    PlatformId.OSX_arm64: ["osx-arm64", "osx-x64", "osx", "unix", "any"],
    PlatformId.LINUX_x86: ["linux-x86", "linux", "unix", "any"],
    PlatformId.LINUX_x64: ["linux-x64", "linux", "unix", "any"],
    PlatformId.LINUX_arm64: ["linux-arm64", "linux", "unix", "any"],
    PlatformId.LINUX_arm: ["linux-arm", "linux", "unix", "any"],
}

_OS_NAMES = {"Windows": "win", "Darwin": "osx", "Linux": "linux"}

_ARCH_NAMES = {
    "x86_64": "x64",
    "amd64": "x64",
    "x64": "x64",
    "i386": "x86",
    "i686": "x86",
    "x86": "x86",
    "arm64": "arm64",
    "aarch64": "arm64",
    "armv7l": "arm",
    "armv7": "arm",
    "arm": "arm",
}


class PlatformUtils:
    """
    This class provides utilities for platform detection and identification.
    """

    @staticmethod
    def get_platform_id() -> PlatformId:
        """
        Returns the platform id for the current system

        Raises:
            UnsupportedPlatformError: If the operating system or CPU architecture is not recognised
        """
        system = platform.system()
        machine = platform.machine().lower()

        os_name = _OS_NAMES.get(system)
        arch = _ARCH_NAMES.get(machine)
        if os_name is None or arch is None:
            raise UnsupportedPlatformError(f"Unknown platform: {system} {machine}")

        try:
            return PlatformId(f"{os_name}-{arch}")
        except ValueError:
            raise UnsupportedPlatformError(f"Unknown platform: {system} {machine}")

    @staticmethod
    def get_platform_fallbacks(host: PlatformId) -> List[str]:
        """
        Returns the identifiers to try for `host`, most specific first.
        """
        return list(_PLATFORM_FALLBACKS[host])

    @staticmethod
    def find_best_platform(available: Iterable[str], host: Optional[PlatformId] = None) -> Optional[str]:
        """
        Picks the most specific identifier in `available` that the host can run.

        Args:
            available: Platform identifiers a manifest entry provides builds for
            host: Host platform; detected from the running system when None

        Returns:
            The chosen identifier, or None if no fallback tier matches
        """
        available = set(available)

        if host is None:
            try:
                host = PlatformUtils.get_platform_id()
            except UnsupportedPlatformError:
                return "any" if "any" in available else None

        for candidate in PlatformUtils.get_platform_fallbacks(host):
            if candidate in available:
                return candidate

        return None

    @staticmethod
    def is_linux() -> bool:
        return platform.system() == "Linux"


class FileUtils:
    """
    Utility functions for materializing artifacts in the content store
    """

    @staticmethod
    def ensure_directory_exists(path: str) -> None:
        try:
            os.makedirs(path, exist_ok=True)
        except OSError as e:
            raise FilesystemError(f"Unable to create directory {path}: {e}") from e

    @staticmethod
    def clear_directory(path: str) -> None:
        """
        Removes every entry inside `path`, leaving the directory itself in place.
        """
        try:
            for entry in os.scandir(path):
                if entry.is_dir(follow_symlinks=False):
                    shutil.rmtree(entry.path)
                else:
                    os.unlink(entry.path)
        except OSError as e:
            raise FilesystemError(f"Unable to clear directory {path}: {e}") from e

    @staticmethod
    def delete_file_if_exists(path: str) -> None:
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise FilesystemError(f"Unable to delete {path}: {e}") from e

    @staticmethod
    def extract_zip_to_directory(target_dir: str, archive: BinaryIO) -> None:
        """
        Extracts the full contents of the zip archive in `archive` into `target_dir`.
        """
        try:
            archive.seek(0)
            with zipfile.ZipFile(archive) as zip_ref:
                zip_ref.extractall(target_dir)
        except zipfile.BadZipFile as e:
            raise FilesystemError(f"Corrupt archive, unable to extract into {target_dir}: {e}") from e
        except OSError as e:
            raise FilesystemError(f"Unable to extract into {target_dir}: {e}") from e

    @staticmethod
    def chmod_plus_x(path: str) -> None:
        try:
            mode = os.stat(path).st_mode
            os.chmod(path, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        except OSError as e:
            raise FilesystemError(f"Unable to mark {path} executable: {e}") from e

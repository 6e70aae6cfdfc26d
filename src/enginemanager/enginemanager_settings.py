"""
Defines the default on-disk locations and build-time switches used by enginemanager.
"""

import os
import pathlib


class EngineManagerSettings:
    """
    Provides the various settings for enginemanager.
    """

    @staticmethod
    def get_enginemanager_dir():
        """
        Get the directory where enginemanager stores its content
        """
        home_dir = pathlib.Path.home()
        enginemanager_dir = str(pathlib.PurePath(home_dir, ".enginemanager"))
        os.makedirs(enginemanager_dir, exist_ok=True)
        return enginemanager_dir

    @staticmethod
    def get_engine_installations_directory():
        """
        Get the directory holding one `{version}.zip` per installed engine
        """
        engine_dir = str(pathlib.PurePath(EngineManagerSettings.get_enginemanager_dir(), "engines"))
        os.makedirs(engine_dir, exist_ok=True)
        return engine_dir

    @staticmethod
    def get_module_installations_directory():
        """
        Get the directory holding `{module}/{version}/` trees of installed modules
        """
        module_dir = str(pathlib.PurePath(EngineManagerSettings.get_enginemanager_dir(), "modules"))
        os.makedirs(module_dir, exist_ok=True)
        return module_dir

    @staticmethod
    def get_content_store_path():
        return str(pathlib.PurePath(EngineManagerSettings.get_enginemanager_dir(), "content_store.json"))

    @staticmethod
    def is_development_build() -> bool:
        """
        Whether this is a development build. Developer-only switches such as
        disabling module signature checks are ignored unless this is true.
        """
        return os.environ.get("ENGINEMANAGER_DEVELOPMENT_BUILD", "").lower() in ("1", "true", "yes")

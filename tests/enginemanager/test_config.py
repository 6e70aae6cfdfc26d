"""
Tests for configuration loading, settings and logging.
"""

import json
import logging

import pytest

from enginemanager.enginemanager_config import DEFAULT_DOWNLOAD_CHUNK_SIZE, EngineManagerConfig
from enginemanager.enginemanager_exceptions import EngineManagerException
from enginemanager.enginemanager_logger import EngineManagerLogger
from enginemanager.enginemanager_settings import EngineManagerSettings


@pytest.fixture
def dirs(tmp_path):
    return {
        "engine_installations_dir": str(tmp_path / "engines"),
        "module_installations_dir": str(tmp_path / "modules"),
    }


class TestEngineManagerConfig:
    """Tests for EngineManagerConfig."""

    def test_from_dict_defaults(self, dirs):
        config = EngineManagerConfig.from_dict(dirs)

        assert config.download_chunk_size == DEFAULT_DOWNLOAD_CHUNK_SIZE
        assert config.enable_culling is False
        assert config.engine_builds_manifest_url.startswith("https://")

    def test_from_dict_overrides(self, dirs):
        config = EngineManagerConfig.from_dict(
            {**dirs, "engine_builds_manifest_url": "http://localhost/manifest.json", "enable_culling": True}
        )

        assert config.engine_builds_manifest_url == "http://localhost/manifest.json"
        assert config.enable_culling is True

    def test_unknown_key_rejected(self, dirs):
        with pytest.raises(EngineManagerException):
            EngineManagerConfig.from_dict({**dirs, "disable_signing": True})

    def test_bad_url_rejected(self, dirs):
        with pytest.raises(EngineManagerException):
            EngineManagerConfig.from_dict({**dirs, "modules_manifest_url": "ftp://example/modules.json"})

    def test_bad_chunk_size_rejected(self, dirs):
        with pytest.raises(EngineManagerException):
            EngineManagerConfig.from_dict({**dirs, "download_chunk_size": 0})

    def test_public_key_path(self, dirs):
        assert EngineManagerConfig.from_dict(dirs).public_key_path is None

        config = EngineManagerConfig.from_dict({**dirs, "public_key_path": "/etc/enginemanager/signing_key"})
        assert config.public_key_path == "/etc/enginemanager/signing_key"

        with pytest.raises(EngineManagerException):
            EngineManagerConfig.from_dict({**dirs, "public_key_path": 42})

    def test_same_install_dirs_rejected(self, tmp_path):
        with pytest.raises(EngineManagerException):
            EngineManagerConfig.from_dict(
                {
                    "engine_installations_dir": str(tmp_path / "x"),
                    "module_installations_dir": str(tmp_path / "x"),
                }
            )

    def test_from_toml(self, tmp_path, dirs):
        path = tmp_path / "enginemanager.toml"
        path.write_text(
            "[enginemanager]\n"
            'modules_manifest_url = "https://cdn.example/modules.json"\n'
            f'engine_installations_dir = "{dirs["engine_installations_dir"]}"\n'
            f'module_installations_dir = "{dirs["module_installations_dir"]}"\n'
            "download_chunk_size = 4096\n"
        )

        config = EngineManagerConfig.from_toml(str(path))

        assert config.modules_manifest_url == "https://cdn.example/modules.json"
        assert config.download_chunk_size == 4096

    def test_from_toml_missing_file(self, tmp_path):
        with pytest.raises(EngineManagerException):
            EngineManagerConfig.from_toml(str(tmp_path / "missing.toml"))

    def test_from_toml_malformed(self, tmp_path):
        path = tmp_path / "broken.toml"
        path.write_text("[enginemanager\n")

        with pytest.raises(EngineManagerException):
            EngineManagerConfig.from_toml(str(path))


class TestEngineManagerSettings:
    """Tests for build-time switches."""

    @pytest.mark.parametrize("value,expected", [("1", True), ("true", True), ("0", False), ("", False)])
    def test_development_build(self, monkeypatch, value, expected):
        monkeypatch.setenv("ENGINEMANAGER_DEVELOPMENT_BUILD", value)
        assert EngineManagerSettings.is_development_build() is expected

    def test_release_build_by_default(self, monkeypatch):
        monkeypatch.delenv("ENGINEMANAGER_DEVELOPMENT_BUILD", raising=False)
        assert EngineManagerSettings.is_development_build() is False


class TestEngineManagerLogger:
    """Tests for the structured logger."""

    def test_emits_json_line_with_caller(self, caplog):
        logger = EngineManagerLogger()

        with caplog.at_level(logging.INFO, logger="enginemanager"):
            logger.log("Installing engine version 'x'\nnow", logging.INFO)

        record = json.loads(caplog.records[-1].getMessage())
        assert record["caller_name"] == "test_emits_json_line_with_caller"
        assert record["caller_file"] == "test_config.py"
        assert record["level"] == "INFO"
        assert record["message"] == 'Installing engine version "x" now'

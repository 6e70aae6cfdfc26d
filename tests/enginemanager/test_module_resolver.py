"""
Tests for engine module version resolution.
"""

import pytest

from enginemanager.engine_downloader import resolve_module_version
from enginemanager.enginemanager_exceptions import ModuleResolutionError
from enginemanager.manifest_models import ModuleManifest


def _manifest(*versions: str) -> ModuleManifest:
    return ModuleManifest.from_dict(
        {"modules": {"WebView": {"versions": {v: {"platforms": {}} for v in versions}}}}
    )


class TestResolveModuleVersion:
    """Tests for resolve_module_version."""

    def test_exact_match(self):
        assert resolve_module_version(_manifest("1.0.0", "2.0.0"), "WebView", "2.0.0") == "2.0.0"

    def test_newest_version_not_newer_than_engine(self):
        manifest = _manifest("0.1.0", "0.5.0", "0.9.0", "1.2.0")
        assert resolve_module_version(manifest, "WebView", "1.0.3") == "0.9.0"

    def test_numeric_not_lexicographic_ordering(self):
        manifest = _manifest("0.9.0", "0.10.0")
        assert resolve_module_version(manifest, "WebView", "0.11.0") == "0.10.0"

    def test_engine_older_than_all_module_versions(self):
        with pytest.raises(ModuleResolutionError):
            resolve_module_version(_manifest("2.0.0"), "WebView", "1.0.0")

    def test_unknown_module(self):
        with pytest.raises(ModuleResolutionError):
            resolve_module_version(_manifest("1.0.0"), "Missing", "1.0.0")

    def test_invalid_engine_version(self):
        with pytest.raises(ModuleResolutionError):
            resolve_module_version(_manifest("1.0.0"), "WebView", "not-a-version")

    def test_invalid_module_version_keys_are_ignored(self):
        manifest = _manifest("garbage", "1.0.0")
        assert resolve_module_version(manifest, "WebView", "5.0.0") == "1.0.0"

    def test_module_with_no_versions(self):
        with pytest.raises(ModuleResolutionError):
            resolve_module_version(_manifest(), "WebView", "1.0.0")

    def test_deterministic_with_equivalent_keys(self):
        first = resolve_module_version(_manifest("1.0", "1.0.0"), "WebView", "1.0.0")
        second = resolve_module_version(_manifest("1.0.0", "1.0"), "WebView", "1.0.0")

        assert first == second == "1.0.0"

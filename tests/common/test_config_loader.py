"""Tests for the multi-source config loader."""

import os

import pytest
from pydantic import ValidationError

from zip_extract.common import ConfigLoader
from zip_extract.config import ZipExtractConfig


@pytest.fixture
def loader(isolated_config, monkeypatch):
    for key in list(os.environ):
        if key.startswith("ZIP_EXTRACT_"):
            monkeypatch.delenv(key)
    return ConfigLoader(config_class=ZipExtractConfig, app_name="zip-extract")


class TestConfigLoader:

    def test_defaults_without_sources(self, loader):
        config = loader.load()

        assert config == ZipExtractConfig()

    def test_toml_file(self, loader, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text(
            '[logging]\nlevel = "WARNING"\n\n'
            '[extraction]\ndefault_file_mode = "600"\nskip_macos_metadata = false\n'
        )

        config = loader.load(defaults_path=path)

        assert config.logging.level == "WARNING"
        assert config.extraction.default_file_mode == 0o600
        assert config.extraction.skip_macos_metadata is False

    def test_missing_defaults_file(self, loader, tmp_path):
        with pytest.raises(FileNotFoundError):
            loader.load(defaults_path=tmp_path / "absent.toml")

    def test_env_overrides_file(self, loader, tmp_path, monkeypatch):
        path = tmp_path / "config.toml"
        path.write_text('[extraction]\ndefault_dir_mode = "700"\n')
        monkeypatch.setenv("ZIP_EXTRACT_EXTRACTION_DEFAULT_DIR_MODE", "750")
        monkeypatch.setenv("ZIP_EXTRACT_LOGGING_LEVEL", "DEBUG")
        monkeypatch.setenv("ZIP_EXTRACT_EXTRACTION_SKIP_MACOS_METADATA", "false")

        config = loader.load(defaults_path=path)

        assert config.extraction.default_dir_mode == 0o750
        assert config.logging.level == "DEBUG"
        assert config.extraction.skip_macos_metadata is False

    def test_user_config_merged(self, loader, tmp_path, monkeypatch):
        user = tmp_path / "user.toml"
        user.write_text('[logging]\nformat = "json"\n')
        monkeypatch.setattr(ConfigLoader, "_user_config_path", lambda self: user)

        config = loader.load()

        assert config.logging.format == "json"
        assert config.logging.level == "INFO"

    def test_invalid_value_rejected(self, loader, monkeypatch):
        monkeypatch.setenv("ZIP_EXTRACT_LOGGING_LEVEL", "TRACE")

        with pytest.raises(ValidationError):
            loader.load()

    def test_deep_merge(self, loader):
        merged = loader._deep_merge(
            {"logging": {"level": "INFO", "format": "json"}},
            {"logging": {"level": "ERROR"}},
        )

        assert merged == {"logging": {"level": "ERROR", "format": "json"}}

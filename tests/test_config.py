"""Unit tests for pkgvault.engine.config — pkgvault.yaml loading & validation."""

import pytest
from pydantic import ValidationError

from pkgvault.engine.config import (
    ArchiveConfig,
    LoggingConfig,
    PlatformConfig,
    UploadConfig,
    load_config,
)
from pkgvault.engine.errors import ConfigError


class TestDefaults:

    def test_platform_defaults(self):
        config = PlatformConfig()
        assert config.name == "pkgvault"
        assert config.environment == "dev"
        assert config.database.url == "sqlite:///pkgvault.db"
        assert config.archive.compression_level == 9
        assert config.uploads.max_upload_size_mb == 50

    def test_max_upload_bytes(self):
        assert UploadConfig(max_upload_size_mb=2).max_upload_bytes == 2 * 1024 * 1024

    def test_compression_level_bounds(self):
        with pytest.raises(ValidationError):
            ArchiveConfig(compression_level=10)
        assert ArchiveConfig(compression_level=0).compression_level == 0

    def test_log_level_normalized(self):
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_bad_log_level(self):
        with pytest.raises(ValidationError):
            LoggingConfig(level="chatty")

    def test_bad_environment(self):
        with pytest.raises(ValidationError):
            PlatformConfig(environment="qa")


class TestLoadConfig:

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(str(tmp_path / "absent.yaml"))
        assert config == PlatformConfig()

    def test_loads_platform_block(self, tmp_path):
        path = tmp_path / "pkgvault.yaml"
        path.write_text(
            "platform:\n"
            "  name: vault-staging\n"
            "  environment: staging\n"
            "database:\n"
            "  url: sqlite:///staging.db\n"
            "archive:\n"
            "  compression_level: 6\n"
        )
        config = load_config(str(path))
        assert config.name == "vault-staging"
        assert config.environment == "staging"
        assert config.database.url == "sqlite:///staging.db"
        assert config.archive.compression_level == 6

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "pkgvault.yaml"
        path.write_text("")
        assert load_config(str(path)).name == "pkgvault"

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "pkgvault.yaml"
        path.write_text("database: [unclosed\n")
        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "pkgvault.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_validation_errors_attached(self, tmp_path):
        path = tmp_path / "pkgvault.yaml"
        path.write_text("archive:\n  compression_level: 42\n")
        with pytest.raises(ConfigError) as exc_info:
            load_config(str(path))
        errors = exc_info.value.context["validation_errors"]
        assert errors[0]["loc"] == ("archive", "compression_level")

"""
pkgvault Configuration — Load and validate pkgvault.yaml at startup.

The loaded PlatformConfig is passed explicitly to Database, ArchiveBuilder
and create_app(); nothing here caches it at module level.

Usage:
    from pkgvault.engine.config import load_config
    config = load_config()
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from pkgvault.engine.errors import ConfigError

CONFIG_FILENAME = "pkgvault.yaml"


# ---------------------------------------------------------------------------
# Pydantic models for pkgvault.yaml
# ---------------------------------------------------------------------------

class DatabaseConfig(BaseModel):
    url: str = "sqlite:///pkgvault.db"
    echo: bool = False
    pool_pre_ping: bool = True


class ArchiveConfig(BaseModel):
    # zlib levels; 9 is the maximum and the default policy
    compression_level: int = Field(default=9, ge=0, le=9)
    chunk_size: int = Field(default=64 * 1024, gt=0)


class UploadConfig(BaseModel):
    max_upload_size_mb: int = Field(default=50, gt=0)

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024


class LogAsyncQueueConfig(BaseModel):
    flush_interval_ms: int = 100
    flush_batch_size: int = 50
    max_queue_size: int = 10000


class LoggingConfig(BaseModel):
    level: str = "INFO"
    directory: str = ".pkgvault/logs"
    async_queue: LogAsyncQueueConfig = LogAsyncQueueConfig()

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"invalid log level '{v}'")
        return v


class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8000


class PlatformConfig(BaseModel):
    """Root model for pkgvault.yaml."""
    name: str = "pkgvault"
    version: str = "1.0.0"
    environment: str = "dev"

    database: DatabaseConfig = DatabaseConfig()
    archive: ArchiveConfig = ArchiveConfig()
    uploads: UploadConfig = UploadConfig()
    logging: LoggingConfig = LoggingConfig()
    server: ServerConfig = ServerConfig()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        if v not in ("dev", "staging", "prod"):
            raise ValueError(f"environment must be dev/staging/prod, got '{v}'")
        return v


# ---------------------------------------------------------------------------
# Config Loading
# ---------------------------------------------------------------------------

def find_project_root() -> Path:
    """Find the project root by looking for pkgvault.yaml."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        if (parent / CONFIG_FILENAME).exists():
            return parent
    return current


def load_config(config_path: Optional[str] = None) -> PlatformConfig:
    """
    Load and validate pkgvault.yaml.

    Args:
        config_path: Explicit path to pkgvault.yaml. If None, auto-discovers.

    Returns:
        Validated PlatformConfig instance (defaults if the file is missing).

    Raises:
        ConfigError: The file is not valid YAML or fails validation.
    """
    if config_path is None:
        config_path = str(find_project_root() / CONFIG_FILENAME)

    path = Path(config_path)
    if not path.exists():
        return PlatformConfig()

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Could not parse {path}: {e}", object_ref=str(path)) from e

    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping", object_ref=str(path))

    # Top-level "platform:" block holds name/version/environment
    platform_data = raw.pop("platform", {}) or {}
    config_data = {**platform_data, **raw}

    try:
        return PlatformConfig(**config_data)
    except ValidationError as e:
        raise ConfigError(
            f"Invalid configuration in {path}",
            object_ref=str(path),
            validation_errors=e.errors(),
        ) from e

"""
Configuration management for eav_hashes.

All configuration is done via environment variables.
This module provides typed configuration classes with validation.

Invariants:
    - All settings have sensible defaults for local development
    - The safe YAML object format is the default

How to change safely:
    - Add new settings with defaults that maintain backward compatibility
    - Deprecate settings by logging warnings but continuing to support them
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageConfig:
    """SQLite storage configuration.

    Attributes:
        data_dir: Directory for SQLite databases
        db_file: Database file name inside data_dir
        wal_mode: SQLite WAL mode enabled
        busy_timeout_ms: SQLite busy timeout in milliseconds
        cache_size_pages: SQLite cache size in pages (negative = KB)
    """

    data_dir: str = "/var/lib/eav"
    db_file: str = "attributes.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000
    cache_size_pages: int = -64000  # 64MB

    @property
    def db_path(self) -> Path:
        """Full path of the SQLite database."""
        return Path(self.data_dir) / self.db_file

    @classmethod
    def from_env(cls) -> StorageConfig:
        """Load configuration from environment variables."""
        return cls(
            data_dir=os.getenv("EAV_DATA_DIR", "/var/lib/eav"),
            db_file=os.getenv("EAV_DB_FILE", "attributes.db"),
            wal_mode=os.getenv("SQLITE_WAL_MODE", "true").lower() == "true",
            busy_timeout_ms=int(os.getenv("SQLITE_BUSY_TIMEOUT_MS", "5000")),
            cache_size_pages=int(os.getenv("SQLITE_CACHE_SIZE", "-64000")),
        )


@dataclass(frozen=True)
class CodecConfig:
    """Value codec configuration.

    Attributes:
        object_format: YAML format for OBJECT values ("safe" or "full").
            "full" restores arbitrary Python objects and must only be used
            with trusted databases.
    """

    object_format: str = "safe"

    @classmethod
    def from_env(cls) -> CodecConfig:
        """Load configuration from environment variables."""
        return cls(
            object_format=os.getenv("EAV_OBJECT_FORMAT", "safe").lower(),
        )


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    log_level: str = "INFO"
    log_format: str = "text"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "text"),
        )


@dataclass
class EavConfig:
    """Complete configuration.

    Attributes:
        storage: SQLite storage configuration
        codec: Value codec configuration
        observability: Logging configuration
    """

    storage: StorageConfig = field(default_factory=StorageConfig)
    codec: CodecConfig = field(default_factory=CodecConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> EavConfig:
        """Load complete configuration from environment variables.

        Raises:
            ValueError: If configuration is invalid.
        """
        config = cls(
            storage=StorageConfig.from_env(),
            codec=CodecConfig.from_env(),
            observability=ObservabilityConfig.from_env(),
        )

        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        if self.codec.object_format not in ("safe", "full"):
            raise ValueError(
                f"Invalid EAV_OBJECT_FORMAT '{self.codec.object_format}'. Must be one of: safe, full"
            )
        if self.observability.log_format not in ("json", "text"):
            raise ValueError(
                f"Invalid LOG_FORMAT '{self.observability.log_format}'. Must be one of: json, text"
            )
        if not self.storage.db_file:
            raise ValueError("EAV_DB_FILE must not be empty")
        if self.storage.busy_timeout_ms < 0:
            raise ValueError("SQLITE_BUSY_TIMEOUT_MS must not be negative")

        if self.codec.object_format == "full":
            logger.warning("EAV_OBJECT_FORMAT=full: stored objects are loaded with yaml.unsafe_load")

        if not os.path.exists(self.storage.data_dir):
            logger.warning(
                f"Data directory does not exist: {self.storage.data_dir}. "
                "It will be created on first write."
            )

    def log_config(self) -> None:
        """Log configuration."""
        logger.info(
            "eav_hashes configuration loaded",
            extra={
                "db_path": str(self.storage.db_path),
                "wal_mode": self.storage.wal_mode,
                "object_format": self.codec.object_format,
                "log_level": self.observability.log_level,
            },
        )

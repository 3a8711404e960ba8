"""
Configuration management for the table QA bot.

This module handles all configuration settings loaded from environment variables.
Directories are created lazily when needed, not at import time.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DEFAULT_ENDPOINT_URL = (
    "https://api-inference.huggingface.co/models/google/tapas-base-finetuned-wtq"
)


def _get_env_int(key: str, default: int) -> int:
    """Parse integer environment variable with validation."""
    try:
        return int(os.getenv(key, str(default)))
    except ValueError:
        return default


def _get_env_float(key: str, default: float) -> float:
    """Parse float environment variable with validation."""
    try:
        return float(os.getenv(key, str(default)))
    except ValueError:
        return default


def _get_env_path(key: str) -> Optional[Path]:
    value = os.getenv(key)
    return Path(value) if value else None


@dataclass(frozen=True)
class PathConfig:
    """Path configuration - directories created lazily."""

    base_dir: Path = field(default_factory=Path.cwd)
    log_file_override: Optional[Path] = field(default_factory=lambda: _get_env_path("LOG_FILE"))

    @property
    def logs_dir(self) -> Path:
        if self.log_file_override is not None:
            return self.log_file_override.parent
        return self.base_dir / "logs"

    @property
    def log_file(self) -> Path:
        return self.log_file_override or self.logs_dir / "app.log"

    def ensure_directories(self) -> None:
        """Create required directories if they don't exist."""
        self.logs_dir.mkdir(parents=True, exist_ok=True)


@dataclass(frozen=True)
class InferenceConfig:
    """Remote table-question-answering endpoint configuration."""

    api_token: Optional[str] = field(default_factory=lambda: os.getenv("HUGGINGFACE_TOKEN") or None)
    endpoint_url: str = field(default_factory=lambda: os.getenv("INFERENCE_ENDPOINT_URL", DEFAULT_ENDPOINT_URL))
    max_retries: int = field(default_factory=lambda: _get_env_int("INFERENCE_MAX_RETRIES", 10))
    timeout: float = field(default_factory=lambda: _get_env_float("INFERENCE_TIMEOUT", 60.0))

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.max_retries < 1:
            object.__setattr__(self, "max_retries", 10)
        if self.timeout <= 0:
            object.__setattr__(self, "timeout", 60.0)


@dataclass(frozen=True)
class DataConfig:
    """Data source configuration."""

    source_path: str = field(default_factory=lambda: os.getenv("CSV_FILE", "data-series.csv"))
    max_file_size_mb: int = field(default_factory=lambda: _get_env_int("MAX_FILE_SIZE_MB", 10))

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""

    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))


@dataclass
class Settings:
    """Application settings container."""

    paths: PathConfig = field(default_factory=PathConfig)
    inference: InferenceConfig = field(default_factory=InferenceConfig)
    data: DataConfig = field(default_factory=DataConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# Global settings instance
settings = Settings()

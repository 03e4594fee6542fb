"""Environment-based configuration."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings

from traceaudit.constants import (
    DEFAULT_HOTSPOT_WINDOW_US,
    DEFAULT_RATE_WINDOW_US,
    DEFAULT_READ_CHUNK_BYTES,
    DEFAULT_SNIFF_LIMIT,
    MICROS_PER_MILLI,
)

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Reads from .env file and TRACEAUDIT_* environment variables."""

    # Logging
    log_level: str = "INFO"
    log_dir: Path | None = None  # None = no structured run log

    # Windows
    hotspot_window_ms: int = DEFAULT_HOTSPOT_WINDOW_US // MICROS_PER_MILLI
    rate_window_ms: int = DEFAULT_RATE_WINDOW_US // MICROS_PER_MILLI

    # Parser
    read_chunk_bytes: int = DEFAULT_READ_CHUNK_BYTES
    sniff_limit: int = DEFAULT_SNIFF_LIMIT

    # Detectors
    detector_max_concurrency: int | None = None
    detector_timeout_seconds: float | None = None

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip().upper()
            if v not in _LOG_LEVELS:
                raise ValueError(
                    f"log_level must be one of {', '.join(_LOG_LEVELS)}"
                )
        return v

    @field_validator(
        "hotspot_window_ms",
        "rate_window_ms",
        "read_chunk_bytes",
        "sniff_limit",
    )
    @classmethod
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("detector_max_concurrency")
    @classmethod
    def _validate_concurrency(cls, v: int | None) -> int | None:
        if v is not None and v <= 0:
            logger.warning(
                "Ignoring non-positive detector_max_concurrency=%d", v
            )
            return None
        return v

    @property
    def hotspot_window_us(self) -> int:
        return self.hotspot_window_ms * MICROS_PER_MILLI

    @property
    def rate_window_us(self) -> int:
        return self.rate_window_ms * MICROS_PER_MILLI

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "TRACEAUDIT_",
        "extra": "ignore",
    }

"""Configuration objects and constants for image discovery and retrieval."""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass, fields
from typing import Optional

logger = logging.getLogger("page_images")

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
DEFAULT_ARCHIVE_NAME = "images.zip"
DEFAULT_MAX_WORKERS = 8
ENV_PREFIX = "PAGE_IMAGES_"


def positive_int(raw: str) -> int:
    value = int(raw)
    if value < 1:
        raise ValueError(f"expected a positive integer, got {raw!r}")
    return value


def positive_float(raw: str) -> float:
    value = float(raw)
    if not math.isfinite(value) or value <= 0:
        raise ValueError(f"expected a positive number, got {raw!r}")
    return value


@dataclass
class FetchConfig:
    """Settings that control page discovery and image retrieval."""

    timeout: float = 15.0
    batch_timeout: Optional[float] = None
    max_workers: int = DEFAULT_MAX_WORKERS
    user_agent: str = DEFAULT_USER_AGENT
    image_selector: str = "img"
    source_attribute: str = "src"
    images_only: bool = True
    max_image_bytes: Optional[int] = 10 * 1024 * 1024
    archive_name: str = DEFAULT_ARCHIVE_NAME
    archive_folder: str = "images"
    fallback_name: str = "image"

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")
        if not math.isfinite(self.timeout) or self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if self.batch_timeout is not None and not (
            math.isfinite(self.batch_timeout) and self.batch_timeout > 0
        ):
            raise ValueError(f"batch_timeout must be positive, got {self.batch_timeout}")

    @classmethod
    def from_env(cls, **overrides) -> "FetchConfig":
        """Build a config from ``PAGE_IMAGES_*`` variables, then apply overrides."""
        values = {}
        for field in fields(cls):
            if field.name not in _ENV_FIELDS:
                continue
            raw = os.getenv(ENV_PREFIX + field.name.upper())
            if not raw:
                continue
            try:
                values[field.name] = _ENV_FIELDS[field.name](raw)
            except ValueError:
                logger.warning(
                    "Ignoring %s%s=%r; keeping default %r",
                    ENV_PREFIX,
                    field.name.upper(),
                    raw,
                    field.default,
                )
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


_ENV_FIELDS = {
    "timeout": positive_float,
    "batch_timeout": positive_float,
    "max_workers": positive_int,
    "user_agent": str,
}

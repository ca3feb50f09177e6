"""Data models passed between discovery, retrieval and packaging."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from .errors import PartialBatchFailure

ARCHIVE_CONTENT_TYPE = "application/zip"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class PageReference:
    """Validated page URL used as the base for resolving image sources."""

    url: str
    scheme: str
    host: str
    path: str
    origin: str


@dataclass(frozen=True)
class ImageReference:
    """Image source as found in the markup and its absolute form."""

    raw: str
    resolved: str


@dataclass(frozen=True)
class FetchedImage:
    """Binary payload retrieved for a single image URL."""

    url: str
    data: bytes
    content_type: str = DEFAULT_CONTENT_TYPE
    filename: str = "image"


@dataclass(frozen=True)
class FailedURL:
    """An image URL that could not be retrieved, with the reason."""

    url: str
    cause: str
    status_code: Optional[int] = None


@dataclass
class ArchiveResult:
    """Serialized archive plus the URLs that did not make it in."""

    data: bytes
    filename: str
    entries: List[str] = field(default_factory=list)
    failures: List[FailedURL] = field(default_factory=list)
    content_type: str = ARCHIVE_CONTENT_TYPE

    @property
    def requested(self) -> int:
        return len(self.entries) + len(self.failures)

    @property
    def ok(self) -> bool:
        """False only when images were requested and none could be packaged."""
        return bool(self.entries) or not self.failures

    @property
    def partial_failure(self) -> Optional[PartialBatchFailure]:
        if self.entries and self.failures:
            return PartialBatchFailure(self.failures, len(self.entries))
        return None

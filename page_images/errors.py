"""Exception types raised by discovery and retrieval."""

from __future__ import annotations

from typing import Optional, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import FailedURL


class PageImagesError(Exception):
    """Base class for every error raised by this package."""


class InvalidInputError(PageImagesError):
    """A URL was malformed or used a scheme other than http/https."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Invalid URL {url!r}: {reason}")
        self.url = url
        self.reason = reason


class FetchFailedError(PageImagesError):
    """A request failed on the network or returned a non-success status."""

    def __init__(
        self,
        url: str,
        status_code: Optional[int] = None,
        cause: Optional[str] = None,
    ) -> None:
        if status_code is not None:
            detail = f"HTTP {status_code}"
        else:
            detail = cause or "request failed"
        super().__init__(f"Failed to fetch {url}: {detail}")
        self.url = url
        self.status_code = status_code
        self.cause = cause or detail


class PartialBatchFailure(PageImagesError):
    """Some, but not all, images of a batch could not be retrieved.

    Informational: the archive built from the successful images is still
    valid. Callers decide whether to raise, log or display it.
    """

    def __init__(self, failures: Sequence["FailedURL"], succeeded: int) -> None:
        super().__init__(
            f"{len(failures)} of {len(failures) + succeeded} images could not be retrieved"
        )
        self.failures = list(failures)
        self.succeeded = succeeded

"""Concurrent retrieval of image batches and zip packaging."""

from __future__ import annotations

import io
import logging
import threading
import time
import zipfile
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Dict, Iterable, List, Optional, Set, Union

import requests

from .config import FetchConfig
from .errors import PageImagesError
from .images import FetchCancellation, create_session, fetch_image, looks_like_image
from .models import ArchiveResult, FailedURL, FetchedImage
from .utils import unique_name

logger = logging.getLogger("page_images")

_POLL_INTERVAL = 0.05
STOP_CANCELLED = "cancelled before completion"
STOP_DEADLINE = "batch deadline exceeded"

Outcome = Union[FetchedImage, FailedURL]


class ArchiveBuilder:
    """In-memory zip archive with collision-free entry names."""

    def __init__(self, folder: str = "images") -> None:
        self._buffer = io.BytesIO()
        self._zip = zipfile.ZipFile(self._buffer, "w", compression=zipfile.ZIP_DEFLATED)
        self._folder = folder.strip("/")
        self._taken: Set[str] = set()
        self._lock = threading.Lock()
        self.entries: List[str] = []

    def add(self, name: str, data: bytes) -> str:
        """Store ``data`` under ``name`` (made unique) and return the entry path."""
        with self._lock:
            name = unique_name(name, self._taken)
            self._taken.add(name.lower())
            arcname = f"{self._folder}/{name}" if self._folder else name
            self._zip.writestr(arcname, data)
            self.entries.append(arcname)
            return arcname

    def finish(self) -> bytes:
        """Close the archive and return its bytes. Further adds are rejected."""
        with self._lock:
            self._zip.close()
            return self._buffer.getvalue()


class _BatchCollector:
    """Lock-guarded accumulator that workers write into before they return."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._outcomes: Dict[int, Outcome] = {}
        self._closed = False

    def record(self, index: int, outcome: Outcome) -> None:
        with self._lock:
            if not self._closed:
                self._outcomes[index] = outcome

    def close(self) -> Dict[int, Outcome]:
        """Stop accepting results and return a snapshot of what arrived."""
        with self._lock:
            self._closed = True
            return dict(self._outcomes)


def retrieve_for_archive(
    url: str,
    config: FetchConfig,
    session: requests.Session,
    cancellation: Optional[FetchCancellation] = None,
) -> Outcome:
    """Fetch one image and check it is fit for the archive; never raises on fetch errors."""
    try:
        image = fetch_image(
            url,
            config=config,
            session=session,
            max_bytes=config.max_image_bytes,
            cancellation=cancellation,
        )
    except PageImagesError as exc:
        status = getattr(exc, "status_code", None)
        cause = getattr(exc, "cause", None) or str(exc)
        logger.warning("Failed to fetch image %s: %s", url, exc)
        return FailedURL(url=url, cause=cause, status_code=status)

    if config.images_only and not looks_like_image(image.content_type, image.data):
        logger.warning(
            "Skipping %s: unsupported image type (Content-Type=%s)",
            url,
            image.content_type,
        )
        return FailedURL(url=url, cause=f"not an image (Content-Type={image.content_type})")
    return image


def _fetch_into(
    collector: _BatchCollector,
    index: int,
    url: str,
    config: FetchConfig,
    session: requests.Session,
    cancellation: FetchCancellation,
) -> None:
    collector.record(index, retrieve_for_archive(url, config, session, cancellation))


def _wait_for_batch(
    futures: Iterable[Future],
    deadline: Optional[float],
    cancel_event: Optional[threading.Event],
) -> Optional[str]:
    """Block until every future is done; return why we stopped early, if we did."""
    pending = set(futures)
    while pending:
        if cancel_event is not None and cancel_event.is_set():
            return STOP_CANCELLED
        timeout = _POLL_INTERVAL if cancel_event is not None else None
        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return STOP_DEADLINE
            timeout = remaining if timeout is None else min(timeout, remaining)
        _, pending = wait(pending, timeout=timeout, return_when=FIRST_COMPLETED)
    return None


def build_archive(
    urls: Iterable[str],
    config: Optional[FetchConfig] = None,
    session: Optional[requests.Session] = None,
    cancel_event: Optional[threading.Event] = None,
) -> ArchiveResult:
    """Fetch ``urls`` concurrently and package the successful ones into a zip.

    Failures are collected per URL and never abort the rest of the batch.
    When ``config.batch_timeout`` elapses or ``cancel_event`` is set, the
    batch stops: images already fetched are kept and every unfinished URL
    is reported as failed. Entries are written in request order so equal
    inputs give equal archives.
    """
    config = config or FetchConfig()
    ordered = list(dict.fromkeys(urls))
    builder = ArchiveBuilder(folder=config.archive_folder)
    if not ordered:
        logger.info("No image URLs requested; returning an empty archive")
        return ArchiveResult(data=builder.finish(), filename=config.archive_name)

    deadline = None
    if config.batch_timeout is not None:
        deadline = time.monotonic() + config.batch_timeout

    owns_session = session is None
    if session is None:
        session = create_session(config)
    collector = _BatchCollector()
    cancellation = FetchCancellation()
    executor = ThreadPoolExecutor(
        max_workers=min(config.max_workers, len(ordered)),
        thread_name_prefix="page-images",
    )
    stop_reason: Optional[str] = None
    logger.info(
        "Fetching %d images with %d workers",
        len(ordered),
        min(config.max_workers, len(ordered)),
    )
    start = time.perf_counter()
    try:
        futures = []
        for index, url in enumerate(ordered):
            futures.append(
                executor.submit(
                    _fetch_into, collector, index, url, config, session, cancellation
                )
            )
        stop_reason = _wait_for_batch(futures, deadline, cancel_event)
    finally:
        outcomes = collector.close()
        if stop_reason:
            cancellation.cancel()
        executor.shutdown(wait=stop_reason is None, cancel_futures=True)
        if owns_session:
            session.close()

    for index, future in enumerate(futures):
        if index in outcomes or not future.done() or future.cancelled():
            continue
        exc = future.exception()
        if exc is not None:
            logger.warning("Unexpected error fetching %s: %s", ordered[index], exc)
            outcomes[index] = FailedURL(
                url=ordered[index], cause=str(exc) or type(exc).__name__
            )

    if stop_reason:
        logger.warning(
            "Batch stopped early (%s) with %d of %d fetches finished",
            stop_reason,
            len(outcomes),
            len(ordered),
        )

    failures: List[FailedURL] = []
    for index, url in enumerate(ordered):
        outcome = outcomes.get(index)
        if outcome is None:
            failures.append(FailedURL(url=url, cause=stop_reason or "not completed"))
        elif isinstance(outcome, FailedURL):
            failures.append(outcome)
        else:
            builder.add(outcome.filename, outcome.data)

    result = ArchiveResult(
        data=builder.finish(),
        filename=config.archive_name,
        entries=list(builder.entries),
        failures=failures,
    )
    logger.info(
        "Batch complete in %.2fs: %d/%d images packaged, %d failed",
        time.perf_counter() - start,
        len(result.entries),
        len(ordered),
        len(failures),
    )
    return result

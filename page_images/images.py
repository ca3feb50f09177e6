"""Image retrieval and validation utilities."""

from __future__ import annotations

import logging
import socket
import threading
from typing import List, Optional, Set

import requests
from filetype import guess

from .config import FetchConfig
from .errors import FetchFailedError, InvalidInputError
from .models import DEFAULT_CONTENT_TYPE, FetchedImage
from .utils import entry_name_from_url, is_absolute_http_url

logger = logging.getLogger("page_images")

CHUNK_SIZE = 16 * 1024
_EXTENSION_ALIASES = {"jpeg": "jpg", "svg+xml": "svg"}


class FetchCancellation:
    """Stop signal shared by the fetches of one batch.

    Fetches check it between body chunks. ``cancel()`` also shuts down the
    sockets of responses still being read, so a read blocked on a slow
    server returns instead of waiting for the next byte.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._responses: Set[requests.Response] = set()

    def is_set(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()
        with self._lock:
            responses = list(self._responses)
        for resp in responses:
            _interrupt(resp)

    def register(self, resp: requests.Response) -> None:
        with self._lock:
            self._responses.add(resp)
        if self.is_set():
            _interrupt(resp)

    def unregister(self, resp: requests.Response) -> None:
        with self._lock:
            self._responses.discard(resp)


def _interrupt(resp: requests.Response) -> None:
    connection = getattr(resp.raw, "connection", None)
    sock = getattr(connection, "sock", None)
    if sock is None:
        return
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError as exc:
        logger.debug("Socket for %s already closed: %s", resp.url, exc)


def create_session(config: FetchConfig) -> requests.Session:
    """Create a session carrying browser-like headers and no retry policy."""
    session = requests.Session()
    session.headers.update(
        {
            "User-Agent": config.user_agent,
            "Accept": "image/avif,image/webp,image/apng,image/svg+xml,image/*,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        }
    )
    return session


def infer_image_extension(content_type: Optional[str], data: bytes) -> Optional[str]:
    """Image extension from the payload signature, else from the declared type."""
    kind = guess(data)
    if kind and kind.mime.startswith("image/"):
        subtype = kind.extension
    else:
        major, _, subtype = (content_type or "").split(";")[0].partition("/")
        if major.strip().lower() != "image":
            return None
    subtype = subtype.strip().lower()
    return _EXTENSION_ALIASES.get(subtype, subtype) or None


def looks_like_image(content_type: Optional[str], data: bytes) -> bool:
    """True when either the payload signature or the declared type is an image."""
    return infer_image_extension(content_type, data) is not None


def _read_body(
    resp: requests.Response,
    url: str,
    max_bytes: Optional[int],
    cancellation: Optional[FetchCancellation],
) -> bytes:
    declared = resp.headers.get("Content-Length", "")
    if max_bytes and declared.isdigit() and int(declared) > max_bytes:
        raise FetchFailedError(url, cause=f"larger than {max_bytes} bytes")

    chunks: List[bytes] = []
    received = 0
    for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
        if cancellation is not None and cancellation.is_set():
            raise FetchFailedError(url, cause="cancelled")
        received += len(chunk)
        if max_bytes and received > max_bytes:
            raise FetchFailedError(url, cause=f"larger than {max_bytes} bytes")
        chunks.append(chunk)
    if cancellation is not None and cancellation.is_set():
        raise FetchFailedError(url, cause="cancelled")
    return b"".join(chunks)


def fetch_image(
    url: str,
    config: Optional[FetchConfig] = None,
    session: Optional[requests.Session] = None,
    max_bytes: Optional[int] = None,
    cancellation: Optional[FetchCancellation] = None,
) -> FetchedImage:
    """Fetch a single, already-absolute image URL.

    The body is streamed so the download stops as soon as ``max_bytes``
    is exceeded or ``cancellation`` fires. Raises ``InvalidInputError`` for
    relative or non-http URLs and ``FetchFailedError`` for network errors,
    timeouts, non-success statuses, oversized bodies and cancellation.
    No retries are attempted.
    """
    config = config or FetchConfig()
    if not is_absolute_http_url(url):
        raise InvalidInputError(url, "expected an absolute http(s) URL")
    if cancellation is not None and cancellation.is_set():
        raise FetchFailedError(url, cause="cancelled")

    owns_session = session is None
    if session is None:
        session = create_session(config)
    resp: Optional[requests.Response] = None
    try:
        logger.debug("Fetching image %s", url)
        resp = session.get(url, timeout=config.timeout, stream=True)
        if cancellation is not None:
            cancellation.register(resp)
        resp.raise_for_status()
        data = _read_body(resp, url, max_bytes, cancellation)
    except requests.HTTPError as exc:
        status = exc.response.status_code if exc.response is not None else None
        raise FetchFailedError(url, status_code=status, cause=str(exc)) from exc
    except requests.RequestException as exc:
        if cancellation is not None and cancellation.is_set():
            raise FetchFailedError(url, cause="cancelled") from exc
        raise FetchFailedError(url, cause=str(exc) or type(exc).__name__) from exc
    finally:
        if resp is not None:
            if cancellation is not None:
                cancellation.unregister(resp)
            resp.close()
        if owns_session:
            session.close()

    content_type = resp.headers.get("Content-Type") or DEFAULT_CONTENT_TYPE
    filename = entry_name_from_url(
        url,
        fallback=config.fallback_name,
        extension=infer_image_extension(content_type, data),
    )
    return FetchedImage(url=url, data=data, content_type=content_type, filename=filename)


def fetch_for_download(
    url: str,
    config: Optional[FetchConfig] = None,
    session: Optional[requests.Session] = None,
) -> FetchedImage:
    """Fetch one image for individual download, keeping its declared content type."""
    return fetch_image(url, config=config, session=session)

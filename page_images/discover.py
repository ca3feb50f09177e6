"""Discovery of image URLs referenced by a single web page."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional
from urllib.parse import urljoin, urlsplit

import requests

from .config import FetchConfig
from .content import extract_image_sources
from .errors import FetchFailedError, InvalidInputError
from .images import create_session
from .models import ImageReference, PageReference
from .utils import is_absolute_http_url, url_origin

logger = logging.getLogger("page_images")

_ABSOLUTE_PREFIXES = ("http://", "https://")


def parse_page_url(url: str) -> PageReference:
    """Validate a user-supplied page URL before any request is made."""
    candidate = (url or "").strip()
    if not candidate:
        raise InvalidInputError(url, "empty URL")
    try:
        parts = urlsplit(candidate)
        scheme = parts.scheme.lower()
        if scheme not in ("http", "https"):
            raise InvalidInputError(url, "scheme must be http or https")
        origin = url_origin(candidate)
    except ValueError as exc:
        raise InvalidInputError(url, str(exc)) from exc
    return PageReference(
        url=candidate,
        scheme=scheme,
        host=parts.hostname or "",
        path=parts.path or "/",
        origin=origin,
    )


def resolve_reference(raw: str, page: PageReference) -> Optional[ImageReference]:
    """Resolve ``raw`` to an absolute URL, or return None when that is impossible.

    Absolute http(s) values pass through untouched. Everything else is
    resolved against the page origin, so ``img/a.png`` on
    ``https://site.com/blog/post`` becomes ``https://site.com/img/a.png``
    rather than ``https://site.com/blog/img/a.png``.
    """
    if raw.lower().startswith(_ABSOLUTE_PREFIXES):
        resolved = raw
    else:
        resolved = urljoin(page.origin + "/", raw)
    if not is_absolute_http_url(resolved):
        logger.debug("Dropping unresolvable image source %r", raw)
        return None
    return ImageReference(raw=raw, resolved=resolved)


def build_image_set(raw_sources: Iterable[str], page: PageReference) -> List[ImageReference]:
    """Resolve sources and drop exact duplicates, keeping first-seen order."""
    seen = set()
    references: List[ImageReference] = []
    for raw in raw_sources:
        reference = resolve_reference(raw, page)
        if reference is None or reference.resolved in seen:
            continue
        seen.add(reference.resolved)
        references.append(reference)
    return references


def fetch_page(
    page: PageReference,
    config: FetchConfig,
    session: requests.Session,
) -> str:
    """GET the page once and return its decoded body."""
    try:
        logger.info("Loading %s", page.url)
        resp = session.get(page.url, timeout=config.timeout)
        resp.raise_for_status()
    except requests.HTTPError as exc:
        status = exc.response.status_code if exc.response is not None else None
        raise FetchFailedError(page.url, status_code=status, cause=str(exc)) from exc
    except requests.RequestException as exc:
        raise FetchFailedError(page.url, cause=str(exc) or type(exc).__name__) from exc
    return resp.text


def discover_references(
    page_url: str,
    config: Optional[FetchConfig] = None,
    session: Optional[requests.Session] = None,
) -> List[ImageReference]:
    """Fetch ``page_url`` and return its image references in document order."""
    config = config or FetchConfig()
    page = parse_page_url(page_url)

    owns_session = session is None
    if session is None:
        session = create_session(config)
    try:
        html = fetch_page(page, config, session)
    finally:
        if owns_session:
            session.close()

    raw_sources = extract_image_sources(
        html,
        selector=config.image_selector,
        attribute=config.source_attribute,
    )
    references = build_image_set(raw_sources, page)
    logger.info(
        "Found %d images on %s (%d sources in markup)",
        len(references),
        page.url,
        len(raw_sources),
    )
    return references


def discover_images(
    page_url: str,
    config: Optional[FetchConfig] = None,
    session: Optional[requests.Session] = None,
) -> List[str]:
    """Return the ordered, de-duplicated absolute image URLs of a page."""
    return [ref.resolved for ref in discover_references(page_url, config, session)]

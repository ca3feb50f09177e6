"""Utility helpers for URL handling and file naming."""

from __future__ import annotations

import posixpath
import re
import unicodedata
from typing import Optional
from urllib.parse import unquote, urlsplit

SLUG_PATTERN = re.compile(r"[^a-z0-9]+")
UNSAFE_NAME_PATTERN = re.compile(r'[\\/:*?"<>|\x00-\x1f]')
DEFAULT_PORTS = {"http": 80, "https": 443}


def slugify(value: str, fallback: str = "site") -> str:
    """Lower-case ASCII slug; accents are folded and other runs become ``-``."""
    folded = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    return SLUG_PATTERN.sub("-", folded.lower()).strip("-") or fallback


def url_origin(url: str) -> str:
    """Return scheme://host[:port] for a URL, omitting default ports and credentials.

    Raises ``ValueError`` when the URL has no host or an invalid port.
    """
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    host = parts.hostname
    if not host:
        raise ValueError("missing host")
    port = parts.port
    if ":" in host:
        host = f"[{host}]"
    if port is not None and port != DEFAULT_PORTS.get(scheme):
        return f"{scheme}://{host}:{port}"
    return f"{scheme}://{host}"


def is_absolute_http_url(url: str) -> bool:
    try:
        parts = urlsplit(url)
        parts.port  # raises ValueError for a malformed port
    except ValueError:
        return False
    return parts.scheme.lower() in DEFAULT_PORTS and bool(parts.hostname)


def last_path_segment(url: str) -> str:
    """Percent-decoded final ``/`` segment of the URL path, or ``""``."""
    path = urlsplit(url).path
    return unquote(path.rsplit("/", 1)[-1])


def entry_name_from_url(
    url: str,
    fallback: str = "image",
    extension: Optional[str] = None,
) -> str:
    """Derive an archive entry name from the last path segment of ``url``.

    Falls back to ``fallback`` with ``extension`` (default ``jpg``) when
    the segment is empty or unusable.
    """
    name = UNSAFE_NAME_PATTERN.sub("_", last_path_segment(url)).strip()
    if name in ("", ".", ".."):
        return f"{fallback}.{extension or 'jpg'}"
    return name


def unique_name(name: str, taken: set) -> str:
    """Append ``_1``, ``_2``... before the extension until ``name`` is unused.

    ``taken`` holds lower-cased names so case-only clashes also count.
    """
    if name.lower() not in taken:
        return name
    stem, ext = posixpath.splitext(name)
    counter = 1
    while f"{stem}_{counter}{ext}".lower() in taken:
        counter += 1
    return f"{stem}_{counter}{ext}"

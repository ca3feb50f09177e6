"""HTML scanning for image sources."""

from __future__ import annotations

from typing import List

from bs4 import BeautifulSoup

_SKIPPED_PREFIXES = ("data:", "javascript:", "about:", "blob:")


def extract_image_sources(
    html: str,
    selector: str = "img",
    attribute: str = "src",
) -> List[str]:
    """Return the raw source attribute of every image element, in document order.

    Empty values and inline ``data:`` style sources are skipped.
    """
    soup = BeautifulSoup(html, "html.parser")
    sources: List[str] = []
    for element in soup.select(selector):
        src = element.get(attribute)
        if isinstance(src, list):
            src = " ".join(src)
        if not src:
            continue
        src = src.strip()
        if not src or src.lower().startswith(_SKIPPED_PREFIXES):
            continue
        sources.append(src)
    return sources

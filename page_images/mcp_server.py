"""MCP server exposing page image discovery and download tools."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from mcp.server.fastmcp import FastMCP

from .archive import build_archive
from .config import FetchConfig
from .discover import discover_images as discover_page_images

logger = logging.getLogger("page_images.mcp")
logger.setLevel(logging.ERROR)

mcp = FastMCP(name="page-images")


@mcp.tool()
def discover_images(url: str) -> List[str]:
    """List the absolute URLs of every image referenced by a web page."""
    return discover_page_images(url, FetchConfig.from_env())


@mcp.tool()
def download_images(urls: List[str], output_path: str) -> str:
    """Download images into a zip archive at ``output_path`` and summarise the result."""
    destination = Path(output_path).expanduser()
    result = build_archive(urls, FetchConfig.from_env())
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_bytes(result.data)

    lines = [f"Wrote {len(result.entries)} of {result.requested} images to {destination}"]
    lines.extend(f"- failed: {f.url} ({f.cause})" for f in result.failures)
    return "\n".join(lines)


def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()


if __name__ == "__main__":
    main()

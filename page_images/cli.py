"""Command-line entry point for page image discovery and download."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Iterable, List, Sequence
from urllib.parse import urlsplit

from .archive import build_archive
from .config import FetchConfig, positive_float, positive_int
from .discover import discover_images
from .errors import PageImagesError
from .images import fetch_for_download
from .utils import slugify

logger = logging.getLogger("page_images.cli")


def _with_default_command(argv: List[str], commands: Iterable[str]) -> List[str]:
    """A leading URL (anything that is neither a command nor an option) means ``discover``."""
    if argv and argv[0] not in commands and not argv[0].startswith("-"):
        return ["discover", *argv]
    return argv


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--timeout",
        type=positive_float,
        default=None,
        help="Per-request timeout in seconds (default: 15)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="List the images on a web page and download them as a zip archive.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    discover_parser = subparsers.add_parser(
        "discover", help="Print the absolute URL of every image on a page"
    )
    discover_parser.add_argument("url", help="Page to scan for images")
    _add_common_arguments(discover_parser)

    download_parser = subparsers.add_parser(
        "download", help="Fetch images concurrently and write them to a zip archive"
    )
    download_parser.add_argument("urls", nargs="*", help="Absolute image URLs to package")
    download_parser.add_argument(
        "--from-page",
        metavar="URL",
        help="Discover the images on this page and package all of them",
    )
    download_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Archive path (default: images.zip)",
    )
    download_parser.add_argument(
        "--workers",
        type=positive_int,
        default=None,
        help="Maximum number of concurrent downloads",
    )
    download_parser.add_argument(
        "--deadline",
        type=positive_float,
        default=None,
        help="Give up on unfinished downloads after this many seconds",
    )
    download_parser.add_argument(
        "--allow-non-images",
        action="store_true",
        help="Package responses even when they do not look like images",
    )
    _add_common_arguments(download_parser)

    fetch_parser = subparsers.add_parser("fetch", help="Download a single image")
    fetch_parser.add_argument("url", help="Absolute image URL")
    fetch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Destination file (default: name taken from the URL)",
    )
    _add_common_arguments(fetch_parser)

    argv = list(sys.argv[1:] if argv is None else argv)
    argv = _with_default_command(argv, subparsers.choices.keys())
    return parser.parse_args(argv)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def _run_discover(args: argparse.Namespace) -> int:
    config = FetchConfig.from_env(timeout=args.timeout)
    for url in discover_images(args.url, config):
        sys.stdout.write(url + "\n")
    sys.stdout.flush()
    return 0


def _default_archive_path(page_url: str | None, filename: str) -> Path:
    """Name the archive after the page host when packaging a whole page."""
    if not page_url:
        return Path(filename)
    host = slugify(urlsplit(page_url).netloc, fallback="site")
    return Path(f"{host}-{filename}")


def _run_download(args: argparse.Namespace) -> int:
    config = FetchConfig.from_env(
        timeout=args.timeout,
        max_workers=args.workers,
        batch_timeout=args.deadline,
    )
    if args.allow_non_images:
        config.images_only = False

    urls: List[str] = list(args.urls)
    if args.from_page:
        urls.extend(discover_images(args.from_page, config))

    overall_start = time.perf_counter()
    result = build_archive(urls, config)
    output = args.output or _default_archive_path(args.from_page, result.filename)
    output.write_bytes(result.data)
    logger.info(
        "Wrote %s with %d images in %.2fs",
        output,
        len(result.entries),
        time.perf_counter() - overall_start,
    )

    for failure in result.failures:
        logger.warning("Not packaged: %s (%s)", failure.url, failure.cause)
    partial = result.partial_failure
    if partial is not None:
        logger.warning("%s", partial)
    return 0 if result.ok else 1


def _run_fetch(args: argparse.Namespace) -> int:
    config = FetchConfig.from_env(timeout=args.timeout)
    image = fetch_for_download(args.url, config)
    output = args.output or Path(image.filename)
    output.write_bytes(image.data)
    logger.info("Saved %s (%s, %d bytes)", output, image.content_type, len(image.data))
    return 0


_COMMANDS = {
    "discover": _run_discover,
    "download": _run_download,
    "fetch": _run_fetch,
}


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    _configure_logging(args.verbose)
    try:
        return _COMMANDS[args.command](args)
    except PageImagesError as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())

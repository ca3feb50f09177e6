"""Discover the images referenced by a web page and package them into a zip."""

from .archive import ArchiveBuilder, build_archive
from .config import FetchConfig
from .discover import discover_images, discover_references
from .errors import (
    FetchFailedError,
    InvalidInputError,
    PageImagesError,
    PartialBatchFailure,
)
from .images import fetch_for_download, fetch_image
from .models import ArchiveResult, FailedURL, FetchedImage, ImageReference, PageReference

__all__ = [
    "ArchiveBuilder",
    "ArchiveResult",
    "FailedURL",
    "FetchConfig",
    "FetchFailedError",
    "FetchedImage",
    "ImageReference",
    "InvalidInputError",
    "PageImagesError",
    "PageReference",
    "PartialBatchFailure",
    "build_archive",
    "discover_images",
    "discover_references",
    "fetch_for_download",
    "fetch_image",
]

from unittest.mock import patch

from page_images import mcp_server
from page_images.models import ArchiveResult, FailedURL


def test_discover_tool_returns_urls():
    urls = ["https://site.com/a.png", "https://cdn.com/b.jpg"]
    with patch("page_images.mcp_server.discover_page_images", return_value=urls) as discover:
        assert mcp_server.discover_images("https://site.com/") == urls

    assert discover.call_args.args[0] == "https://site.com/"


def test_download_tool_writes_archive_and_summarises(tmp_path):
    destination = tmp_path / "nested" / "out.zip"
    result = ArchiveResult(
        data=b"PK\x05\x06" + b"\x00" * 18,
        filename="images.zip",
        entries=["images/a.png"],
        failures=[FailedURL(url="https://a.com/b.png", cause="HTTP 404", status_code=404)],
    )
    with patch("page_images.mcp_server.build_archive", return_value=result) as build:
        summary = mcp_server.download_images(
            ["https://a.com/a.png", "https://a.com/b.png"], str(destination)
        )

    assert destination.read_bytes() == result.data
    assert build.call_args.args[0] == ["https://a.com/a.png", "https://a.com/b.png"]
    assert summary.splitlines() == [
        f"Wrote 1 of 2 images to {destination}",
        "- failed: https://a.com/b.png (HTTP 404)",
    ]

"""Shared test helpers: an in-memory HTTP session returning real ``requests`` responses."""

import threading
import time

import requests

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 64


def make_response(url, status=200, body=b"", content_type=None):
    resp = requests.Response()
    resp.status_code = status
    resp._content = body.encode("utf-8") if isinstance(body, str) else body
    resp.url = url
    resp.reason = "OK" if status < 400 else "Error"
    resp.encoding = "utf-8"
    resp._content_consumed = True
    if content_type:
        resp.headers["Content-Type"] = content_type
    return resp


def png_response(url):
    return make_response(url, body=PNG_BYTES, content_type="image/png")


class StreamingBody:
    """File-like raw body handing out ``chunk`` per read, ``delay`` seconds apart."""

    def __init__(self, chunk=b"x", delay=0.0, count=1000, on_read=None):
        self.chunk = chunk
        self.delay = delay
        self.remaining = count
        self.on_read = on_read
        self.reads = 0
        self.closed = threading.Event()

    def read(self, amt=None, **kwargs):
        if self.closed.is_set() or self.remaining <= 0:
            return b""
        if self.delay:
            time.sleep(self.delay)
        self.reads += 1
        self.remaining -= 1
        if self.on_read is not None:
            self.on_read(self.reads)
        return self.chunk

    def close(self):
        self.closed.set()


def streaming_response(url, body, content_type="image/png", headers=None):
    resp = requests.Response()
    resp.status_code = 200
    resp.raw = body
    resp.url = url
    resp.reason = "OK"
    resp.headers["Content-Type"] = content_type
    resp.headers.update(headers or {})
    return resp


class FakeSession:
    """Stand-in for ``requests.Session``.

    ``routes`` maps a URL to a response, an exception instance to raise,
    or a callable taking the URL. Unknown URLs raise ``ConnectionError``.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []
        self.timeouts = []
        self.closed = False
        self._lock = threading.Lock()

    def get(self, url, timeout=None, **kwargs):
        with self._lock:
            self.calls.append(url)
            self.timeouts.append(timeout)
        handler = self.routes.get(url)
        if handler is None:
            raise requests.ConnectionError(f"no route to {url}")
        if isinstance(handler, BaseException):
            raise handler
        if callable(handler):
            return handler(url)
        return handler

    def close(self):
        self.closed = True

import socket
import threading

import pytest
from requests.structures import CaseInsensitiveDict

from linkrisk import html_scanner


class FakeResponse:
    """Stands in for a streamed requests.Response."""

    def __init__(self, status_code=200, body=b"", url=None, content_type="text/html; charset=utf-8"):
        self.status_code = status_code
        self.body = body
        self.url = url
        self.headers = CaseInsensitiveDict()
        if content_type is not None:
            self.headers["Content-Type"] = content_type
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True
        return False

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.body), chunk_size):
            yield self.body[i:i + chunk_size]


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def fake_get(monkeypatch):
    """
    Replace requests.get as seen by html_scanner. Call the fixture with either
    a FakeResponse or an exception; it returns the list of recorded calls.
    """
    calls = []

    def install(response=None, error=None):
        def _get(url, **kwargs):
            calls.append((url, kwargs))
            if error is not None:
                raise error
            if response.url is None:
                response.url = url
            return response

        monkeypatch.setattr(html_scanner.requests, "get", _get)
        return calls

    return install


@pytest.fixture
def direct_connection(monkeypatch):
    """Make requests connect directly, ignoring proxy settings from the environment."""
    for var in ("http_proxy", "HTTP_PROXY", "https_proxy", "HTTPS_PROXY", "all_proxy", "ALL_PROXY"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("NO_PROXY", "127.0.0.1,localhost")


@pytest.fixture
def slow_server(direct_connection):
    """
    Local HTTP server that accepts a connection and then sends the status line
    one byte every 0.1s for a few seconds. Yields its base URL.
    """
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(("127.0.0.1", 0))
    listener.listen(1)
    listener.settimeout(5)
    stop = threading.Event()

    def serve():
        try:
            conn, _ = listener.accept()
        except OSError:
            return
        with conn:
            for _ in range(30):
                if stop.wait(0.1):
                    break
                try:
                    conn.sendall(b"H")
                except OSError:
                    break

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    yield "http://127.0.0.1:%d/" % listener.getsockname()[1]
    stop.set()
    listener.close()
    thread.join(timeout=5)

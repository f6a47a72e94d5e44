import time

import pytest
import requests
import urllib3
from urllib3.exceptions import LocationParseError

from linkrisk import html_scanner
from linkrisk.html_scanner import FetchDeadlineExceeded, inspect_page, read_limited
from linkrisk.normalizer import normalize_url


PAGE = b"<html><head><TITLE class='x'>  Welcome home </TITLE></head><body>hello</body></html>"


def test_success_records_status_title_and_bonus(fake_get, fake_response):
    calls = fake_get(fake_response(200, PAGE))
    info, outcomes = inspect_page(normalize_url("example.com"))
    assert info.status == 200
    assert info.title == "Welcome home"
    assert info.final_url == "http://example.com/"
    assert [(o.rule, o.delta) for o in outcomes] == [("http_status", 5)]

    url, kwargs = calls[0]
    assert url == "http://example.com/"
    assert kwargs["headers"]["User-Agent"] == html_scanner.USER_AGENT
    assert isinstance(kwargs["timeout"], urllib3.Timeout)
    assert kwargs["timeout"].total == 7
    assert kwargs["allow_redirects"] is True


def test_final_url_follows_redirect(fake_get, fake_response):
    fake_get(fake_response(200, PAGE, url="https://example.com/home"))
    info, _ = inspect_page(normalize_url("example.com"))
    assert info.final_url == "https://example.com/home"


def test_error_status_penalised(fake_get, fake_response):
    fake_get(fake_response(404, b"not found"))
    info, outcomes = inspect_page(normalize_url("example.com"))
    assert info.status == 404
    assert info.title is None
    assert [o.delta for o in outcomes] == [-5]


def test_redirect_status_is_neutral(fake_get, fake_response):
    fake_get(fake_response(302, b""))
    _, outcomes = inspect_page(normalize_url("example.com"))
    assert outcomes == []


def test_phishing_phrases_flat_penalty_with_count(fake_get, fake_response):
    body = b"<p>Please VERIFY YOUR ACCOUNT and enter your Credit Card</p>"
    fake_get(fake_response(200, body))
    _, outcomes = inspect_page(normalize_url("example.com"))
    content = [o for o in outcomes if o.rule == "page_content"]
    assert [o.delta for o in content] == [-15]
    assert "2" in content[0].reason


@pytest.mark.parametrize("error", [
    requests.exceptions.ConnectTimeout("slow"),
    requests.exceptions.ReadTimeout("slow"),
    requests.exceptions.ConnectionError("refused"),
    requests.exceptions.TooManyRedirects("loop"),
    FetchDeadlineExceeded("slow drip"),
    LocationParseError("exa..mple.com"),
])
def test_fetch_errors_are_absorbed(fake_get, error):
    fake_get(error=error)
    info, outcomes = inspect_page(normalize_url("https://example.com/a"))
    assert info.status is None
    assert info.title is None
    assert info.final_url == "https://example.com/a"
    assert [(o.rule, o.delta) for o in outcomes] == [("fetch", -5)]


@pytest.mark.parametrize("url", ["http://exa..mple.com", "http://" + "a" * 64 + ".com"])
def test_hosts_urllib3_rejects_are_fetch_failures(direct_connection, url):
    # no network involved: urllib3 refuses these hosts before connecting
    info, outcomes = inspect_page(normalize_url(url))
    assert info.status is None
    assert [(o.rule, o.delta) for o in outcomes] == [("fetch", -5)]


def test_slow_server_is_cut_off_at_deadline(monkeypatch, slow_server):
    monkeypatch.setattr(html_scanner, "REQUEST_TIMEOUT", 0.5)
    started = time.monotonic()
    info, outcomes = inspect_page(normalize_url(slow_server))
    elapsed = time.monotonic() - started
    assert elapsed < 2.5
    assert info.status is None
    assert info.title is None
    assert [(o.rule, o.delta) for o in outcomes] == [("fetch", -5)]


def test_only_first_50k_bytes_are_inspected(fake_get, fake_response):
    body = b"a" * 60_000 + b"<title>late</title> free gift"
    fake_get(fake_response(200, body))
    info, outcomes = inspect_page(normalize_url("example.com"))
    assert info.title is None
    assert all(o.rule != "page_content" for o in outcomes)


def test_read_limited_caps_size(fake_response):
    text = read_limited(fake_response(200, b"x" * 120_000), time.monotonic() + 60)
    assert len(text) == html_scanner.MAX_BYTES


def test_read_limited_enforces_deadline(fake_response):
    with pytest.raises(FetchDeadlineExceeded):
        read_limited(fake_response(200, PAGE), time.monotonic() - 1)


def test_utf8_assumed_without_declared_charset(fake_get, fake_response):
    page = "<title>بنك</title>".encode("utf-8")
    fake_get(fake_response(200, page, content_type="text/html"))
    info, _ = inspect_page(normalize_url("example.com"))
    assert info.title == "بنك"


def test_declared_charset_is_honoured(fake_get, fake_response):
    page = "<title>Café</title>".encode("latin-1")
    fake_get(fake_response(200, page, content_type='text/html; charset="ISO-8859-1"'))
    info, _ = inspect_page(normalize_url("example.com"))
    assert info.title == "Café"


def test_unknown_charset_falls_back_to_utf8(fake_get, fake_response):
    fake_get(fake_response(200, PAGE, content_type="text/html; charset=x-no-such-charset"))
    info, _ = inspect_page(normalize_url("example.com"))
    assert info.title == "Welcome home"

# html_scanner.py
"""
HTML scanner: fetch the live page once (safe defaults) and score what comes back.

Primary function:
    inspect_page(target: ParsedTarget) -> (HttpInfo, list[RuleOutcome])

Fetch failures never propagate: they become a small penalty and a reason.
The whole fetch runs on a worker thread so the caller gets its answer within
REQUEST_TIMEOUT even when a server drips headers or chains redirects.
"""

from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import List, Optional, Tuple
import logging
import re
import time

import requests
import urllib3
from urllib3.exceptions import LocationParseError

from linkrisk.models import HttpInfo, ParsedTarget, RuleOutcome

logger = logging.getLogger("html_scanner")

# Safety/config
REQUEST_TIMEOUT = 7  # seconds, whole request
MAX_BYTES = 50_000
CHUNK_SIZE = 4096
USER_AGENT = "Mozilla/5.0 (URL Scanner)"

WEIGHT_HTTP_OK = 5
WEIGHT_HTTP_ERROR = -5
WEIGHT_BAD_CONTENT = -15
WEIGHT_FETCH_FAILED = -5

PHISHING_PHRASES = (
    "verify your account",
    "update your account",
    "login to continue",
    "confirm your password",
    "bank account",
    "credit card",
    "paypal",
    "free gift",
    "you won",
)

TITLE_RE = re.compile(r"<title[^>]*>([^<]*)</title>", re.IGNORECASE)
CHARSET_RE = re.compile(r"charset\s*=\s*[\"']?([^\"';\s]+)", re.IGNORECASE)

# urllib3 rejects some hosts (empty or over-long labels) without wrapping the
# error in a requests exception
FETCH_ERRORS = (requests.RequestException, LocationParseError, FutureTimeout)


class FetchDeadlineExceeded(requests.Timeout):
    """The response body did not arrive within REQUEST_TIMEOUT."""


def declared_charset(resp: requests.Response) -> Optional[str]:
    m = CHARSET_RE.search(resp.headers.get("content-type", ""))
    if m:
        return m.group(1)
    return None


def read_limited(resp: requests.Response, deadline: float) -> str:
    """
    Read at most MAX_BYTES of the body, aborting once time.monotonic() passes
    `deadline`. Decodes with the charset from Content-Type, else UTF-8.
    """
    size = 0
    chunks = []
    for chunk in resp.iter_content(CHUNK_SIZE):
        if time.monotonic() > deadline:
            raise FetchDeadlineExceeded(f"page not received within {REQUEST_TIMEOUT}s")
        if not chunk:
            continue
        chunks.append(chunk)
        size += len(chunk)
        if size >= MAX_BYTES:
            break
    body = b"".join(chunks)[:MAX_BYTES]
    try:
        return body.decode(declared_charset(resp) or "utf-8", errors="replace")
    except LookupError:
        # unknown charset in Content-Type
        return body.decode("utf-8", errors="replace")


def extract_title(html: str) -> Optional[str]:
    m = TITLE_RE.search(html)
    if m:
        return m.group(1).strip()
    return None


def find_phrases(html: str) -> List[str]:
    lower = html.lower()
    return [p for p in PHISHING_PHRASES if p in lower]


def score_status(status: int) -> List[RuleOutcome]:
    if status >= 400:
        return [RuleOutcome("http_status", WEIGHT_HTTP_ERROR, f"Server returned HTTP error {status}.")]
    if 200 <= status < 300:
        return [RuleOutcome("http_status", WEIGHT_HTTP_OK, f"Server responded successfully (HTTP {status}).")]
    return []


def score_content(html: str) -> List[RuleOutcome]:
    found = find_phrases(html)
    if found:
        return [RuleOutcome("page_content", WEIGHT_BAD_CONTENT,
                            f"Found {len(found)} suspicious phrase(s) in the page content.")]
    return []


def fetch_page(url: str, deadline: float) -> Tuple[int, str, str]:
    """Return (status, final url, truncated body) for one GET of `url`."""
    headers = {"User-Agent": USER_AGENT}
    timeout = urllib3.Timeout(total=REQUEST_TIMEOUT)
    with requests.get(url, headers=headers, timeout=timeout,
                      allow_redirects=True, stream=True) as r:
        html = read_limited(r, deadline)
        return r.status_code, r.url or url, html


def inspect_page(target: ParsedTarget) -> Tuple[HttpInfo, List[RuleOutcome]]:
    """
    GET the target (following redirects) and return HttpInfo plus the
    status/content outcomes. Any fetch error yields the default HttpInfo and
    a single fetch-failed outcome.
    """
    deadline = time.monotonic() + REQUEST_TIMEOUT
    pool = ThreadPoolExecutor(max_workers=1)
    try:
        future = pool.submit(fetch_page, target.href, deadline)
        status, final_url, html = future.result(timeout=REQUEST_TIMEOUT)
    except FETCH_ERRORS as e:
        logger.warning("fetch failed for %s: %r", target.href, e)
        return HttpInfo(final_url=target.href), [
            RuleOutcome("fetch", WEIGHT_FETCH_FAILED,
                        "Could not fetch the page (the site may be slow or unavailable).")
        ]
    finally:
        # a timed-out worker finishes on its own once urllib3 gives up
        pool.shutdown(wait=False)

    info = HttpInfo(final_url=final_url, status=status, title=extract_title(html))
    logger.debug("fetched %s -> %s (%s)", target.href, final_url, status)
    return info, score_status(status) + score_content(html)

# normalizer.py
"""
URL normalizer: turn raw user input into a ParsedTarget every rule can rely on.

Parsing follows what a browser's URL parser does for http(s) URLs, so the
rules see the same string a victim's browser would: backslashes act as
slashes, numeric IPv4 shorthands become dotted quads, dot segments are
resolved and unsafe characters are percent-encoded.

Public function:
    normalize_url(raw: str) -> ParsedTarget

Example:
    >>> normalize_url("  Example.COM/a b/../login ").href
    'http://example.com/login'
    >>> normalize_url("http://0x7f.1/").host
    '127.0.0.1'
"""

import ipaddress
import re
from typing import Optional
from urllib.parse import quote, urlsplit, urlunsplit

from linkrisk.models import ParsedTarget

SCHEME_RE = re.compile(r'^https?://', re.IGNORECASE)
# characters a browser refuses inside a host
FORBIDDEN_HOST_RE = re.compile(r'[\s<>\\^|%\[\]"{}`]')
DEFAULT_PORTS = {"http": 80, "https": 443}

# printable ASCII minus each component's percent-encode set
_PRINTABLE = ''.join(chr(c) for c in range(0x21, 0x7f))
PATH_SAFE = ''.join(c for c in _PRINTABLE if c not in '"#<>?`{}')
QUERY_SAFE = ''.join(c for c in _PRINTABLE if c not in '"#<>\'')
FRAGMENT_SAFE = ''.join(c for c in _PRINTABLE if c not in '"<>`')
USERINFO_SAFE = ''.join(c for c in PATH_SAFE if c not in '/:;=@[\\]^|')

SINGLE_DOT = {'.', '%2e'}
DOUBLE_DOT = {'..', '.%2e', '%2e.', '%2e%2e'}


class InvalidURL(ValueError):
    """Raised when input cannot be turned into an absolute http(s) URL."""


def _ensure_scheme(url: str) -> str:
    if not SCHEME_RE.match(url):
        return 'http://' + url
    return url


def _slashes_for_backslashes(url: str) -> str:
    # http(s) treat '\' like '/' everywhere before the query or fragment
    m = re.search(r'[?#]', url)
    end = m.start() if m else len(url)
    return url[:end].replace('\\', '/') + url[end:]


def _encode_host(host: str) -> str:
    if host.isascii():
        return host
    try:
        return host.encode('idna').decode('ascii')
    except UnicodeError as e:
        raise InvalidURL(f"cannot encode host {host!r}") from e


def _parse_ipv4_number(part: str) -> Optional[int]:
    radix = 10
    if part[:2] in ('0x', '0X'):
        part, radix = part[2:], 16
    elif len(part) > 1 and part.startswith('0'):
        part, radix = part[1:], 8
    if not part:
        return 0
    try:
        return int(part, radix)
    except ValueError:
        return None


def _canonical_ipv4(host: str) -> Optional[str]:
    """
    Return the dotted-quad form of a host written as an IPv4 number
    (2130706433, 0x7f.0.0.1, 127.1, 0177.0.0.1), or None when the host is a
    domain name. Raises InvalidURL for hosts that end in a number but are not
    a valid address.
    """
    parts = host.split('.')
    if parts[-1] == '' and len(parts) > 1:
        parts.pop()
    last = parts[-1]
    if not last or (not last.isdigit() and _parse_ipv4_number(last) is None):
        return None

    numbers = [_parse_ipv4_number(p) if p else None for p in parts]
    if len(parts) > 4 or any(n is None for n in numbers):
        raise InvalidURL(f"malformed IPv4 host {host!r}")
    if any(n > 255 for n in numbers[:-1]) or numbers[-1] >= 256 ** (5 - len(numbers)):
        raise InvalidURL(f"IPv4 host out of range {host!r}")

    value = numbers[-1]
    for i, n in enumerate(numbers[:-1]):
        value += n * 256 ** (3 - i)
    return str(ipaddress.IPv4Address(value))


def _remove_dot_segments(path: str) -> str:
    segments = path.split('/')[1:]
    out = []
    for i, seg in enumerate(segments):
        last = i == len(segments) - 1
        if seg.lower() in DOUBLE_DOT:
            if out:
                out.pop()
            if last:
                out.append('')
        elif seg.lower() in SINGLE_DOT:
            if last:
                out.append('')
        else:
            out.append(seg)
    return '/' + '/'.join(out)


def _encode_userinfo(netloc: str) -> str:
    userinfo = netloc.rsplit('@', 1)[0]
    user, sep, password = userinfo.partition(':')
    return quote(user, safe=USERINFO_SAFE) + sep + quote(password, safe=USERINFO_SAFE)


def normalize_url(raw: str) -> ParsedTarget:
    target = _slashes_for_backslashes(_ensure_scheme(raw.strip()))
    try:
        parts = urlsplit(target)
        # .port validates the port and raises ValueError when it is garbage
        port = parts.port
    except ValueError as e:
        raise InvalidURL(str(e)) from e

    hostname = parts.hostname or ''
    if not hostname or FORBIDDEN_HOST_RE.search(hostname):
        raise InvalidURL(f"no usable host in {target!r}")
    host = _encode_host(hostname.lower())
    if ':' not in host:
        host = _canonical_ipv4(host) or host

    scheme = parts.scheme.lower()
    netloc = host
    if ':' in host:
        netloc = f'[{host}]'  # IPv6 literal
    if port is not None and port != DEFAULT_PORTS[scheme]:
        netloc = f'{netloc}:{port}'
    if '@' in parts.netloc:
        netloc = _encode_userinfo(parts.netloc) + '@' + netloc

    path = quote(_remove_dot_segments(parts.path or '/'), safe=PATH_SAFE)
    query = quote(parts.query, safe=QUERY_SAFE)
    fragment = quote(parts.fragment, safe=FRAGMENT_SAFE)
    href = urlunsplit((scheme, netloc, path, query, fragment))
    return ParsedTarget(href=href, scheme=scheme, host=host, full=href.lower())

"""URL normalisation."""

from __future__ import annotations

import re
from urllib.parse import quote, unquote, urlsplit, urlunsplit

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_VALID_ENCODED = re.compile(r"[A-Za-z0-9\-._~!$&'()*+,;=:@/\[\]%]*")
_PATH_SAFE = "/$&+,:;=@"


def reencode_url(url: str) -> str:
    """Re-encode a URL so that it complies with RFC 3986."""
    url = url.replace("[", "%5B").replace("]", "%5D")
    if any(ord(c) < 0x20 or ord(c) == 0x7F for c in url):
        raise ValueError(f"failed to parse url: {url}, invalid control character in URL")
    try:
        parts = urlsplit(url)
    except ValueError as exc:
        raise ValueError(f"failed to parse url: {url}, {exc}") from exc
    if _BAD_ESCAPE.search(parts.path) or _BAD_ESCAPE.search(parts.query):
        raise ValueError(f"failed to parse url: {url}, invalid URL escape")
    path = parts.path
    if not _VALID_ENCODED.fullmatch(path):
        path = quote(unquote(path), safe=_PATH_SAFE)
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, parts.fragment))
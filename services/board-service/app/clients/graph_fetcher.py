# app/clients/graph_fetcher.py
from __future__ import annotations

import logging
import posixpath
import re
from typing import Any, Optional, Tuple
from urllib.parse import unquote, urlsplit

import httpx

from app.config import settings
from app.errors import FetchError

log = logging.getLogger(__name__)

_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")
# RFC 3986 reserved + unreserved + "%"; anything else must be percent-encoded
_URL_CHARS = re.compile(r"[A-Za-z0-9\-._~:/?#\[\]@!$&'()*+,;=%]+")
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
# reg-name or the inside of an IP literal (hostname drops the brackets)
_HOST = re.compile(r"[A-Za-z0-9\-._~!$&'()*+,;=%:]+")
# schemes that only make sense with a host
_HIERARCHICAL = {"http", "https", "ftp", "ws", "wss", "file"}


def validate_url(s: str) -> bool:
    """True iff `s` is an absolute URL (scheme plus authority or path). No network access."""
    if not isinstance(s, str) or not _URL_CHARS.fullmatch(s) or _BAD_ESCAPE.search(s):
        return False
    try:
        parts = urlsplit(s)
        _ = parts.port  # raises on a malformed port
    except ValueError:
        return False
    if not parts.scheme or not _SCHEME.match(parts.scheme):
        return False
    if parts.scheme.lower() in _HIERARCHICAL and parts.scheme.lower() != "file":
        return bool(parts.hostname) and bool(_HOST.fullmatch(parts.hostname))
    return bool(parts.netloc or parts.path)


def is_json_url(s: str) -> bool:
    return validate_url(s) and urlsplit(s).path.endswith(".json")


def file_name_and_extension(url: str) -> Tuple[str, str]:
    """('graph', 'json') for https://host/boards/graph.json"""
    segment = posixpath.basename(unquote(urlsplit(url).path)) if validate_url(url) else url.rsplit("/", 1)[-1]
    if not segment:
        return "", ""
    name, dot, ext = segment.rpartition(".")
    if not dot:
        return segment, ""
    return name, ext


async def fetch_graph(url: str, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> Any:
    """
    GET `url` and decode the body as JSON.
    Malformed URLs, network failures, non-2xx responses and undecodable
    bodies all raise FetchError.
    """
    try:
        async with httpx.AsyncClient(
            timeout=settings.FETCH_TIMEOUT_S, follow_redirects=True, transport=transport
        ) as client:
            r = await client.get(url)
            r.raise_for_status()
            return r.json()
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        # InvalidURL is not an HTTPError; it comes from building the request
        log.warning("board.fetch.failed", extra={"url": url, "error": str(e)})
        raise FetchError(str(e) or type(e).__name__, url=url) from e
    except ValueError as e:
        # json.JSONDecodeError and UnicodeDecodeError are both ValueErrors
        log.warning("board.fetch.bad_json", extra={"url": url, "error": str(e)})
        raise FetchError(str(e), url=url) from e

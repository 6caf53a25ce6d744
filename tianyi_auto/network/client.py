"""
HTTP client configuration for router communication.

Provides session setup with browser-like headers, a cookie jar, a
bounded redirect budget and deadline-aware body reads.
"""

import time
import urllib.parse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config import MAX_REDIRECTS

_BODY_CHUNK = 1


def build_session(verify_ssl: bool = True) -> requests.Session:
    """
    Return a requests.Session configured to look like a desktop browser.

    urllib3-level retries are disabled: each call must put exactly one login
    on the wire, retries are decided by RetryPolicy.

    Args:
        verify_ssl: Whether to verify SSL certificates

    Returns:
        Configured requests.Session instance
    """
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=Retry(total=0, raise_on_status=False))
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.verify = verify_ssl
    session.max_redirects = MAX_REDIRECTS
    # Some gateways reject requests that do not look like they came from
    # the admin page in a browser.
    session.headers.update({
        "User-Agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/143.0.0.0 Safari/537.36"
        ),
        "Accept": (
            "text/html,application/xhtml+xml,application/xml;q=0.9,"
            "image/avif,image/webp,image/apng,*/*;q=0.8"
        ),
        "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
        "Cache-Control": "no-cache",
        "Pragma": "no-cache",
        "Connection": "keep-alive",
    })
    return session


def build_url(base: str, path: str) -> str:
    """
    Resolve *path* against the router base URL.

    Absolute ``http://`` / ``https://`` paths are returned unchanged.
    """
    if path.startswith(("http://", "https://")):
        return path
    return urllib.parse.urljoin(base.rstrip("/") + "/", path.lstrip("/"))


def origin_of(url: str) -> str:
    """Return ``scheme://host[:port]`` for the Origin header."""
    parsed = urllib.parse.urlsplit(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def remaining(deadline: float) -> float:
    """
    Seconds left before the monotonic *deadline*.

    Raises requests.Timeout once it has passed, so callers can hand the
    result straight to ``timeout=``.
    """
    left = deadline - time.monotonic()
    if left <= 0:
        raise requests.Timeout("attempt deadline passed before the request was sent")
    return left


def read_body(resp: requests.Response, deadline: float) -> requests.Response:
    """
    Read a ``stream=True`` response body, giving up at the monotonic *deadline*.

    requests' ``timeout`` only bounds each socket read, so a router that keeps
    trickling bytes would otherwise hold the call open indefinitely. Reading
    one byte per step returns from every read as soon as anything arrives.
    The body is cached on the response so ``.text`` works as usual.
    """
    body = bytearray()
    for chunk in resp.iter_content(chunk_size=_BODY_CHUNK):
        if time.monotonic() > deadline:
            resp.close()
            raise requests.Timeout(
                f"response body from {resp.url} not complete before the deadline"
            )
        body += chunk
    resp._content = bytes(body)
    return resp

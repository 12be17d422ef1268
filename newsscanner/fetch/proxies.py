"""Fetch raw page text through a chain of public relay services."""

from __future__ import annotations

import socket
import threading
import time
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union
from urllib.parse import quote

import requests
from bs4 import UnicodeDammit
from requests.adapters import HTTPAdapter

from newsscanner.core.errors import RetrievalError
from newsscanner.infra.logging import get_unified_logger

DEFAULT_FETCH_TIMEOUT = 8.0
READ_CHUNK_SIZE = 1024

ProxyBuilder = Callable[[str], str]


def _encode(url: str) -> str:
    return quote(url, safe="")


PROXY_BUILDERS: Dict[str, ProxyBuilder] = {
    "allorigins": lambda u: f"https://api.allorigins.win/raw?url={_encode(u)}",
    "corsproxy": lambda u: f"https://corsproxy.io/?{_encode(u)}",
    "cors.eu.org": lambda u: f"https://cors.eu.org/{u}",
    "thingproxy": lambda u: f"https://thingproxy.freeboard.io/fetch/{u}",
    "direct": lambda u: u,
}

# Relays only; "direct" must be opted into through config.
DEFAULT_PROXY_ORDER: List[str] = ["allorigins", "corsproxy", "cors.eu.org", "thingproxy"]

_HTTP_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "X-Requested-With": "XMLHttpRequest",
}

REASON_BLOCKED = (
    "the request was blocked, the website is offline, or a public proxy is unavailable"
)
REASON_TIMEOUT = "the request timed out because the website is slow to respond"


class _AttemptFailed(Exception):
    """A relay answered, but not with usable content."""


def resolve_builders(
    proxies: Optional[Sequence[Union[str, ProxyBuilder]]] = None,
) -> List[Tuple[str, ProxyBuilder]]:
    """Turn configured proxy names (or callables) into an ordered builder list."""
    out: List[Tuple[str, ProxyBuilder]] = []
    for p in proxies if proxies is not None else DEFAULT_PROXY_ORDER:
        if callable(p):
            out.append((getattr(p, "__name__", "custom"), p))
            continue
        name = str(p).strip().lower()
        if name not in PROXY_BUILDERS:
            raise ValueError(f"unknown proxy: {p!r} (known: {', '.join(PROXY_BUILDERS)})")
        out.append((name, PROXY_BUILDERS[name]))
    return out


def classify_failure(error: Optional[BaseException]) -> Tuple[str, str]:
    """Map the last attempt error to ``(kind, reason)``."""
    if error is None:
        return "other", "an unknown error occurred"
    # ConnectTimeout is both a Timeout and a ConnectionError; timeout wins.
    if isinstance(error, requests.Timeout):
        return "timeout", REASON_TIMEOUT
    if isinstance(error, requests.ConnectionError):
        return "blocked", REASON_BLOCKED
    return "other", str(error) or error.__class__.__name__


def build_session() -> requests.Session:
    s = requests.Session()
    # No transport retries: the relay chain is the retry policy.
    adapter = HTTPAdapter(max_retries=0, pool_connections=20, pool_maxsize=20)
    s.mount("http://", adapter)
    s.mount("https://", adapter)
    s.headers.update(_HTTP_HEADERS)
    return s


def _decode(raw: bytes, resp: requests.Response) -> str:
    """Decode a body, trusting the charset only when the server declared one."""
    ctype = (resp.headers.get("Content-Type") or "").lower()
    declared = [resp.encoding] if "charset=" in ctype and resp.encoding else []
    dammit = UnicodeDammit(
        raw, known_definite_encodings=declared, user_encodings=["utf-8"], is_html=True
    )
    return dammit.unicode_markup or ""


class ProxyFetcher:
    """Try each relay in order and return the first non-empty successful body.

    ``timeout`` bounds the whole attempt: connecting, headers and body. The
    body is streamed and the deadline checked between chunks. A watchdog
    shuts the socket down when the deadline passes, which ends a read that
    is still waiting for a dripping relay to fill its chunk.
    """

    def __init__(
        self,
        proxies: Optional[Sequence[Union[str, ProxyBuilder]]] = None,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.builders = resolve_builders(proxies)
        self.timeout = float(timeout)
        self.session = session if session is not None else build_session()
        self.clock = clock
        self.logger = get_unified_logger("fetch", "proxy")

    def _read_body(self, resp: requests.Response, deadline: float) -> bytes:
        chunks: List[bytes] = []
        for chunk in resp.iter_content(chunk_size=READ_CHUNK_SIZE):
            if chunk:
                chunks.append(chunk)
            if self.clock() > deadline:
                raise requests.Timeout(f"response not complete within {self.timeout:g}s")
        return b"".join(chunks)

    def _cut(self, resp: requests.Response) -> None:
        conn = getattr(getattr(resp, "raw", None), "connection", None)
        sock = getattr(conn, "sock", None)
        if sock is None:
            return
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError as e:
            self.logger.debug("socket already closed at deadline: %s", e)

    def _attempt(self, target: str) -> str:
        deadline = self.clock() + self.timeout
        resp = self.session.get(target, timeout=self.timeout, stream=True)
        watchdog = threading.Timer(max(0.0, deadline - self.clock()), self._cut, args=(resp,))
        watchdog.daemon = True
        watchdog.start()
        try:
            if not 200 <= int(resp.status_code) < 300:
                raise _AttemptFailed(f"Request failed with status: {resp.status_code}")
            raw = self._read_body(resp, deadline)
        except requests.RequestException as e:
            if self.clock() > deadline:
                raise requests.Timeout(f"response not complete within {self.timeout:g}s") from e
            raise
        finally:
            watchdog.cancel()
            resp.close()
        body = _decode(raw, resp)
        if not body.strip():
            raise _AttemptFailed("Received empty content.")
        return body

    def fetch_text(self, url: str) -> str:
        last_error: Optional[BaseException] = None
        for name, build in self.builders:
            target = build(url)
            self.logger.debug("fetch via %s: %s", name, url)
            try:
                return self._attempt(target)
            except (requests.RequestException, _AttemptFailed) as e:
                last_error = e
                self.logger.warning("proxy %s failed for %s: %s", name, url, e)
        kind, reason = classify_failure(last_error)
        raise RetrievalError(reason, kind=kind, url=url)


__all__ = [
    "ProxyFetcher",
    "PROXY_BUILDERS",
    "DEFAULT_PROXY_ORDER",
    "DEFAULT_FETCH_TIMEOUT",
    "classify_failure",
    "resolve_builders",
    "build_session",
]

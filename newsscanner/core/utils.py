from __future__ import annotations

import re
import time
from pathlib import Path
from typing import Iterable, Iterator, List, TypeVar, Union
from urllib.parse import urlparse

T = TypeVar("T")

_WS_RE = re.compile(r"\s+")


def now_stamp() -> str:
    """Return a YYYYMMDD_HHMMSS timestamp."""
    return time.strftime("%Y%m%d_%H%M%S")


def now_ms() -> int:
    """Current wall clock in epoch milliseconds."""
    return int(time.time() * 1000)


def ensure_directory(path: Union[str, Path]) -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def collapse_whitespace(text: str) -> str:
    if not text:
        return ""
    return _WS_RE.sub(" ", text).strip()


def bare_hostname(url: str) -> str:
    """Hostname of ``url`` without a leading ``www.``."""
    host = (urlparse(url).hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    return host


def chunked(items: Iterable[T], size: int) -> Iterator[List[T]]:
    size = max(1, int(size))
    block: List[T] = []
    for it in items:
        block.append(it)
        if len(block) >= size:
            yield block
            block = []
    if block:
        yield block


def unique(items: Iterable[T]) -> List[T]:
    """De-duplicate while keeping first-seen order."""
    seen = set()
    out: List[T] = []
    for it in items:
        if it in seen:
            continue
        seen.add(it)
        out.append(it)
    return out

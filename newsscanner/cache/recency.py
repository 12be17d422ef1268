"""Time-windowed store of recently attempted URLs."""

from __future__ import annotations

import json
import os
import sqlite3
from pathlib import Path
from typing import Dict, Optional, Protocol

from newsscanner.core.utils import now_ms
from newsscanner.infra.logging import get_unified_logger

DEFAULT_RECENCY_HOURS = 24.0
DEFAULT_CACHE_PATH = os.path.join(".nsc_cache", "processed_urls.json")


class RecencyStore(Protocol):
    def get(self) -> Dict[str, int]: ...

    def set(self, mapping: Dict[str, int]) -> None: ...

    def clear(self) -> None: ...


def _coerce_mapping(data: object) -> Dict[str, int]:
    out: Dict[str, int] = {}
    if not isinstance(data, dict):
        return out
    for url, ts in data.items():
        try:
            out[str(url)] = int(ts)
        except (TypeError, ValueError):
            continue
    return out


class MemoryStore:
    def __init__(self, initial: Optional[Dict[str, int]] = None) -> None:
        self.data: Dict[str, int] = dict(initial or {})

    def get(self) -> Dict[str, int]:
        return dict(self.data)

    def set(self, mapping: Dict[str, int]) -> None:
        self.data = dict(mapping)

    def clear(self) -> None:
        self.data = {}


class JsonFileStore:
    """URL -> epoch ms mapping kept in a single JSON file."""

    def __init__(self, path: str | Path = DEFAULT_CACHE_PATH) -> None:
        self.path = Path(path)
        self.logger = get_unified_logger("cache", "json")

    def get(self) -> Dict[str, int]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (UnicodeDecodeError, ValueError, OSError) as e:
            self.logger.warning("ignoring unreadable cache file %s: %s", self.path, e)
            return {}
        return _coerce_mapping(data)

    def set(self, mapping: Dict[str, int]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(mapping, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(self.path)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class SqliteStore:
    """Same mapping in a SQLite table, for caches shared by several runners."""

    def __init__(self, path: str | Path) -> None:
        self.path = str(path)
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.path)
        try:
            conn.execute(
                "CREATE TABLE IF NOT EXISTS processed_urls (url TEXT PRIMARY KEY, last_seen INTEGER)"
            )
        except sqlite3.DatabaseError:
            conn.close()
            raise
        return conn

    def get(self) -> Dict[str, int]:
        try:
            conn = self._connect()
            try:
                rows = conn.execute("SELECT url, last_seen FROM processed_urls").fetchall()
            finally:
                conn.close()
        except sqlite3.DatabaseError as e:
            get_unified_logger("cache", "sqlite").warning(
                "ignoring unreadable cache database %s: %s", self.path, e
            )
            return {}
        return _coerce_mapping(dict(rows))

    def set(self, mapping: Dict[str, int]) -> None:
        conn = self._connect()
        try:
            with conn:
                conn.execute("DELETE FROM processed_urls")
                conn.executemany(
                    "INSERT INTO processed_urls(url, last_seen) VALUES(?, ?)",
                    list(mapping.items()),
                )
        finally:
            conn.close()

    def clear(self) -> None:
        conn = self._connect()
        try:
            with conn:
                conn.execute("DELETE FROM processed_urls")
        finally:
            conn.close()


def build_store(backend: str = "json", path: Optional[str] = None) -> RecencyStore:
    b = (backend or "json").strip().lower()
    if b == "memory":
        return MemoryStore()
    if b == "sqlite":
        return SqliteStore(path or os.path.join(".nsc_cache", "processed_urls.sqlite3"))
    if b == "json":
        return JsonFileStore(path or DEFAULT_CACHE_PATH)
    raise ValueError(f"unknown cache backend: {backend!r}")


class RecencyCache:
    """URL -> last-seen timestamp with a sliding validity window.

    Lifecycle per scan: :meth:`load`, :meth:`prune`, reads, :meth:`mark_seen`,
    then one :meth:`persist`. The cache only decides what gets re-fetched;
    it never changes what a scan returns for the URLs it does fetch.
    """

    def __init__(self, store: RecencyStore, window_hours: float = DEFAULT_RECENCY_HOURS) -> None:
        self.store = store
        self.window_ms = int(float(window_hours) * 3600 * 1000)
        self.entries: Dict[str, int] = {}
        self.logger = get_unified_logger("cache", "recency")

    def load(self) -> "RecencyCache":
        self.entries = dict(self.store.get())
        return self

    def prune(self, now: Optional[int] = None) -> int:
        """Drop expired entries; returns how many were removed."""
        t = now_ms() if now is None else int(now)
        expired = [u for u, ts in self.entries.items() if t - ts > self.window_ms]
        for u in expired:
            del self.entries[u]
        return len(expired)

    def is_fresh(self, url: str, now: Optional[int] = None) -> bool:
        ts = self.entries.get(url)
        if ts is None:
            return False
        t = now_ms() if now is None else int(now)
        return t - ts <= self.window_ms

    def mark_seen(self, url: str, ts: Optional[int] = None) -> None:
        self.entries[url] = now_ms() if ts is None else int(ts)

    def clear(self) -> None:
        self.entries = {}
        self.store.clear()

    def persist(self) -> None:
        try:
            self.store.set(dict(self.entries))
        except (OSError, sqlite3.Error) as e:
            self.logger.warning("could not persist recency cache: %s", e)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, url: object) -> bool:
        return isinstance(url, str) and self.is_fresh(url)


__all__ = [
    "RecencyCache",
    "RecencyStore",
    "MemoryStore",
    "JsonFileStore",
    "SqliteStore",
    "build_store",
    "DEFAULT_RECENCY_HOURS",
]

"""All-settled batch execution on a thread pool."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class Settled(Generic[R]):
    value: Optional[R] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def settle_all(fn: Callable[[T], R], items: Sequence[T], max_workers: Optional[int] = None) -> List[Settled[R]]:
    """Run ``fn`` over ``items`` concurrently and wait for every one of them.

    Never short-circuits: each item yields a value or the exception it raised,
    in submission order regardless of completion order.
    """
    if not items:
        return []
    workers = max(1, int(max_workers or len(items)))
    out: List[Settled[R]] = []
    with ThreadPoolExecutor(max_workers=workers) as ex:
        futs = [ex.submit(fn, it) for it in items]
        for f in futs:
            try:
                out.append(Settled(value=f.result()))
            except Exception as e:
                out.append(Settled(error=e))
    return out

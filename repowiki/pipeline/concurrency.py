"""Bounded fan-out used for per-subsystem stages and file fetches."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def run_bounded(func: Callable[[T], R], items: Sequence[T], *, max_workers: int) -> List[R]:
    """Apply ``func`` to every item with at most ``max_workers`` threads.

    Results keep input order. The first failure is re-raised once in-flight
    work has finished.
    """
    if not items:
        return []
    workers = max(1, min(max_workers, len(items)))
    if workers == 1:
        return [func(item) for item in items]
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="repowiki") as executor:
        futures = [executor.submit(func, item) for item in items]
        return [future.result() for future in futures]


__all__ = ["run_bounded"]

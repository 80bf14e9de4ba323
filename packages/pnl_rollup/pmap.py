"""Bounded-concurrency ordered map over a ``ThreadPoolExecutor``.

Used at the I/O edge of the package: fetching raw rows from several source
integrations at once, and aggregating large record sets in shards. The core
transformation and rollup functions stay synchronous.

- ``concurrency`` caps how many mapper calls run at the same time.
- Results come back in input order regardless of completion order.
- ``stop_on_error=True`` (default) re-raises the first failure and cancels
  work that has not started; ``False`` waits for everything and raises an
  ``ExceptionGroup`` with every failure.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import TypeVar

InT = TypeVar("InT")
OutT = TypeVar("OutT")

MAX_WORKERS_ENV = "PNL_FETCH_MAX_WORKERS"
DEFAULT_MAX_WORKERS = 4


def resolve_max_workers(explicit: int | None = None) -> int:
    """Return ``explicit`` or the ``PNL_FETCH_MAX_WORKERS`` setting (default 4)."""

    if explicit is not None:
        return explicit
    raw = (os.getenv(MAX_WORKERS_ENV) or "").strip()
    if not raw:
        return DEFAULT_MAX_WORKERS
    try:
        value = int(raw)
    except ValueError as e:
        raise ValueError(f"{MAX_WORKERS_ENV} must be an integer, got {raw!r}") from e
    if value < 1:
        raise ValueError(f"{MAX_WORKERS_ENV} must be >= 1, got {value}")
    return value


def p_map(
    iterable: Iterable[InT],
    mapper: Callable[[InT], OutT],
    *,
    concurrency: int,
    stop_on_error: bool = True,
) -> list[OutT]:
    """Apply ``mapper`` to every item with at most ``concurrency`` in flight."""

    if not isinstance(concurrency, int) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")

    pending = enumerate(iterable)
    results: dict[int, OutT] = {}
    errors: list[Exception] = []
    index_of: dict[Future, int] = {}

    with ThreadPoolExecutor(max_workers=concurrency) as pool:

        def submit_next() -> Future | None:
            for idx, item in pending:
                fut = pool.submit(mapper, item)
                index_of[fut] = idx
                return fut
            return None

        in_flight: set[Future] = set()
        while len(in_flight) < concurrency and (fut := submit_next()) is not None:
            in_flight.add(fut)

        while in_flight:
            done, in_flight = wait(in_flight, return_when=FIRST_COMPLETED)
            for fut in done:
                idx = index_of.pop(fut)
                try:
                    results[idx] = fut.result()
                except Exception as e:  # noqa: BLE001
                    if stop_on_error:
                        pool.shutdown(wait=False, cancel_futures=True)
                        raise
                    errors.append(e)
                if (nxt := submit_next()) is not None:
                    in_flight.add(nxt)

    if errors:
        raise ExceptionGroup("p_map: one or more mapper calls failed", errors)
    return [results[i] for i in sorted(results)]


__all__ = ["DEFAULT_MAX_WORKERS", "MAX_WORKERS_ENV", "p_map", "resolve_max_workers"]

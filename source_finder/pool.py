"""
Bounded fetch-analyze pool.

A fixed number of worker threads drain a queue of candidate indices. Each
worker owns one HTTP session and writes its result into the slot matching
the index, so output order follows input order whatever the completion
order. A failing task leaves `None` in its slot and never stops siblings.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, List, Optional, Sequence, TypeVar

import requests

from .config import WORKER_COUNT

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def run_pool(
    items: Sequence[T],
    task: Callable[[T, requests.Session], R],
    workers: int = WORKER_COUNT,
    session_factory: Callable[[], requests.Session] = requests.Session,
) -> List[Optional[R]]:
    """Run `task` over every item with at most `workers` in flight; blocks until all settle."""
    results: List[Optional[R]] = [None] * len(items)
    if not items:
        return results

    indices: "queue.Queue[int]" = queue.Queue()
    for i in range(len(items)):
        indices.put(i)

    def worker() -> None:
        try:
            session = session_factory()
        except Exception as e:
            logger.warning(f"Worker could not open a session: {e}")
            return
        try:
            while True:
                try:
                    i = indices.get_nowait()
                except queue.Empty:
                    return
                try:
                    results[i] = task(items[i], session)
                except Exception as e:
                    logger.info(f"Candidate {i} failed: {e}")
                    results[i] = None
        finally:
            session.close()

    width = max(1, min(workers, len(items)))
    threads = [threading.Thread(target=worker, name=f"analyze-{n}", daemon=True) for n in range(width)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results

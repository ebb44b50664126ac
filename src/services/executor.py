from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import threading
from typing import Callable, List, Optional, Sequence, TypeVar

from loguru import logger

T = TypeVar("T")
R = TypeVar("R")


def run_all(
    items: Sequence[T],
    concurrency: int,
    worker: Callable[[T], R],
    *,
    name: str = "scan-worker",
) -> List[Optional[R]]:
    """Run ``worker`` over ``items`` on a fixed number of threads.

    Workers pull the next index from a shared cursor and write the result back
    into the matching slot, so ``results[i]`` always belongs to ``items[i]``.
    A task that raises is logged and leaves ``None`` in its slot.
    """
    items = list(items)
    results: List[Optional[R]] = [None] * len(items)
    width = max(1, concurrency)
    cursor = 0
    cursor_lock = threading.Lock()

    def next_index() -> int | None:
        nonlocal cursor
        with cursor_lock:
            if cursor >= len(items):
                return None
            index = cursor
            cursor += 1
            return index

    def loop() -> None:
        while True:
            index = next_index()
            if index is None:
                return
            try:
                results[index] = worker(items[index])
            except Exception as exc:  # noqa: BLE001
                logger.opt(exception=exc).error("worker task failed", index=index)

    with ThreadPoolExecutor(max_workers=width, thread_name_prefix=name) as pool:
        futures = [pool.submit(loop) for _ in range(width)]
        for future in futures:
            future.result()
    return results

"""Apply a function to every element of a list using several threads."""

from __future__ import annotations

import threading
from collections.abc import Callable, MutableSequence
from typing import TypeVar

T = TypeVar("T")

__all__ = ["apply_function"]


def apply_function(
    data: MutableSequence[T],
    transform: Callable[[T], T],
    thread_count: int = 1,
) -> None:
    """Replace each element of ``data`` with ``transform(element)`` in place.

    The list is split into ``min(thread_count, len(data))`` contiguous chunks
    of nearly equal size, the first chunks taking one extra element each when
    the split is uneven; each chunk is processed by its own thread.
    """
    if not data:
        return

    effective = min(thread_count, len(data))
    if effective <= 1:
        data[:] = [transform(item) for item in data]
        return

    chunk, remainder = divmod(len(data), effective)

    def work(start: int, end: int) -> None:
        data[start:end] = [transform(item) for item in data[start:end]]

    threads = []
    start = 0
    for part in range(effective):
        end = start + chunk + (1 if part < remainder else 0)
        threads.append(threading.Thread(target=work, args=(start, end)))
        start = end

    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
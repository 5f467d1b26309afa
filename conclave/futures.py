"""Running work on other threads and collecting results or exceptions."""

from __future__ import annotations

import argparse
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import Executor, ThreadPoolExecutor
from functools import reduce
from typing import Any, Optional

__all__ = [
    "worker_function",
    "run_worker",
    "adder",
    "multiplier",
    "divider",
    "run_pipeline",
    "main",
]


def worker_function(n: int) -> int:
    """Double ``n``; the value 228 is rejected."""
    if n == 228:
        raise RuntimeError("Invalid value")
    return n * 2


def run_worker(n: int) -> Optional[int]:
    """Run ``worker_function`` on another thread and report its outcome.

    Returns the result, or None if the worker raised.
    """
    with ThreadPoolExecutor(max_workers=1) as executor:
        future = executor.submit(worker_function, n)
        try:
            result = future.result()
        except Exception as exc:
            print(f"Exception caught: {exc}")
            return None
    print(f"Result: {result}")
    return result


def adder(i: int) -> int:
    print(f"Adder: {i}", flush=True)
    return i + 10


def multiplier(i: int) -> int:
    print(f"Multiplier: {i}", flush=True)
    return i * 2


def divider(i: int) -> int:
    """Divide by three, truncating toward zero."""
    print(f"Divider: {i}", flush=True)
    quotient = abs(i) // 3
    return quotient if i >= 0 else -quotient


def run_pipeline(
    executor: Executor, value: Any, steps: Iterable[Callable[[Any], Any]]
) -> Any:
    """Feed ``value`` through ``steps`` in order on ``executor`` and wait for the result.

    An exception raised by any step stops the chain and is raised here.
    """
    chain = list(steps)
    future = executor.submit(lambda: reduce(lambda acc, step: step(acc), chain, value))
    return future.result()


def _square(i: int) -> int:
    print(f"Executing task for {i}", flush=True)
    return i * i


def _error_spawner(i: int) -> int:
    """Reject whatever value reaches this step of the chain."""
    error = RuntimeError("Some error")
    error.rejected_value = i
    raise error


def _demo_workers() -> None:
    run_worker(10)
    run_worker(228)


def _demo_continuations() -> None:
    with ThreadPoolExecutor(max_workers=3) as pool:
        result = run_pipeline(pool, 20, [adder, multiplier, divider])
        print(f"Result: {result}")
        try:
            result = run_pipeline(
                pool, 20, [adder, multiplier, _error_spawner, divider]
            )
            print(f"Result: {result}")
        except Exception as exc:
            print(f"Exception caught: {exc}")


def _demo_when_all() -> None:
    with ThreadPoolExecutor(max_workers=3) as pool:
        print("Before sync_wait", flush=True)
        futures = [pool.submit(_square, i) for i in range(3)]
        results = [future.result() for future in futures]
    print(" ".join(str(r) for r in results))


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run one of the future and continuation demonstrations."""
    parser = argparse.ArgumentParser(description="Futures and continuations.")
    parser.add_argument(
        "demo",
        nargs="?",
        choices=["workers", "continuations", "when-all"],
        default="workers",
    )
    args = parser.parse_args(argv)
    demos = {
        "workers": _demo_workers,
        "continuations": _demo_continuations,
        "when-all": _demo_when_all,
    }
    demos[args.demo]()
    return 0
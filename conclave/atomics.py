"""An atomic integer and demonstrations of atomic read-modify-write operations."""

from __future__ import annotations

import argparse
import threading
import time
from collections.abc import Callable, Sequence
from typing import Optional

__all__ = ["AtomicInt", "main"]


class AtomicInt:
    """An integer whose every operation is performed atomically."""

    def __init__(self, value: int = 0) -> None:
        self._value = value
        self._lock = threading.Lock()

    def load(self) -> int:
        """Return the current value."""
        with self._lock:
            return self._value

    def store(self, value: int) -> None:
        """Replace the current value."""
        with self._lock:
            self._value = value

    def exchange(self, value: int) -> int:
        """Replace the current value and return the previous one."""
        with self._lock:
            previous, self._value = self._value, value
            return previous

    def fetch_add(self, delta: int) -> int:
        """Add ``delta`` and return the value held before the addition."""
        with self._lock:
            previous = self._value
            self._value += delta
            return previous

    def fetch_sub(self, delta: int) -> int:
        """Subtract ``delta`` and return the value held before the subtraction."""
        with self._lock:
            previous = self._value
            self._value -= delta
            return previous

    def compare_exchange(self, expected: int, desired: int) -> tuple[bool, int]:
        """Store ``desired`` if the value equals ``expected``.

        Returns whether the exchange happened and the value that was observed.
        """
        with self._lock:
            current = self._value
            if current == expected:
                self._value = desired
                return True, current
            return False, current

    def __repr__(self) -> str:
        return f"AtomicInt({self.load()})"


def _report_compare_exchanges(x: AtomicInt, attempts: int) -> None:
    expected = 0
    for _ in range(attempts):
        exchanged, expected = x.compare_exchange(expected, 322)
        print(f"Actual value: {expected}, exchanged: {str(exchanged).lower()}")


def _show_operations() -> None:
    x = AtomicInt(100)

    print(f"Initial value:{x.load()}")
    print(f"Initial value: {x.load()}")

    x.store(1337)
    print(f"Value after assignment: {x.load()}")

    x.store(228)
    print(f"Value after store: {x.load()}")

    previous = x.exchange(322)
    print(f"Before exchange: {previous}, after exchange: {x.load()}")

    previous = x.fetch_add(1)
    print(f"Before fetch_add: {previous}, after fetch_add: {x.load()}")

    previous = x.fetch_sub(10)
    print(f"Before fetch_sub: {previous}, after fetch_sub: {x.load()}")

    # Strong, then weak: both behave the same way here.
    _report_compare_exchanges(x, 2)
    _report_compare_exchanges(x, 2)


def _cas_decrement(x: AtomicInt) -> None:
    expected = x.load()
    time.sleep(0)
    while expected > 0:
        time.sleep(0)
        _, expected = x.compare_exchange(expected, expected - 100)


def _racy_decrement(x: AtomicInt) -> None:
    if x.load() > 0:
        time.sleep(0)
        x.fetch_sub(100)


def _count_outcomes(runs: int, decrement: Callable[[AtomicInt], None]) -> tuple[int, int]:
    correct = incorrect = 0
    for _ in range(runs):
        x = AtomicInt(100)
        threads = [threading.Thread(target=decrement, args=(x,)) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        if x.load() == 0:
            correct += 1
        else:
            incorrect += 1
    return correct, incorrect


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run one of the atomic-operation demonstrations."""
    parser = argparse.ArgumentParser(description="Atomic operation demonstrations.")
    parser.add_argument(
        "demo",
        nargs="?",
        choices=["operations", "cas", "race"],
        default="operations",
    )
    parser.add_argument("--runs", type=int, default=10_000)
    args = parser.parse_args(argv)

    if args.demo == "operations":
        _show_operations()
        return 0

    decrement = _cas_decrement if args.demo == "cas" else _racy_decrement
    correct, incorrect = _count_outcomes(args.runs, decrement)
    print(f"Correct value: {correct}, incorrect value: {incorrect}")
    return 0
"""Mutual-exclusion locks and a one-shot latch built from simple primitives."""

from __future__ import annotations

import threading
import time

__all__ = ["FutexMutex", "Latch", "Spinlock", "CVLock"]


class FutexMutex:
    """A three-state mutex: 0 unlocked, 1 locked, 2 locked with waiters.

    Uncontended lock and unlock only touch the state word. Contended
    waiters sleep until an unlock wakes one of them.
    """

    _UNLOCKED = 0
    _LOCKED = 1
    _CONTENDED = 2

    def __init__(self) -> None:
        self._state = self._UNLOCKED
        self._word = threading.Condition()

    def _compare_exchange(self, expected: int, desired: int) -> tuple[bool, int]:
        with self._word:
            current = self._state
            if current == expected:
                self._state = desired
                return True, current
            return False, current

    def _exchange(self, desired: int) -> int:
        with self._word:
            previous = self._state
            self._state = desired
            return previous

    def _futex_wait(self, expected: int) -> None:
        with self._word:
            if self._state == expected:
                self._word.wait()

    def _futex_wake(self, count: int) -> None:
        with self._word:
            self._word.notify(count)

    def lock(self) -> None:
        """Acquire the mutex, sleeping while another thread holds it."""
        acquired, current = self._compare_exchange(self._UNLOCKED, self._LOCKED)
        if acquired:
            return
        while True:
            if (
                current == self._CONTENDED
                or self._exchange(self._CONTENDED) != self._UNLOCKED
            ):
                self._futex_wait(self._CONTENDED)
            acquired, current = self._compare_exchange(
                self._UNLOCKED, self._CONTENDED
            )
            if acquired:
                return

    def try_lock(self) -> bool:
        """Acquire the mutex if it is free; return whether it was acquired."""
        acquired, _ = self._compare_exchange(self._UNLOCKED, self._LOCKED)
        return acquired

    def unlock(self) -> None:
        """Release the mutex and wake one waiter if there are any."""
        with self._word:
            previous = self._state
            if previous == self._UNLOCKED:
                raise RuntimeError("unlock of an unlocked FutexMutex")
            self._state = previous - 1
        if previous != self._LOCKED:
            with self._word:
                self._state = self._UNLOCKED
            self._futex_wake(1)

    def __enter__(self) -> FutexMutex:
        self.lock()
        return self

    def __exit__(self, *args: object) -> None:
        self.unlock()


class Latch:
    """A single-use countdown: waiters are released once the count reaches zero."""

    def __init__(self, count: int) -> None:
        if count < 0:
            raise ValueError("Latch count must be >= 0")
        self._count = count
        self._cond = threading.Condition()

    @property
    def count(self) -> int:
        with self._cond:
            return self._count

    def count_down(self) -> None:
        """Decrement the counter; the last call wakes every waiter."""
        with self._cond:
            if self._count == 0:
                raise ValueError("Latch counted down below zero")
            self._count -= 1
            if self._count == 0:
                self._cond.notify_all()

    def wait(self) -> None:
        """Block until the counter reaches zero."""
        with self._cond:
            self._cond.wait_for(lambda: self._count == 0)

    def arrive_and_wait(self) -> None:
        """Count down once, then wait for the others."""
        self.count_down()
        self.wait()


class Spinlock:
    """A busy-waiting lock built on an atomic test-and-set flag."""

    def __init__(self) -> None:
        self._flag = threading.Lock()

    def lock(self) -> None:
        """Spin until the flag is acquired."""
        while not self._flag.acquire(blocking=False):
            time.sleep(0)

    def unlock(self) -> None:
        """Clear the flag."""
        self._flag.release()

    def __enter__(self) -> Spinlock:
        self.lock()
        return self

    def __exit__(self, *args: object) -> None:
        self.unlock()


class CVLock:
    """A lock made from a mutex, a condition variable and a ``locked`` flag."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._locked = False

    def lock(self) -> None:
        """Wait until the lock is free, then take it."""
        with self._cond:
            while self._locked:
                self._cond.wait()
            self._locked = True

    def unlock(self) -> None:
        """Release the lock and wake one waiter."""
        with self._cond:
            if not self._locked:
                raise RuntimeError("unlock of an unlocked CVLock")
            self._locked = False
            self._cond.notify()

    def __enter__(self) -> CVLock:
        self.lock()
        return self

    def __exit__(self, *args: object) -> None:
        self.unlock()
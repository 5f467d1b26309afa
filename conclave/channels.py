"""Thread-safe channels for passing values between producer and consumer threads."""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Iterator
from typing import Generic, TypeVar

T = TypeVar("T")

__all__ = ["ChannelClosed", "BufferedChannel", "UnbufferedChannel"]


class ChannelClosed(RuntimeError):
    """Raised when a value is sent into a channel that has been closed."""


class BufferedChannel(Generic[T]):
    """A bounded FIFO channel.

    ``send`` blocks while the buffer is full and ``recv`` blocks while it is
    empty. After ``close`` no new values are accepted, but values already in
    the buffer can still be received.
    """

    def __init__(self, size: int) -> None:
        if size < 1:
            raise ValueError("BufferedChannel: capacity must be >= 1")
        self._capacity = size
        self._queue: deque[T] = deque()
        self._closed = False
        self._lock = threading.Lock()
        self._can_send = threading.Condition(self._lock)
        self._can_recv = threading.Condition(self._lock)

    @property
    def capacity(self) -> int:
        return self._capacity

    def send(self, value: T) -> None:
        """Put a value into the channel, waiting for free space if needed."""
        with self._lock:
            self._can_send.wait_for(
                lambda: self._closed or len(self._queue) < self._capacity
            )
            if self._closed:
                raise ChannelClosed("BufferedChannel is closed")
            self._queue.append(value)
            self._can_recv.notify()

    def _take(self) -> tuple[bool, T | None]:
        with self._lock:
            self._can_recv.wait_for(lambda: self._closed or bool(self._queue))
            if not self._queue:
                return False, None
            value = self._queue.popleft()
            self._can_send.notify()
            return True, value

    def recv(self) -> T | None:
        """Take the next value; return None once the channel is closed and drained."""
        return self._take()[1]

    def close(self) -> None:
        """Close the channel and wake every waiting sender and receiver."""
        with self._lock:
            self._closed = True
            self._can_send.notify_all()
            self._can_recv.notify_all()

    def __iter__(self) -> Iterator[T]:
        while True:
            ok, value = self._take()
            if not ok:
                return
            yield value  # type: ignore[misc]


class UnbufferedChannel(Generic[T]):
    """A rendezvous channel: ``send`` returns only after a receiver took the value.

    Closing the channel makes pending and future ``send`` calls raise
    ``ChannelClosed`` and makes ``recv`` return None.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._closed = False
        self._slot_full = False
        self._slot: T | None = None
        self._offered = 0
        self._taken = 0

    def send(self, value: T) -> None:
        """Hand a value to a receiver, waiting until one has taken it."""
        with self._cond:
            self._cond.wait_for(lambda: self._closed or not self._slot_full)
            if self._closed:
                raise ChannelClosed("UnbufferedChannel is closed")
            self._slot = value
            self._slot_full = True
            self._offered += 1
            ticket = self._offered
            self._cond.notify_all()
            self._cond.wait_for(lambda: self._closed or self._taken >= ticket)
            if self._taken < ticket:
                # Closed before anyone took the value: withdraw it.
                self._slot = None
                self._slot_full = False
                self._cond.notify_all()
                raise ChannelClosed("UnbufferedChannel is closed")

    def _take(self) -> tuple[bool, T | None]:
        with self._cond:
            self._cond.wait_for(lambda: self._closed or self._slot_full)
            if not self._slot_full:
                return False, None
            value = self._slot
            self._slot = None
            self._slot_full = False
            self._taken += 1
            self._cond.notify_all()
            return True, value

    def recv(self) -> T | None:
        """Receive a value from a sender; return None once the channel is closed."""
        return self._take()[1]

    def close(self) -> None:
        """Close the channel and wake every waiting sender and receiver."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def __iter__(self) -> Iterator[T]:
        while True:
            ok, value = self._take()
            if not ok:
                return
            yield value  # type: ignore[misc]
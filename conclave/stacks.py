"""LIFO stacks shared between a producer and a consumer thread."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")

__all__ = ["LockedStack", "LinkedStack", "BoundedStack"]


class LockedStack(Generic[T]):
    """An unbounded stack guarded by a single mutex."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: list[T] = []

    def push(self, value: T) -> None:
        with self._lock:
            self._items.append(value)

    def pop(self) -> Optional[T]:
        """Remove and return the top value, or None if the stack is empty."""
        with self._lock:
            return self._items.pop() if self._items else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


@dataclass
class _Node(Generic[T]):
    data: T
    next: Optional[_Node[T]] = None


class LinkedStack(Generic[T]):
    """An unbounded stack of linked nodes whose head is swapped by compare-and-swap."""

    def __init__(self) -> None:
        self._head: Optional[_Node[T]] = None
        self._cas_lock = threading.Lock()

    def _compare_exchange(
        self, expected: Optional[_Node[T]], desired: Optional[_Node[T]]
    ) -> tuple[bool, Optional[_Node[T]]]:
        with self._cas_lock:
            current = self._head
            if current is expected:
                self._head = desired
                return True, current
            return False, current

    def push(self, value: T) -> None:
        node = _Node(value, self._head)
        while True:
            swapped, current = self._compare_exchange(node.next, node)
            if swapped:
                return
            node.next = current

    def pop(self) -> Optional[T]:
        """Remove and return the top value, or None if the stack is empty."""
        old_head = self._head
        while old_head is not None:
            swapped, current = self._compare_exchange(old_head, old_head.next)
            if swapped:
                return old_head.data
            old_head = current
        return None

    def __len__(self) -> int:
        length = 0
        node = self._head
        while node is not None:
            length += 1
            node = node.next
        return length


class BoundedStack(Generic[T]):
    """A stack over a fixed-capacity buffer; ``push`` fails when it is full."""

    def __init__(self, capacity: int) -> None:
        if capacity < 0:
            raise ValueError("BoundedStack capacity must be >= 0")
        self._capacity = capacity
        self._buffer: list[Optional[T]] = [None] * capacity
        self._top = 0
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def push(self, value: T) -> bool:
        """Push a value; return False without storing it if the stack is full."""
        with self._lock:
            if self._top == self._capacity:
                return False
            self._buffer[self._top] = value
            self._top += 1
            return True

    def pop(self) -> Optional[T]:
        """Remove and return the top value, or None if the stack is empty."""
        with self._lock:
            if self._top == 0:
                return None
            self._top -= 1
            value = self._buffer[self._top]
            self._buffer[self._top] = None
            return value

    def __len__(self) -> int:
        with self._lock:
            return self._top
"""A multi-producer, single-consumer message queue in named shared memory.

The region starts with a metadata block (magic, protocol version, slot
count, payload size, head and tail counters) followed by a ring of slots.
Each slot has a ``ready`` flag, the message type and length, and a
fixed-size payload area. Updates to the shared counters and flags are made
under an exclusive file lock on the region, so separate processes and
threads can use one queue at the same time.
"""

from __future__ import annotations

import fcntl
import mmap
import os
import struct
import tempfile
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

__all__ = [
    "MAGIC",
    "PROTOCOL_VERSION",
    "DEFAULT_PAYLOAD_SIZE",
    "QueueError",
    "SharedMemoryRegion",
    "ProducerNode",
    "ConsumerNode",
    "unlink_region",
]

MAGIC = 0x4D505351  # "MPSQ"
PROTOCOL_VERSION = 1
DEFAULT_PAYLOAD_SIZE = 256

# magic, protocol version, slot count, payload size, head, tail
_META = struct.Struct("=IIIIQQ")
_HEAD_OFFSET = 16
_TAIL_OFFSET = 24
# ready, message type, message length
_SLOT = struct.Struct("=III")
_U32 = struct.Struct("=I")
_U64 = struct.Struct("=Q")
_U32_MAX = 0xFFFFFFFF

_SHM_DIR = Path("/dev/shm") if Path("/dev/shm").is_dir() else Path(tempfile.gettempdir())


class QueueError(RuntimeError):
    """Raised when the shared memory cannot be opened, mapped or validated."""


def _shm_path(name: str) -> Path:
    tail = name[1:]
    if not tail or "/" in tail:
        raise QueueError("shm_open failed")
    return _SHM_DIR / tail


def unlink_region(name: str) -> None:
    """Remove the named shared-memory region."""
    os.unlink(_shm_path(name))


class SharedMemoryRegion:
    """A named shared-memory mapping laid out as a queue.

    With ``create`` the region is sized to ``size`` bytes and its metadata
    is initialised; otherwise an existing, initialised region of at least
    ``size`` bytes is attached to.
    """

    def __init__(self, name: str, size: int, create: bool = False) -> None:
        if not name or not name.startswith("/"):
            raise ValueError("shm path must start with '/'")
        if size < _META.size + _SLOT.size + DEFAULT_PAYLOAD_SIZE:
            raise ValueError("shared memory size is too small")

        self._name = name
        self._size = size
        self._fd = -1
        self._map: Optional[mmap.mmap] = None
        self._thread_lock = threading.Lock()
        self._slot_count = 0
        self._payload_size = 0

        path = _shm_path(name)
        try:
            self._fd = os.open(path, os.O_RDWR | os.O_CREAT, 0o666)
        except OSError as exc:
            raise QueueError("shm_open failed") from exc

        try:
            if create:
                try:
                    os.ftruncate(self._fd, size)
                except OSError as exc:
                    raise QueueError("ftruncate failed") from exc
            else:
                try:
                    actual = os.fstat(self._fd).st_size
                except OSError as exc:
                    raise QueueError("fstat failed") from exc
                if actual < size:
                    raise QueueError("existing shm is smaller than requested size")

            try:
                self._map = mmap.mmap(self._fd, size)
            except (OSError, ValueError) as exc:
                raise QueueError("mmap failed") from exc

            if create:
                self._initialize()
            else:
                self._validate()
        except BaseException:
            self.close()
            raise

    @property
    def name(self) -> str:
        return self._name

    @property
    def size(self) -> int:
        return self._size

    @property
    def slot_count(self) -> int:
        return self._slot_count

    @property
    def payload_size(self) -> int:
        return self._payload_size

    def _initialize(self) -> None:
        with self._atomic() as mem:
            mem[:] = bytes(self._size)
            payload_size = DEFAULT_PAYLOAD_SIZE
            slot_count = (self._size - _META.size) // (_SLOT.size + payload_size)
            if slot_count == 0:
                raise QueueError("slotCount is zero")
            slot_count = min(slot_count, _U32_MAX)
            _META.pack_into(
                mem, 0, MAGIC, PROTOCOL_VERSION, slot_count, payload_size, 0, 0
            )
        self._slot_count = slot_count
        self._payload_size = payload_size

    def _validate(self) -> None:
        with self._atomic() as mem:
            magic, version, slot_count, payload_size, _, _ = _META.unpack_from(mem, 0)
        if magic != MAGIC:
            raise QueueError("queue magic mismatch")
        if version != PROTOCOL_VERSION:
            raise QueueError("protocol version mismatch")
        if slot_count == 0:
            raise QueueError("queue is not initialized")
        self._slot_count = slot_count
        self._payload_size = payload_size

    @contextmanager
    def _atomic(self) -> Iterator[mmap.mmap]:
        if self._map is None:
            raise QueueError("shared memory region is closed")
        with self._thread_lock:
            fcntl.flock(self._fd, fcntl.LOCK_EX)
            try:
                yield self._map
            finally:
                fcntl.flock(self._fd, fcntl.LOCK_UN)

    @staticmethod
    def _counters(mem: mmap.mmap) -> tuple[int, int]:
        head = _U64.unpack_from(mem, _HEAD_OFFSET)[0]
        tail = _U64.unpack_from(mem, _TAIL_OFFSET)[0]
        return head, tail

    def _slot_offset(self, index: int) -> int:
        slot = index % self._slot_count
        return _META.size + slot * (_SLOT.size + self._payload_size)

    def close(self) -> None:
        """Unmap the region and close its descriptor."""
        if self._map is not None:
            self._map.close()
            self._map = None
        if self._fd >= 0:
            os.close(self._fd)
            self._fd = -1

    def __enter__(self) -> SharedMemoryRegion:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class ProducerNode:
    """Writes typed messages into a shared queue."""

    def __init__(self, path: str, size: int, create: bool = False) -> None:
        self._region = SharedMemoryRegion(path, size, create)

    def send(self, message_type: int, payload: bytes) -> bool:
        """Enqueue one message.

        Returns False when the queue is full or the payload is larger than a
        slot can hold; the message is then not stored.
        """
        if not 0 <= message_type <= _U32_MAX:
            raise ValueError("message type must fit in 32 bits")
        data = bytes(payload)
        region = self._region
        if len(data) > region.payload_size:
            return False

        with region._atomic() as mem:
            head, tail = region._counters(mem)
            if tail - head >= region.slot_count:
                return False
            _U64.pack_into(mem, _TAIL_OFFSET, tail + 1)

        offset = region._slot_offset(tail)
        start = offset + _SLOT.size
        while True:
            with region._atomic() as mem:
                ready = _U32.unpack_from(mem, offset)[0]
                if ready == 0:
                    mem[start:start + len(data)] = data
                    _SLOT.pack_into(mem, offset, 1, message_type, len(data))
                    return True
            # A reader may still be finishing with this slot.
            time.sleep(0)

    def close(self) -> None:
        self._region.close()

    def __enter__(self) -> ProducerNode:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class ConsumerNode:
    """Reads messages of a chosen type from a shared queue."""

    def __init__(self, path: str, size: int) -> None:
        self._region = SharedMemoryRegion(path, size, False)

    def _try_pop(self) -> Optional[tuple[int, bytes]]:
        region = self._region
        with region._atomic() as mem:
            head, tail = region._counters(mem)
            if head == tail:
                return None
            offset = region._slot_offset(head)
            ready, message_type, length = _SLOT.unpack_from(mem, offset)
            if ready == 0:
                return None
            start = offset + _SLOT.size
            payload = bytes(mem[start:start + length])
            _U32.pack_into(mem, offset, 0)
            _U64.pack_into(mem, _HEAD_OFFSET, head + 1)
        return message_type, payload

    def recv_type(self, desired_type: int) -> Optional[bytes]:
        """Return the payload of the next message of ``desired_type``.

        Messages of other types met on the way are dropped. Returns None
        when no matching message is available.
        """
        while True:
            message = self._try_pop()
            if message is None:
                return None
            message_type, payload = message
            if message_type == desired_type:
                return payload

    def close(self) -> None:
        self._region.close()

    def __enter__(self) -> ConsumerNode:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
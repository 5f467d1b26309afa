"""Line relays between a parent and a forked child over several kinds of channel.

Each relay forks a child process. The parent writes the given lines into the
channel and the child reads them back and prints what it got. The bytes the
child saw are handed back to the parent, so every relay returns a
``RelayResult`` with what was written and what was received.
"""

from __future__ import annotations

import mmap
import multiprocessing
import os
import signal
import struct
import sys
import traceback
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Union

__all__ = [
    "READ_CHUNK",
    "FIFO_PATH",
    "DATA_SIZE",
    "BUFFER_SIZE",
    "RelayResult",
    "pipe_relay",
    "stdin_relay",
    "fifo_relay",
    "shared_memory_relay",
]

READ_CHUNK = 1024
FIFO_PATH = "/tmp/mkfifo_intro"
DATA_SIZE = 4096
_SIZE = struct.Struct("=I")
BUFFER_SIZE = DATA_SIZE - _SIZE.size
_FRAME = struct.Struct("=I")

Line = Union[str, bytes]


@dataclass
class RelayResult:
    """Byte counts the parent wrote and the chunks the child read, in order."""

    written: list[int] = field(default_factory=list)
    received: list[bytes] = field(default_factory=list)


def _encode(lines: Iterable[Line]) -> list[bytes]:
    return [line if isinstance(line, bytes) else line.encode() for line in lines]


def _show(data: bytes) -> str:
    return data.split(b"\0", 1)[0].decode("utf-8", errors="replace")


def _write_line(fd: int, payload: bytes) -> int:
    written = os.write(fd, payload)
    print(f"[PARENT]: wrote {written} bytes", flush=True)
    return written


def _drain(fd: int) -> list[bytes]:
    received = []
    while chunk := os.read(fd, READ_CHUNK):
        print(f"[CHILD]: read {len(chunk)} bytes: {_show(chunk)}", flush=True)
        received.append(chunk)
    return received


def _pack_frames(chunks: list[bytes]) -> bytes:
    return b"".join(_FRAME.pack(len(chunk)) + chunk for chunk in chunks)


def _unpack_frames(data: bytes) -> list[bytes]:
    chunks = []
    offset = 0
    while offset < len(data):
        (length,) = _FRAME.unpack_from(data, offset)
        offset += _FRAME.size
        chunks.append(data[offset:offset + length])
        offset += length
    return chunks


def _relay(
    child: Callable[[], list[bytes]], parent: Callable[[], list[int]]
) -> RelayResult:
    """Fork; run ``child`` in the new process and ``parent`` in this one."""
    result_r, result_w = os.pipe()
    sys.stdout.flush()
    sys.stderr.flush()
    pid = os.fork()

    if pid == 0:
        status = 1
        try:
            os.close(result_r)
            received = child()
            with os.fdopen(result_w, "wb") as out:
                out.write(_pack_frames(received))
            print("[CHILD]: exited", flush=True)
            status = 0
        except BaseException:
            traceback.print_exc()
        finally:
            try:
                sys.stdout.flush()
                sys.stderr.flush()
            finally:
                os._exit(status)

    os.close(result_w)
    try:
        written = parent()
    except BaseException:
        os.close(result_r)
        os.kill(pid, signal.SIGKILL)
        os.waitpid(pid, 0)
        raise

    with os.fdopen(result_r, "rb") as stream:
        data = stream.read()
    _, status = os.waitpid(pid, 0)
    code = os.waitstatus_to_exitcode(status)
    if code != 0:
        raise ChildProcessError(f"child process exited with status {code}")

    print("[PARENT]: exited", flush=True)
    return RelayResult(written, _unpack_frames(data))


def pipe_relay(lines: Iterable[Line]) -> RelayResult:
    """Send each line through an anonymous pipe to a child that reads it."""
    payloads = _encode(lines)
    read_fd, write_fd = os.pipe()

    def child() -> list[bytes]:
        os.close(write_fd)
        received = _drain(read_fd)
        os.close(read_fd)
        return received

    def parent() -> list[int]:
        os.close(read_fd)
        try:
            return [_write_line(write_fd, payload) for payload in payloads]
        finally:
            os.close(write_fd)

    return _relay(child, parent)


def stdin_relay(lines: Iterable[Line]) -> RelayResult:
    """Like ``pipe_relay``, but the child reads the pipe as its standard input."""
    payloads = _encode(lines)
    read_fd, write_fd = os.pipe()

    def child() -> list[bytes]:
        os.close(write_fd)
        os.dup2(read_fd, 0)
        received = _drain(0)
        os.close(read_fd)
        return received

    def parent() -> list[int]:
        os.close(read_fd)
        try:
            return [_write_line(write_fd, payload) for payload in payloads]
        finally:
            os.close(write_fd)

    return _relay(child, parent)


def fifo_relay(lines: Iterable[Line], path: Union[str, os.PathLike] = FIFO_PATH) -> RelayResult:
    """Create a named pipe at ``path`` and send each line through it.

    The FIFO is left in place afterwards; creating it fails with
    ``FileExistsError`` if ``path`` already exists.
    """
    payloads = _encode(lines)
    os.mkfifo(path, 0o666)

    def child() -> list[bytes]:
        fd = os.open(path, os.O_RDONLY)
        try:
            return _drain(fd)
        finally:
            os.close(fd)

    def parent() -> list[int]:
        fd = os.open(path, os.O_WRONLY)
        try:
            return [_write_line(fd, payload) for payload in payloads]
        finally:
            os.close(fd)

    return _relay(child, parent)


def shared_memory_relay(lines: Iterable[Line]) -> RelayResult:
    """Pass each line through a shared memory page, one message at a time.

    The page holds a 32-bit message size followed by a buffer of
    ``BUFFER_SIZE`` bytes; longer lines are truncated to the buffer. Two
    semaphores hand the page back and forth. A size of zero tells the child
    to stop, so empty lines cannot be sent and raise ``ValueError``.
    """
    payloads = _encode(lines)
    if any(not payload for payload in payloads):
        raise ValueError("empty lines cannot be sent: a size of 0 ends the transfer")

    write_done = multiprocessing.Semaphore(0)
    read_done = multiprocessing.Semaphore(0)
    shared = mmap.mmap(-1, DATA_SIZE)

    def child() -> list[bytes]:
        received = []
        while True:
            write_done.acquire()
            (size,) = _SIZE.unpack_from(shared, 0)
            if size == 0:
                break
            start = _SIZE.size
            content = bytes(shared[start:start + min(size, BUFFER_SIZE)])
            print(f"[CHILD]: read message of size: {size}", flush=True)
            print(f"[CHILD]: content: {_show(content)}", flush=True)
            received.append(content)
            read_done.release()
        return received

    def parent() -> list[int]:
        written = []
        start = _SIZE.size
        for payload in payloads:
            _SIZE.pack_into(shared, 0, len(payload))
            shared[start:] = bytes(BUFFER_SIZE)
            chunk = payload[:BUFFER_SIZE]
            shared[start:start + len(chunk)] = chunk
            print(f"[PARENT]: wrote {len(payload)} bytes", flush=True)
            written.append(len(payload))
            write_done.release()
            read_done.acquire()
        _SIZE.pack_into(shared, 0, 0)
        write_done.release()
        return written

    try:
        return _relay(child, parent)
    finally:
        shared.close()
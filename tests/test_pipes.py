import os
import stat

import pytest

from conclave.pipes import (
    BUFFER_SIZE,
    DATA_SIZE,
    fifo_relay,
    pipe_relay,
    shared_memory_relay,
    stdin_relay,
)

STREAM_KINDS = ["pipe", "stdin"]


@pytest.mark.parametrize("kind", STREAM_KINDS)
def test_stream_relay_round_trip(kind):
    lines = ["hello", "world", "from the parent"]
    result = pipe_relay(lines) if kind == "pipe" else stdin_relay(lines)
    assert result.written == [5, 5, 15]
    assert b"".join(result.received) == b"helloworldfrom the parent"


@pytest.mark.parametrize("kind", STREAM_KINDS)
def test_stream_relay_nothing_to_send(kind):
    result = pipe_relay([]) if kind == "pipe" else stdin_relay([])
    assert result.written == []
    assert result.received == []


@pytest.mark.parametrize("kind", STREAM_KINDS)
def test_stream_relay_chunks_are_bounded(kind):
    lines = ["x" * 3000, "y" * 500]
    result = pipe_relay(lines) if kind == "pipe" else stdin_relay(lines)
    assert all(len(chunk) <= 1024 for chunk in result.received)
    assert b"".join(result.received) == b"x" * 3000 + b"y" * 500


def test_pipe_relay_counts_encoded_bytes():
    line = "привет"
    result = pipe_relay([line])
    assert result.written == [12]
    assert b"".join(result.received).decode() == line


def test_pipe_relay_accepts_bytes():
    result = pipe_relay([b"\x01\x02", b"abc"])
    assert result.written == [2, 3]
    assert b"".join(result.received) == b"\x01\x02abc"


def test_pipe_relay_parent_output(capsys):
    pipe_relay(["hello"])
    out = capsys.readouterr().out
    assert "[PARENT]: wrote 5 bytes" in out
    assert "[PARENT]: exited" in out


def test_fifo_relay_round_trip(tmp_path):
    path = tmp_path / "relay_fifo"
    lines = ["one", "two", "three"]
    result = fifo_relay(lines, path)
    assert result.written == [3, 3, 5]
    assert b"".join(result.received) == b"onetwothree"
    assert stat.S_ISFIFO(os.stat(path).st_mode)


def test_fifo_relay_existing_path_fails(tmp_path):
    path = tmp_path / "taken"
    path.write_text("occupied")
    with pytest.raises(FileExistsError):
        fifo_relay(["hello"], path)
    assert path.read_text() == "occupied"


def test_shared_memory_relay_keeps_message_boundaries():
    lines = ["hello", "world", "again"]
    result = shared_memory_relay(lines)
    assert result.written == [5, 5, 5]
    assert result.received == [b"hello", b"world", b"again"]


def test_shared_memory_relay_truncates_long_lines():
    long_line = "z" * (BUFFER_SIZE + 100)
    result = shared_memory_relay([long_line, "short"])
    assert result.written == [BUFFER_SIZE + 100, 5]
    assert result.received[0] == b"z" * BUFFER_SIZE
    assert result.received[1] == b"short"


def test_shared_memory_buffer_fills_page():
    assert DATA_SIZE == 4096
    assert BUFFER_SIZE == 4092
    exact = "q" * 4092
    overflow = "r" * 4093
    result = shared_memory_relay([exact, overflow])
    assert result.written == [4092, 4093]
    assert result.received == [b"q" * 4092, b"r" * 4092]


def test_shared_memory_relay_rejects_empty_line():
    with pytest.raises(ValueError):
        shared_memory_relay(["hello", "", "world"])


def test_shared_memory_relay_nothing_to_send():
    result = shared_memory_relay([])
    assert result.written == []
    assert result.received == []


def test_shared_memory_relay_parent_output(capsys):
    shared_memory_relay(["abc"])
    out = capsys.readouterr().out
    assert "[PARENT]: wrote 3 bytes" in out
    assert "[PARENT]: exited" in out
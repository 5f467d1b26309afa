import threading
import time

import pytest

from conclave.channels import BufferedChannel, ChannelClosed, UnbufferedChannel


def _run_channel_test(channel, senders_count, receivers_count, close_after):
    counter_lock = threading.Lock()
    counter = [0]
    send_values = [[] for _ in range(senders_count)]
    recv_values = [[] for _ in range(receivers_count)]
    was_closed = threading.Event()
    errors = []

    def next_value():
        with counter_lock:
            value = counter[0]
            counter[0] += 1
            return value

    def sender(index):
        while True:
            value = next_value()
            try:
                channel.send(value)
            except ChannelClosed:
                if not was_closed.is_set():
                    errors.append("send failed before close")
                return
            send_values[index].append(value)

    def receiver(index):
        while True:
            value = channel.recv()
            if value is None:
                if not was_closed.is_set():
                    errors.append("recv ended before close")
                return
            recv_values[index].append(value)

    threads = [threading.Thread(target=sender, args=(i,)) for i in range(senders_count)]
    threads += [
        threading.Thread(target=receiver, args=(i,)) for i in range(receivers_count)
    ]
    for thread in threads:
        thread.start()

    time.sleep(close_after)
    was_closed.set()
    channel.close()

    for thread in threads:
        thread.join(timeout=10)
        assert not thread.is_alive()

    assert errors == []
    all_sent = sorted(v for values in send_values for v in values)
    all_recv = sorted(v for values in recv_values for v in values)
    assert all_sent == all_recv
    if senders_count == 1 and receivers_count == 1:
        assert send_values[0] == recv_values[0]


@pytest.mark.parametrize(
    "senders, receivers, size",
    [(1, 1, 1), (4, 1, 3), (1, 6, 4), (8, 2, 2), (3, 3, 100), (8, 8, 8)],
)
def test_buffered_correctness(senders, receivers, size):
    _run_channel_test(BufferedChannel(size), senders, receivers, 0.3)


@pytest.mark.parametrize(
    "senders, receivers", [(1, 1), (4, 1), (1, 6), (3, 3)]
)
def test_unbuffered_correctness(senders, receivers):
    _run_channel_test(UnbufferedChannel(), senders, receivers, 0.2)


@pytest.mark.parametrize("size", [0, -1])
def test_buffered_rejects_bad_capacity(size):
    with pytest.raises(ValueError):
        BufferedChannel(size)


def test_buffered_fifo_order():
    channel = BufferedChannel(3)
    for value in ("a", "b", "c"):
        channel.send(value)
    assert [channel.recv(), channel.recv(), channel.recv()] == ["a", "b", "c"]


def test_buffered_drains_after_close():
    channel = BufferedChannel(4)
    channel.send(1)
    channel.send(2)
    channel.close()
    assert channel.recv() == 1
    assert channel.recv() == 2
    assert channel.recv() is None


def test_buffered_send_after_close_raises():
    channel = BufferedChannel(2)
    channel.close()
    with pytest.raises(ChannelClosed):
        channel.send(5)


def test_buffered_close_wakes_blocked_sender():
    channel = BufferedChannel(1)
    channel.send(0)
    outcome = []

    def blocked():
        try:
            channel.send(1)
        except ChannelClosed:
            outcome.append("closed")

    thread = threading.Thread(target=blocked)
    thread.start()
    time.sleep(0.05)
    channel.close()
    thread.join(timeout=5)
    assert outcome == ["closed"]
    assert channel.recv() == 0
    assert channel.recv() is None


def test_buffered_iteration_stops_on_close():
    channel = BufferedChannel(10)
    for value in range(5):
        channel.send(value)
    channel.close()
    assert list(channel) == [0, 1, 2, 3, 4]


def test_unbuffered_recv_after_close_returns_none():
    channel = UnbufferedChannel()
    channel.close()
    assert channel.recv() is None
    with pytest.raises(ChannelClosed):
        channel.send(1)


def test_unbuffered_sender_blocks_until_received():
    channel = UnbufferedChannel()
    delay = 0.3
    elapsed = []

    def sender():
        for i in range(3):
            start = time.monotonic()
            channel.send(i)
            elapsed.append(time.monotonic() - start)
        channel.close()

    received = []

    def receiver():
        for _ in range(3):
            time.sleep(delay)
            received.append(channel.recv())
        received.append(channel.recv())

    threads = [threading.Thread(target=sender), threading.Thread(target=receiver)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert received == [0, 1, 2, None]
    assert len(elapsed) == 3
    assert all(t > delay - 0.1 for t in elapsed)
    assert channel.recv() is None


def test_unbuffered_receiver_blocks_until_sent():
    channel = UnbufferedChannel()
    delay = 0.3
    elapsed = []
    received = []

    def sender():
        for i in range(3):
            time.sleep(delay)
            channel.send(i)
        channel.close()

    def receiver():
        for _ in range(3):
            start = time.monotonic()
            received.append(channel.recv())
            elapsed.append(time.monotonic() - start)

    threads = [threading.Thread(target=sender), threading.Thread(target=receiver)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert received == [0, 1, 2]
    assert len(elapsed) == 3
    assert all(t > delay - 0.1 for t in elapsed)
    assert channel.recv() is None
    with pytest.raises(ChannelClosed):
        channel.send(3)


def test_unbuffered_close_fails_pending_sender():
    channel = UnbufferedChannel()
    outcome = []

    def sender():
        try:
            channel.send("x")
        except ChannelClosed:
            outcome.append("closed")

    thread = threading.Thread(target=sender)
    thread.start()
    time.sleep(0.05)
    channel.close()
    thread.join(timeout=5)
    assert outcome == ["closed"]
    assert channel.recv() is None


def test_unbuffered_iteration():
    channel = UnbufferedChannel()

    def sender():
        for value in ("p", "q", "r"):
            channel.send(value)
        channel.close()

    thread = threading.Thread(target=sender)
    thread.start()
    collected = list(channel)
    thread.join(timeout=5)
    assert collected == ["p", "q", "r"]
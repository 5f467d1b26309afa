"""Command-line producer and consumer for the shared-memory message queue."""

from __future__ import annotations

import sys
import time
from collections.abc import Sequence
from typing import Optional

from conclave.mpsc_queue import ConsumerNode, ProducerNode

__all__ = ["producer_main", "consumer_main"]

_MESSAGES_PER_PRODUCER = 20
_DONE = "DONE"
_RETRY_DELAY = 0.001


def _send_until_accepted(producer: ProducerNode, message_type: int, text: str) -> None:
    data = text.encode()
    while not producer.send(message_type, data):
        time.sleep(_RETRY_DELAY)


def producer_main(argv: Optional[Sequence[str]] = None) -> int:
    """Send twenty numbered messages; producer 1 also sends a final DONE."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) < 3:
        print("Usage: ipc-producer <shm_path> <bytes> <producer_id> [create]")
        print("Example: ipc-producer /ipc_hw 1048576 1 create")
        return 1

    try:
        shm_path = args[0]
        size = int(args[1])
        producer_id = int(args[2])
        create = len(args) >= 4 and args[3] == "create"

        with ProducerNode(shm_path, size, create) as producer:
            print(f"[Producer {producer_id}] started")

            for i in range(1, _MESSAGES_PER_PRODUCER + 1):
                message_type = 1 if i % 2 == 0 else 2
                text = f"producer={producer_id} message={i}"
                _send_until_accepted(producer, message_type, text)
                print(
                    f'[Producer {producer_id}] sent type={message_type} payload="{text}"'
                )

            if producer_id == 1:
                _send_until_accepted(producer, 1, _DONE)
                print(f'[Producer {producer_id}] sent type=1 payload="{_DONE}"')

            print(f"[Producer {producer_id}] finished")
        return 0
    except Exception as exc:
        print(f"producer error: {exc}", file=sys.stderr)
        return 2


def consumer_main(argv: Optional[Sequence[str]] = None) -> int:
    """Print messages of one type until a DONE message arrives."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) < 3:
        print("Usage: ipc-consumer <shm_path> <bytes> <type>")
        print("Example: ipc-consumer /ipc_hw 1048576 1")
        return 1

    try:
        shm_path = args[0]
        size = int(args[1])
        wanted_type = int(args[2])

        with ConsumerNode(shm_path, size) as consumer:
            print(f"[Consumer] started, filtering type={wanted_type}")
            while True:
                payload = consumer.recv_type(wanted_type)
                if payload is None:
                    time.sleep(_RETRY_DELAY)
                    continue
                text = payload.decode("utf-8", errors="replace")
                print(f'[Consumer] got: "{text}"')
                if text == _DONE:
                    break

        print("[Consumer] finished")
        return 0
    except Exception as exc:
        print(f"consumer error: {exc}", file=sys.stderr)
        return 2
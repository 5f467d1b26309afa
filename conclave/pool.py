"""A small thread pool, a batching task worker and a guarded data holder."""

from __future__ import annotations

import queue
import sys
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import Future
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")

__all__ = ["ThreadPool", "TaskWorker", "DataManager"]


class ThreadPool:
    """A fixed set of worker threads that run submitted callables in FIFO order."""

    _POLL_INTERVAL = 0.1

    def __init__(self, number_of_threads: int) -> None:
        if number_of_threads < 1:
            raise ValueError("ThreadPool needs at least one thread")
        self._tasks: queue.Queue[tuple[Future, Callable[[], Any]]] = queue.Queue()
        self._stop = threading.Event()
        self._submit_lock = threading.Lock()
        self._threads = [
            threading.Thread(target=self._worker, daemon=True)
            for _ in range(number_of_threads)
        ]
        for thread in self._threads:
            thread.start()

    def submit(self, task: Callable[[], Any]) -> Future:
        """Queue a callable; the returned future holds its result or exception."""
        future: Future = Future()
        with self._submit_lock:
            if self._stop.is_set():
                raise RuntimeError("ThreadPool is shut down")
            self._tasks.put((future, task))
        return future

    def _worker(self) -> None:
        while not self._stop.is_set():
            try:
                future, task = self._tasks.get(timeout=self._POLL_INTERVAL)
            except queue.Empty:
                continue
            if not future.set_running_or_notify_cancel():
                continue
            try:
                result = task()
            except Exception as exc:
                future.set_exception(exc)
            else:
                future.set_result(result)

    def shutdown(self) -> None:
        """Stop the workers; tasks that never started are cancelled."""
        with self._submit_lock:
            self._stop.set()
        for thread in self._threads:
            thread.join()
        while True:
            try:
                future, _ = self._tasks.get_nowait()
            except queue.Empty:
                break
            future.cancel()

    def __enter__(self) -> ThreadPool:
        return self

    def __exit__(self, *args: object) -> None:
        self.shutdown()


def _print_task(task: Any) -> None:
    print(f"Executing task #{task}", flush=True)


class TaskWorker(Generic[T]):
    """A background thread that handles added tasks in batches.

    Tasks added while the thread is busy are collected and handed to
    ``handler`` one by one in the order they were added. An exception from
    the handler is reported on stderr and does not stop the worker.
    """

    def __init__(self, handler: Optional[Callable[[T], Any]] = None) -> None:
        self._handler = handler if handler is not None else _print_task
        self._cond = threading.Condition()
        self._tasks: list[T] = []
        self._stopped = False
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def add_task(self, task: T) -> None:
        with self._cond:
            if self._stopped:
                raise RuntimeError("TaskWorker is stopped")
            self._tasks.append(task)
            self._cond.notify()

    def _run(self) -> None:
        while True:
            with self._cond:
                self._cond.wait_for(lambda: self._stopped or bool(self._tasks))
                if not self._tasks:
                    return
                batch, self._tasks = self._tasks, []
            for task in batch:
                try:
                    self._handler(task)
                except Exception:
                    print("Exception in worker thread", file=sys.stderr)

    def stop(self) -> None:
        """Handle the tasks already added, then stop the thread."""
        with self._cond:
            self._stopped = True
            self._cond.notify_all()
        self._thread.join()

    def __enter__(self) -> TaskWorker[T]:
        return self

    def __exit__(self, *args: object) -> None:
        self.stop()


class DataManager(Generic[T]):
    """Holds a list that one thread may replace while others read copies."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._data: list[T] = []

    def change_data(self, new_data: Iterable[T]) -> None:
        with self._lock:
            self._data = list(new_data)

    def get_copy(self) -> list[T]:
        with self._lock:
            return list(self._data)
# conclave

Concurrency building blocks for threads and processes on POSIX systems.
The package has no dependencies outside the standard library.

## Modules

- `conclave.channels`: `BufferedChannel(size)` is a bounded FIFO. `send` blocks
  while the buffer is full and `recv` blocks while it is empty. After `close`,
  `send` raises `ChannelClosed`. `recv` still returns the values left in the
  buffer, then returns `None`. `UnbufferedChannel()` is a rendezvous: `send`
  returns only after a receiver has taken the value. Closing the channel makes
  pending and later sends raise `ChannelClosed`, and makes `recv` return `None`.
  You can iterate over either channel until it is closed and empty.
- `conclave.parallel`: `apply_function(data, transform, thread_count=1)`
  replaces each element of a list with `transform(element)`, in place. The list
  is split into up to `thread_count` contiguous chunks, one thread per chunk.
- `conclave.locks`: `FutexMutex` (`lock`, `try_lock`, `unlock`), `Spinlock`
  and `CVLock` can all be used in a `with` block. Unlocking a `FutexMutex` or
  `CVLock` that is not locked raises `RuntimeError`. `Latch(count)` provides
  `count_down`, `wait` and `arrive_and_wait`. Counting down below zero raises
  `ValueError`.
- `conclave.stacks`: `LockedStack`, `LinkedStack` (compare-and-swap on the
  head) and `BoundedStack(capacity)`. `pop` returns `None` when the stack is
  empty. On `BoundedStack`, `push` returns `False` when the stack is full.
- `conclave.pool`: `ThreadPool(number_of_threads)` runs submitted callables.
  `submit` returns a `concurrent.futures.Future`. `shutdown`, which the `with`
  block also calls, stops the workers and cancels tasks that never started.
  `TaskWorker(handler=None)` hands added tasks to `handler` in batches on a
  background thread. Without a handler it prints `Executing task #<task>`.
  `stop` finishes the tasks already added. `DataManager` holds a list, with
  `change_data` to replace it and `get_copy` to read a copy.
- `conclave.atomics`: `AtomicInt` provides `load`, `store`, `exchange`,
  `fetch_add`, `fetch_sub` and `compare_exchange(expected, desired)`.
  `compare_exchange` returns `(exchanged, observed_value)`.
- `conclave.futures`: `run_pipeline(executor, value, steps)` feeds `value`
  through `steps` in order on an executor and returns the result. It re-raises
  any exception raised by a step. Also provided: `worker_function`,
  `run_worker`, `adder`, `multiplier` and `divider`.
- `conclave.mpsc_queue`: a multi-producer, single-consumer queue in named
  shared memory (under `/dev/shm` where that exists).
  - `SharedMemoryRegion(name, size, create=False)`: with `create`, the region
    is sized and its metadata is initialised. Otherwise an existing,
    initialised region is attached to.
  - `ProducerNode(path, size, create=False).send(message_type, payload)`:
    returns `False` when the queue is full or the payload is larger than a slot
    (256 bytes).
  - `ConsumerNode(path, size).recv_type(desired_type)`: returns the next
    payload of that type and drops messages of other types. It returns `None`
    when nothing matching is waiting.
  - `unlink_region(name)`: removes the region.
  - Errors opening, mapping or validating a region raise `QueueError`.
- `conclave.pipes`: relays that fork a child process. The parent writes lines
  and the child reads them back. Each relay returns a `RelayResult` holding the
  byte counts written and the chunks received.
  - `pipe_relay(lines)` uses an anonymous pipe.
  - `stdin_relay(lines)` uses an anonymous pipe read as the child's standard
    input.
  - `fifo_relay(lines, path="/tmp/mkfifo_intro")` creates a named pipe and
    leaves it in place. It raises `FileExistsError` if the path already exists.
  - `shared_memory_relay(lines)` uses a shared page and two semaphores. Lines
    longer than the buffer are truncated. Empty lines raise `ValueError`.

## Examples

```python
import threading
from conclave.channels import BufferedChannel

channel = BufferedChannel(4)

def produce():
    for i in range(10):
        channel.send(i)
    channel.close()

threading.Thread(target=produce).start()
print(sum(channel))  # 45
```

```python
from conclave.parallel import apply_function

data = [1, 2, 3, 4, 5, 6, 7]
apply_function(data, lambda x: x * 3, 4)
# data == [3, 6, 9, 12, 15, 18, 21]
```

```python
from conclave.pool import ThreadPool

with ThreadPool(3) as pool:
    future = pool.submit(lambda: 21 * 2)
    print(future.result())  # 42
```

## Command-line tools

Atomic operation demonstrations. The demo is `operations` (the default), `cas`
or `race`; `--runs` sets the number of runs for `cas` and `race`:

```
conclave-atomics
conclave-atomics cas --runs 1000
```

Future and continuation demonstrations. The demo is `workers` (the default),
`continuations` or `when-all`:

```
conclave-futures continuations
```

Shared-memory queue. Start the first producer with `create`, which initialises
the region. Then start further producers without it, and one consumer that
filters by message type. Each producer sends twenty messages, alternating
types 2 and 1. Producer 1 also sends `DONE` with type 1, and the consumer stops
when it receives `DONE`:

```
conclave-producer /ipc_hw 1048576 1 create
conclave-producer /ipc_hw 1048576 2
conclave-consumer /ipc_hw 1048576 1
```

## Limitations

- The package needs a POSIX system: it uses `fork`, `fcntl` locks and named
  pipes.
- The shared-memory region is not removed by the commands. Call
  `conclave.mpsc_queue.unlink_region` to remove it.

## Tests

```
pip install .[test]
pytest
```
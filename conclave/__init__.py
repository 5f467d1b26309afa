"""Concurrency building blocks: channels, locks, stacks, pools, atomics, futures and IPC."""

__version__ = "0.1.0"
"""
Delivery contexts: where a finished request's callback is allowed to run.

Transport notifications arrive on a worker thread; a context moves the
callback back onto the thread (or event loop) that owns the caller's state.
"""

import asyncio
import queue
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional


class ExecutionContext(ABC):
    @abstractmethod
    def call_soon(self, fn: Callable[[], None]) -> None:
        """Schedule fn to run on this context. Safe to call from any thread."""


class ImmediateContext(ExecutionContext):
    """Runs callbacks inline on whichever thread produced the outcome."""

    def call_soon(self, fn: Callable[[], None]) -> None:
        fn()


class LoopContext(ExecutionContext):
    """Runs callbacks on an asyncio event loop, typically the caller's main loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self.loop = loop

    def call_soon(self, fn: Callable[[], None]) -> None:
        self.loop.call_soon_threadsafe(fn)


class QueueContext(ExecutionContext):
    """Queue of pending callbacks drained by the owning thread.

    The owner calls ``run_pending`` from its own loop (a UI tick, a game
    frame, a CLI wait loop) so callbacks only ever run on that thread.
    """

    def __init__(self):
        self._queue: "queue.SimpleQueue[Callable[[], None]]" = queue.SimpleQueue()
        self.owner = threading.get_ident()

    def call_soon(self, fn: Callable[[], None]) -> None:
        self._queue.put(fn)

    def pending(self) -> int:
        return self._queue.qsize()

    def run_pending(self, timeout: Optional[float] = None, max_items: Optional[int] = None) -> int:
        """Run queued callbacks on the calling thread and return how many ran.

        With a timeout, waits up to that long for the first callback when the
        queue is empty.
        """
        ran = 0
        deadline = None if timeout is None else time.monotonic() + timeout

        while max_items is None or ran < max_items:
            try:
                if ran == 0 and deadline is not None:
                    remaining = max(0.0, deadline - time.monotonic())
                    fn = self._queue.get(timeout=remaining)
                else:
                    fn = self._queue.get_nowait()
            except queue.Empty:
                break
            fn()
            ran += 1

        return ran

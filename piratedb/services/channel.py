# piratedb/services/channel.py

from __future__ import annotations

import queue
import threading
from typing import Generic, Iterator, TypeVar

T = TypeVar("T")

# How often blocked senders and receivers look at the abort event.
POLL_INTERVAL = 0.2

_END = object()


class Channel(Generic[T]):
    """
    Blocking handoff between pipeline stages.

    A capacity of one keeps producers in lockstep with consumers. Closing
    enqueues one end marker per consumer, so every consumer that iterates
    the channel stops after draining what was sent before the close. When
    the shared ``abort`` event is set, pending sends give up and iteration
    stops at once.
    """

    def __init__(
        self, abort: threading.Event | None = None, capacity: int = 1
    ) -> None:
        self._queue: queue.Queue = queue.Queue(maxsize=capacity)
        self._abort = abort or threading.Event()

    @property
    def aborted(self) -> bool:
        return self._abort.is_set()

    def send(self, item: T) -> bool:
        """Blocks until ``item`` is accepted. Returns False if aborted first."""
        return self._put(item)

    def close(self, consumers: int = 1) -> None:
        for _ in range(consumers):
            if not self._put(_END):
                return

    def _put(self, item: object) -> bool:
        while not self._abort.is_set():
            try:
                self._queue.put(item, timeout=POLL_INTERVAL)
                return True
            except queue.Full:
                continue
        return False

    def __iter__(self) -> Iterator[T]:
        while not self._abort.is_set():
            try:
                item = self._queue.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                continue
            if item is _END:
                return
            yield item

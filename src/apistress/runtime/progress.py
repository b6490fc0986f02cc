from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Protocol

log = logging.getLogger(__name__)

DEFAULT_MAX_QUEUE_SIZE = 1000


class ProgressPublisher(Protocol):
    def publish(self, event: Any) -> None:
        ...


class NullPublisher:
    def publish(self, event: Any) -> None:
        return None


class ProgressBroadcaster:
    """
    Registry of progress observers, each backed by its own asyncio.Queue.

    publish() never blocks: events are put with put_nowait, and an observer
    whose queue is full is dropped from the registry, with its stream ended,
    without affecting the others. Observers only see events published after they subscribed.
    A None item on a queue marks the end of the stream.
    """

    def __init__(self, max_queue_size: int = DEFAULT_MAX_QUEUE_SIZE) -> None:
        self._observers: list[asyncio.Queue] = []
        self._max_queue_size = max_queue_size

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def subscribe(self, max_queue_size: Optional[int] = None) -> asyncio.Queue:
        size = self._max_queue_size if max_queue_size is None else max_queue_size
        queue: asyncio.Queue = asyncio.Queue(maxsize=size)
        self._observers.append(queue)
        log.debug("Observer subscribed, %d connected", len(self._observers))
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        try:
            self._observers.remove(queue)
        except ValueError:
            log.debug("Attempted to remove an already removed observer")
            return
        log.debug("Observer unsubscribed, %d connected", len(self._observers))

    @staticmethod
    def _end_stream(queue: asyncio.Queue) -> None:
        try:
            queue.put_nowait(None)
        except asyncio.QueueFull:
            # Make room so a lagging observer still sees the end of the stream.
            queue.get_nowait()
            queue.put_nowait(None)

    def publish(self, event: Any) -> None:
        dropped: list[asyncio.Queue] = []
        for queue in list(self._observers):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                log.warning("Progress observer queue full, dropping observer")
                dropped.append(queue)
        for queue in dropped:
            self.unsubscribe(queue)
            self._end_stream(queue)

    def close(self) -> None:
        for queue in self._observers:
            self._end_stream(queue)
        self._observers.clear()

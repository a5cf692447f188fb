"""
Stats publisher
One-to-many, fire-and-forget delivery of per-frame metrics to subscribers
"""

import asyncio
import logging
import threading
from typing import Callable, Dict, List

from .metrics import FrameMetrics

StatsCallback = Callable[[Dict], None]


class StatsPublisher:
    """
    Publishes one stats event per processed frame.

    Subscribers are either plain callbacks, called inline, or bounded
    asyncio queues. A full queue drops the new event for that subscriber.
    Nothing is retried or acknowledged.
    """

    def __init__(self):
        self._callbacks: List[StatsCallback] = []
        self._queues: List[asyncio.Queue] = []
        self.lock = threading.Lock()
        self.published_count = 0
        self.dropped_count = 0
        self.setup_logging()

    def setup_logging(self):
        """Setup logging"""
        self.logger = logging.getLogger(__name__)

    def subscribe(self, callback: StatsCallback) -> Callable[[], None]:
        """
        Register a callback receiving each event dict

        Returns:
            Function that removes the subscription
        """
        with self.lock:
            self._callbacks.append(callback)

        def unsubscribe():
            with self.lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

        return unsubscribe

    def open_queue(self, maxsize: int = 1) -> asyncio.Queue:
        """Register a bounded queue subscription"""
        if maxsize < 1:
            raise ValueError("Queue subscriptions must be bounded (maxsize >= 1)")

        queue = asyncio.Queue(maxsize=maxsize)
        with self.lock:
            self._queues.append(queue)
        return queue

    def close_queue(self, queue: asyncio.Queue):
        with self.lock:
            if queue in self._queues:
                self._queues.remove(queue)

    @property
    def subscriber_count(self) -> int:
        with self.lock:
            return len(self._callbacks) + len(self._queues)

    def publish(self, metrics: FrameMetrics):
        """
        Emit the event for one frame to every subscriber

        Args:
            metrics: Metrics of the frame just processed
        """
        event = metrics.to_event()
        with self.lock:
            callbacks = list(self._callbacks)
            queues = list(self._queues)

        self.published_count += 1

        for callback in callbacks:
            try:
                callback(event)
            except Exception as e:
                self.logger.error(f"Stats subscriber {callback!r} failed: {e}")

        for queue in queues:
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                self.dropped_count += 1
                self.logger.debug("Stats queue full, event dropped")

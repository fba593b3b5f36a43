# live_score/broadcast.py
"""
In-memory fan-out broadcaster.

One bounded asyncio.Queue per connected stream client. Writers (FastAPI worker
threads) call ``publish``; each stream handler drains its own queue on the
event loop. Hand-off uses ``loop.call_soon_threadsafe`` so a writer never waits
on a subscriber.
"""
from __future__ import annotations

import asyncio
import itertools
import json
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from live_score.config import SUBSCRIBER_QUEUE_SIZE

log = logging.getLogger(__name__)

_ids = itertools.count(1)

# Pushed to wake a consumer that is waiting on an empty queue after close()
_CLOSED = object()


class SubscriberWriteFailure(Exception):
    """Raised when a frame cannot be handed to a subscriber."""
    pass


class Subscriber:
    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        maxsize: int,
        on_failure: Callable[["Subscriber", str], None],
    ) -> None:
        self.id = next(_ids)
        self.closed = False
        self._loop = loop
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._on_failure = on_failure

    def __repr__(self) -> str:
        return f"Subscriber(id={self.id}, closed={self.closed})"

    # ---------------------------------------------------------
    # Producer side (any thread)
    # ---------------------------------------------------------

    def offer(self, frame: str) -> None:
        if self.closed:
            raise SubscriberWriteFailure("subscriber closed")
        try:
            self._loop.call_soon_threadsafe(self._deliver, frame)
        except RuntimeError as e:
            # event loop already closed: the peer is gone
            raise SubscriberWriteFailure(str(e)) from e

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self._loop.call_soon_threadsafe(self._wake)
        except RuntimeError:
            pass  # loop gone, nobody left to wake

    # ---------------------------------------------------------
    # Loop side
    # ---------------------------------------------------------

    def _deliver(self, frame: str) -> None:
        if self.closed:
            return
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            self._on_failure(self, "queue full (stalled subscriber)")

    def _wake(self) -> None:
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)

    async def get(self, timeout: Optional[float] = None) -> Optional[str]:
        """
        Next serialized frame, or None once the subscriber is closed.
        Raises asyncio.TimeoutError if nothing arrives within ``timeout``.
        """
        if self.closed:
            return None
        if timeout is None:
            item = await self._queue.get()
        else:
            item = await asyncio.wait_for(self._queue.get(), timeout)
        if item is _CLOSED or self.closed:
            return None
        return item

    @property
    def pending(self) -> int:
        return self._queue.qsize()


class BroadcastHub:
    def __init__(self, queue_size: int = SUBSCRIBER_QUEUE_SIZE) -> None:
        self._queue_size = queue_size
        self._lock = threading.Lock()
        self._subscribers: Dict[int, Subscriber] = {}

    def subscribe(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> Subscriber:
        """
        Register a new subscriber bound to ``loop`` (default: the running loop).
        Only events published after this returns are delivered; there is no replay.
        """
        if loop is None:
            loop = asyncio.get_running_loop()
        sub = Subscriber(loop, self._queue_size, self._drop)
        with self._lock:
            self._subscribers[sub.id] = sub
        log.info("Subscriber %s connected (%d live)", sub.id, self.subscriber_count())
        return sub

    def unsubscribe(self, sub: Subscriber) -> None:
        with self._lock:
            removed = self._subscribers.pop(sub.id, None)
        sub.close()
        if removed is not None:
            log.info("Subscriber %s disconnected (%d live)", sub.id, self.subscriber_count())

    def publish(self, event: Dict[str, Any]) -> int:
        """
        Serialize once and hand the frame to every live subscriber.
        Failures are isolated per subscriber; returns how many accepted the hand-off.
        """
        frame = json.dumps(event)
        with self._lock:
            targets: List[Subscriber] = list(self._subscribers.values())

        delivered = 0
        for sub in targets:
            try:
                sub.offer(frame)
                delivered += 1
            except SubscriberWriteFailure as e:
                self._drop(sub, str(e))
        return delivered

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def close_all(self) -> None:
        with self._lock:
            subs = list(self._subscribers.values())
            self._subscribers.clear()
        for sub in subs:
            sub.close()

    def _drop(self, sub: Subscriber, reason: str) -> None:
        log.warning("Dropping subscriber %s: %s", sub.id, reason)
        self.unsubscribe(sub)

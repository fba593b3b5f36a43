# live_score/stream.py
"""
Server-Sent Events framing for the live stream.

Each event is one ``data: <json>\\n\\n`` block; the blank line is the frame
delimiter EventSource clients split on.
"""
from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable, Optional

from live_score.broadcast import BroadcastHub
from live_score.config import STREAM_KEEPALIVE_SECONDS, STREAM_RETRY_MS

log = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

KEEPALIVE_FRAME = ": keepalive\n\n"


def retry_frame(retry_ms: int = STREAM_RETRY_MS) -> str:
    return f"retry: {int(retry_ms)}\n\n"


def data_frame(payload: str) -> str:
    # SSE forbids raw newlines inside a data line
    lines = payload.splitlines() or [""]
    return "".join(f"data: {line}\n" for line in lines) + "\n"


async def event_stream(
    hub: BroadcastHub,
    *,
    retry_ms: int = STREAM_RETRY_MS,
    keepalive_seconds: float = STREAM_KEEPALIVE_SECONDS,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
) -> AsyncIterator[str]:
    """
    Subscribe to ``hub`` and yield SSE frames until the client goes away or the
    hub closes the subscriber.

    The subscription is taken when the generator starts and released in the
    ``finally`` block, so a response that never streams never registers. The
    client is checked before every frame, keepalives and data alike.
    """
    sub = hub.subscribe()

    async def gone() -> bool:
        return is_disconnected is not None and await is_disconnected()

    try:
        if await gone():
            return
        yield retry_frame(retry_ms)
        while True:
            try:
                frame = await sub.get(timeout=keepalive_seconds)
            except asyncio.TimeoutError:
                frame = KEEPALIVE_FRAME
            else:
                if frame is None:
                    break
                frame = data_frame(frame)

            if await gone():
                break
            yield frame
    finally:
        hub.unsubscribe(sub)
        log.debug("Stream for subscriber %s closed", sub.id)

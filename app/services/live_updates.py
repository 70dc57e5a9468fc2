"""
Live snapshot feeds for server-sent events.

Firestore (and LocalStore) deliver ``on_snapshot`` callbacks on a background
thread; a feed hands each snapshot to the event loop through a queue.
"""

import asyncio
import json
from typing import Any, AsyncIterator, Callable, List, Optional

from fastapi import Request

from app.utils.logger import get_logger

logger = get_logger(__name__)

KEEP_ALIVE_SECONDS = 15


class SnapshotFeed:
    """Full-state snapshots of one document or query, with explicit subscribe/unsubscribe."""

    def __init__(self, target: Any, transform: Callable[[List[Any]], Any], max_pending: int = 100):
        """
        Args:
            target: Document reference or query supporting ``on_snapshot``
            transform: Turns the list of document snapshots into a JSON-ready payload
            max_pending: Snapshots buffered for a slow consumer
        """
        self.target = target
        self.transform = transform
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_pending)
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._watch = None

    @property
    def active(self) -> bool:
        return self._watch is not None

    def _on_snapshot(self, snapshots, changes, read_time) -> None:
        try:
            payload = self.transform(list(snapshots))
        except Exception as e:
            logger.error(f"Snapshot transform failed: {e}")
            return
        self._loop.call_soon_threadsafe(self._offer, payload)

    def _offer(self, payload: Any) -> None:
        # A slow consumer only needs the newest full snapshot
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(payload)

    def subscribe(self) -> "SnapshotFeed":
        """Start listening; must be called from the event loop."""
        if self._watch is None:
            self._loop = asyncio.get_running_loop()
            self._watch = self.target.on_snapshot(self._on_snapshot)
        return self

    def unsubscribe(self) -> None:
        if self._watch is not None:
            self._watch.unsubscribe()
            self._watch = None

    async def next(self, timeout: Optional[float] = None) -> Any:
        """Wait for the next snapshot payload."""
        return await asyncio.wait_for(self._queue.get(), timeout=timeout)

    async def events(self, request: Optional[Request] = None) -> AsyncIterator[str]:
        """SSE frames, one per snapshot, until the client goes away."""
        self.subscribe()
        try:
            while True:
                if request is not None and await request.is_disconnected():
                    break
                try:
                    payload = await self.next(timeout=KEEP_ALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                yield f"data: {json.dumps(payload, default=str)}\n\n"
        finally:
            self.unsubscribe()

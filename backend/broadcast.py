"""
In-process publish/subscribe broadcast for the chat stream.

One Broadcaster is owned by the application and shared by every request:
the send endpoint publishes into it, every SSE connection holds one
subscription. Delivery is best-effort and never waits on a slow reader.
"""

import asyncio
import itertools
import logging
import threading
import uuid
from collections import deque
from contextlib import asynccontextmanager
from typing import AsyncIterator

logger = logging.getLogger(__name__)


class OutboxFull(Exception):
    """Raised by Outbox.put when a bounded outbox has no room left."""


class OutboxClosed(Exception):
    """Raised by Outbox.get once the outbox is closed and drained."""


class Outbox:
    """FIFO of byte payloads for a single subscriber.

    Written by the Broadcaster, read by exactly one stream session. Payloads
    enqueued before close() are still handed out; after that get() raises
    OutboxClosed and async iteration stops.
    """

    def __init__(self, maxsize: int = 0):
        self._maxsize = maxsize
        self._items: deque[bytes] = deque()
        self._ready = asyncio.Event()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        return len(self._items)

    def full(self) -> bool:
        return self._maxsize > 0 and len(self._items) >= self._maxsize

    def put(self, payload: bytes) -> None:
        if self._closed:
            raise OutboxClosed("outbox is closed")
        if self.full():
            raise OutboxFull(f"outbox holds {self._maxsize} undelivered payloads")
        self._items.append(payload)
        self._ready.set()

    def close(self) -> None:
        """Finalise the outbox. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._ready.set()

    async def get(self) -> bytes:
        while True:
            if self._items:
                payload = self._items.popleft()
                if not self._items and not self._closed:
                    self._ready.clear()
                return payload
            if self._closed:
                raise OutboxClosed("outbox is closed")
            await self._ready.wait()

    def __aiter__(self) -> "Outbox":
        return self

    async def __anext__(self) -> bytes:
        try:
            return await self.get()
        except OutboxClosed:
            raise StopAsyncIteration


class Subscriber:
    """A registered recipient: unique id plus its private outbox."""

    __slots__ = ("id", "outbox")

    def __init__(self, subscriber_id: str, outbox: Outbox):
        self.id = subscriber_id
        self.outbox = outbox

    @property
    def closed(self) -> bool:
        return self.outbox.closed

    def __repr__(self) -> str:
        return f"Subscriber(id={self.id!r}, pending={self.outbox.qsize()}, closed={self.closed})"


class Broadcaster:
    """Registry of live subscribers with fan-out delivery.

    Membership changes and the publish snapshot are serialised by one lock;
    outboxes themselves are not guarded by it. With ``max_queue_size`` set, a
    subscriber whose outbox is full at publish time is evicted rather than
    having the payload dropped while it stays registered.
    """

    def __init__(self, max_queue_size: int = 0):
        self.max_queue_size = max_queue_size
        self._lock = threading.Lock()
        self._subscribers: dict[str, Subscriber] = {}
        self._sequence = itertools.count(1)

    def _new_id(self) -> str:
        # caller holds the lock; the sequence number alone keeps ids unique
        return f"{next(self._sequence)}-{uuid.uuid4().hex[:12]}"

    def subscribe(self) -> Subscriber:
        """Register a new subscriber; the caller must unsubscribe it on disconnect."""
        with self._lock:
            subscriber = Subscriber(self._new_id(), Outbox(self.max_queue_size))
            self._subscribers[subscriber.id] = subscriber
            count = len(self._subscribers)
        logger.debug("Subscribed %s (%d live)", subscriber.id, count)
        return subscriber

    def unsubscribe(self, subscriber_id: str) -> bool:
        """Remove a subscriber and close its outbox. Unknown ids are ignored."""
        with self._lock:
            subscriber = self._subscribers.pop(subscriber_id, None)
            count = len(self._subscribers)
        if subscriber is None:
            return False
        subscriber.outbox.close()
        logger.debug("Unsubscribed %s (%d live)", subscriber_id, count)
        return True

    async def publish(self, payload: bytes | str) -> int:
        """Enqueue *payload* for every currently registered subscriber.

        Returns the number of outboxes the payload was delivered to.
        """
        if isinstance(payload, str):
            payload = payload.encode("utf-8")

        with self._lock:
            targets = list(self._subscribers.values())

        delivered = 0
        for subscriber in targets:
            try:
                subscriber.outbox.put(payload)
            except OutboxClosed:
                # unsubscribed after the snapshot was taken
                continue
            except OutboxFull:
                logger.warning(
                    "Outbox full for subscriber %s, disconnecting slow consumer",
                    subscriber.id,
                )
                self.unsubscribe(subscriber.id)
                continue
            delivered += 1
        return delivered

    @asynccontextmanager
    async def subscription(self) -> AsyncIterator[Subscriber]:
        """Subscribe for the duration of the ``async with`` block."""
        subscriber = self.subscribe()
        try:
            yield subscriber
        finally:
            self.unsubscribe(subscriber.id)

    def subscriber_ids(self) -> list[str]:
        with self._lock:
            return list(self._subscribers)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def __contains__(self, subscriber_id: object) -> bool:
        with self._lock:
            return subscriber_id in self._subscribers

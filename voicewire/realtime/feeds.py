"""
Publish-subscribe notification feeds.

A feed declares how many subscribers it admits. A second subscriber on a
SINGLE feed is rejected with ``FeedError`` instead of silently displacing the
first. Publishing never blocks: each subscriber owns an unbounded queue, and
items published while nobody is subscribed are dropped.
"""

import asyncio
from enum import Enum
from typing import AsyncIterator, Generic, List, TypeVar

from voicewire.exceptions import FeedError

T = TypeVar("T")

# Marks the end of a subscriber's stream
_END = object()


class FeedMultiplicity(str, Enum):
    SINGLE = "single"
    MULTI = "multi"


class FeedSubscription(Generic[T]):
    """Async iterator over the items published to one feed after subscribing."""

    def __init__(self, feed: "EventFeed[T]"):
        self._feed = feed
        self._queue: asyncio.Queue = asyncio.Queue()
        self._finished = False

    def __aiter__(self) -> "FeedSubscription[T]":
        return self

    async def __anext__(self) -> T:
        if self._finished:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _END:
            self._finished = True
            raise StopAsyncIteration
        return item

    def _deliver(self, item) -> None:
        self._queue.put_nowait(item)

    def close(self) -> None:
        """Stop receiving items and free the feed's subscriber slot."""
        self._feed._remove(self)
        self._deliver(_END)


class EventFeed(Generic[T]):
    """A named feed of notifications.

    Args:
        name: Feed name used in error messages
        multiplicity: Whether more than one subscriber may attach
    """

    def __init__(self, name: str, multiplicity: FeedMultiplicity = FeedMultiplicity.SINGLE):
        self.name = name
        self.multiplicity = multiplicity
        self._subscribers: List[FeedSubscription[T]] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> FeedSubscription[T]:
        """Attach a subscriber.

        Subscribing to a closed feed yields an already finished iterator.

        Raises:
            FeedError: if this is a SINGLE feed that already has a subscriber
        """
        subscription: FeedSubscription[T] = FeedSubscription(self)
        if self._closed:
            subscription._deliver(_END)
            return subscription

        if self.multiplicity == FeedMultiplicity.SINGLE and self._subscribers:
            raise FeedError(f"Feed '{self.name}' admits a single subscriber")

        self._subscribers.append(subscription)
        return subscription

    def publish(self, item: T) -> None:
        if self._closed:
            return
        for subscription in self._subscribers:
            subscription._deliver(item)

    def close(self) -> None:
        """Finish every subscriber's iteration."""
        if self._closed:
            return
        self._closed = True
        subscribers, self._subscribers = self._subscribers, []
        for subscription in subscribers:
            subscription._deliver(_END)

    def _remove(self, subscription: FeedSubscription[T]) -> None:
        if subscription in self._subscribers:
            self._subscribers.remove(subscription)

    def __aiter__(self) -> AsyncIterator[T]:
        return self.subscribe()

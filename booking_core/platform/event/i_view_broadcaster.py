"""
View Broadcaster Interface

Pub/sub used by projections to republish a freshly computed view to
whatever is bound to it: plain callbacks for synchronous UI bindings and
anyio memory streams for async consumers.
"""

from typing import Callable, Protocol, TypeVar

from anyio.streams.memory import MemoryObjectReceiveStream


T = TypeVar('T')


class IViewBroadcaster(Protocol[T]):
    def add_listener(self, listener: Callable[[T], None]) -> None:
        """Register a callback invoked synchronously on every publish"""
        ...

    def remove_listener(self, listener: Callable[[T], None]) -> None:
        """Remove a callback; unknown callbacks are ignored"""
        ...

    async def subscribe(self) -> MemoryObjectReceiveStream[T]:
        """
        Subscribe with a bounded stream

        Returns:
            MemoryObjectReceiveStream that will receive every published view
        """
        ...

    async def unsubscribe(self, *, stream: MemoryObjectReceiveStream[T]) -> None:
        """Close and forget a stream; safe to call with an unknown stream"""
        ...

    def broadcast(self, *, item: T) -> None:
        """
        Publish to every listener and stream subscriber

        Note:
            - Never blocks: a full subscriber stream drops the item
        """
        ...

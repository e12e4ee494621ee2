"""
In-memory View Broadcaster Implementation

Publishes projection views to in-process listeners and stream subscribers.
"""

from typing import Callable, Generic, List, TypeVar

from anyio import WouldBlock, create_memory_object_stream
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from booking_core.platform.logging.loguru_io import Logger


T = TypeVar('T')


class InMemoryViewBroadcasterImpl(Generic[T]):
    """
    In-memory pub/sub for projection views

    Memory Management:
    - Stream max buffer: configurable (default 10 views)
    - Drop policy: drop if stream full (send_nowait raises WouldBlock)
    - Listeners are called in registration order
    """

    def __init__(self, *, max_buffer_size: int = 10) -> None:
        self._max_buffer_size = max_buffer_size
        self._listeners: List[Callable[[T], None]] = []
        self._streams: List[tuple[MemoryObjectSendStream[T], MemoryObjectReceiveStream[T]]] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners) + len(self._streams)

    def add_listener(self, listener: Callable[[T], None]) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[T], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def subscribe(self) -> MemoryObjectReceiveStream[T]:
        send_stream, receive_stream = create_memory_object_stream[T](
            max_buffer_size=self._max_buffer_size
        )
        self._streams.append((send_stream, receive_stream))
        Logger.base.debug(f'[BROADCASTER] Subscribed (total streams: {len(self._streams)})')
        return receive_stream

    async def unsubscribe(self, *, stream: MemoryObjectReceiveStream[T]) -> None:
        for i, (send_stream, receive_stream) in enumerate(self._streams):
            if receive_stream is stream:
                await send_stream.aclose()
                await receive_stream.aclose()
                self._streams.pop(i)
                Logger.base.debug(
                    f'[BROADCASTER] Unsubscribed (remaining streams: {len(self._streams)})'
                )
                break

    def broadcast(self, *, item: T) -> None:
        for listener in list(self._listeners):
            listener(item)

        delivered = 0
        dropped = 0
        for send_stream, _ in self._streams:
            try:
                send_stream.send_nowait(item)
                delivered += 1
            except WouldBlock:
                # Slow consumer, drop rather than block the publisher
                dropped += 1
                Logger.base.warning('[BROADCASTER] Stream full, dropping view')

        if self._streams:
            Logger.base.debug(f'[BROADCASTER] delivered={delivered}, dropped={dropped}')

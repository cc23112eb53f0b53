"""
In-memory Event Dispatcher Implementation

Fans committed booking events out to push-channel connections.

Architecture:
- BookingCoordinator -> publish() -> subscriber buffers -> channel websocket writer
- Each connection registers once and owns one bounded memory stream
- Topics are resource ids, expo ids and the personal ``user:<id>`` topic
- Mutated only by connection lifecycle (register/subscribe/unsubscribe/unregister)

Delivery policy:
- Non-blocking: ``send_nowait``; a full or closed buffer drops the frame for
  that subscriber only (best-effort, the client refetches after reconnect)
- No backlog is kept for subscribers that are not connected
"""

from typing import Any, Dict, Iterable, Set, Tuple

from anyio import BrokenResourceError, ClosedResourceError, WouldBlock, create_memory_object_stream
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
import attrs
import uuid_utils

from src.platform.channel.channel_config import ChannelConfig
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.booking_metrics import BookingMetrics
from src.service.expo.app.interface.i_event_dispatcher import IEventDispatcher
from src.service.expo.domain.domain_event.booking_event import BookingEvent


Frame = Dict[str, Any]


def user_topic(user_id: str) -> str:
    return f'{ChannelConfig.USER_TOPIC_PREFIX}{user_id}'


@attrs.define
class ChannelSubscriber:
    id: str
    user_id: str
    send_stream: MemoryObjectSendStream[Frame]
    receive_stream: MemoryObjectReceiveStream[Frame]
    topics: Set[str] = attrs.field(factory=set)


class EventDispatcherImpl(IEventDispatcher):
    def __init__(self, *, buffer_size: int, metrics: BookingMetrics) -> None:
        self.buffer_size = buffer_size
        self.metrics = metrics
        self._subscribers: Dict[str, ChannelSubscriber] = {}

    # ========== Connection lifecycle ==========

    async def register(self, *, user_id: str) -> Tuple[str, MemoryObjectReceiveStream[Frame]]:
        """
        Create the outbound buffer for a new connection

        Returns:
            (subscriber_id, receive stream the connection writer drains)
        """
        send_stream, receive_stream = create_memory_object_stream[Frame](
            max_buffer_size=self.buffer_size
        )
        subscriber = ChannelSubscriber(
            id=str(uuid_utils.uuid7()),
            user_id=user_id,
            send_stream=send_stream,
            receive_stream=receive_stream,
            topics={user_topic(user_id)},
        )
        self._subscribers[subscriber.id] = subscriber
        self.metrics.channel_connections.inc()
        Logger.base.debug(
            f'📡 [DISPATCHER] Registered {subscriber.id} for user {user_id} '
            f'(total: {len(self._subscribers)})'
        )
        return subscriber.id, receive_stream

    def subscribe(self, *, subscriber_id: str, topics: Iterable[str]) -> Set[str]:
        subscriber = self._subscribers.get(subscriber_id)
        if subscriber is None:
            return set()
        subscriber.topics.update(topics)
        return set(subscriber.topics)

    def unsubscribe(self, *, subscriber_id: str, topics: Iterable[str]) -> Set[str]:
        subscriber = self._subscribers.get(subscriber_id)
        if subscriber is None:
            return set()
        # The personal topic lives as long as the connection
        subscriber.topics.difference_update(set(topics) - {user_topic(subscriber.user_id)})
        return set(subscriber.topics)

    async def unregister(self, *, subscriber_id: str) -> None:
        subscriber = self._subscribers.pop(subscriber_id, None)
        if subscriber is None:
            return
        await subscriber.send_stream.aclose()
        await subscriber.receive_stream.aclose()
        self.metrics.channel_connections.dec()
        Logger.base.debug(
            f'📡 [DISPATCHER] Unregistered {subscriber_id} (remaining: {len(self._subscribers)})'
        )

    def subscriber_count(self) -> int:
        return len(self._subscribers)

    # ========== Publishing ==========

    async def publish(self, event: BookingEvent) -> int:
        return self._fan_out(
            topics={event.resource_id, event.parent_event_id},
            frame={
                'type': event.message_type,
                'payload': event.to_channel_payload(),
                'timestamp': event.timestamp_ms,
            },
        )

    async def publish_to_topics(
        self, *, topics: Iterable[str], message_type: str, payload: Dict[str, Any]
    ) -> int:
        return self._fan_out(
            topics=set(topics), frame={'type': message_type, 'payload': payload}
        )

    async def publish_to_user(
        self, *, user_id: str, message_type: str, payload: Dict[str, Any]
    ) -> int:
        return await self.publish_to_topics(
            topics=[user_topic(user_id)], message_type=message_type, payload=payload
        )

    def _fan_out(self, *, topics: Set[str], frame: Frame) -> int:
        message_type = frame['type']
        delivered = 0
        dropped = 0

        # Snapshot: a connection may unregister while we iterate
        for subscriber in list(self._subscribers.values()):
            if subscriber.topics.isdisjoint(topics):
                continue
            try:
                subscriber.send_stream.send_nowait(frame)
                delivered += 1
            except WouldBlock:
                dropped += 1
                Logger.base.warning(
                    f'⚠️ [DISPATCHER] Buffer full for {subscriber.id}, dropping {message_type}'
                )
            except (ClosedResourceError, BrokenResourceError):
                dropped += 1

        self.metrics.record_fan_out(message_type=message_type, delivered=delivered, dropped=dropped)
        Logger.base.info(
            f'📡 [DISPATCHER] {message_type} -> {sorted(topics)}: '
            f'delivered={delivered}, dropped={dropped}'
        )
        return delivered

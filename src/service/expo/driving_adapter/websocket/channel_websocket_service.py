import asyncio
from typing import Any, Dict, List, Mapping, Optional

from anyio.streams.memory import MemoryObjectReceiveStream
from fastapi import WebSocket, WebSocketDisconnect

from src.platform.channel.channel_config import ChannelConfig, ChannelErrorMessages
from src.platform.channel.channel_message_codec import ChannelMessageCodec
from src.platform.exception.exceptions import CustomBaseError
from src.platform.logging.loguru_io import Logger
from src.service.expo.driven_adapter.channel.event_dispatcher_impl import (
    EventDispatcherImpl,
    user_topic,
)
from src.service.expo.driving_adapter.http_controller.auth.jwt_auth import JwtAuth


MessageType = ChannelConfig.MessageType


class ChannelWebSocketService:
    """
    Server end of the push channel

    One connection = one dispatcher subscriber. Two tasks run per connection:
    a writer draining the subscriber buffer onto the socket and a reader
    answering ping/subscribe/unsubscribe frames. When either ends the other is
    cancelled and the subscriber is unregistered.
    """

    def __init__(self, *, jwt_auth: JwtAuth, dispatcher: EventDispatcherImpl) -> None:
        self.jwt_auth = jwt_auth
        self.dispatcher = dispatcher
        self.codec = ChannelMessageCodec()

    async def handle_connection(self, websocket: WebSocket, token: Optional[str]) -> None:
        try:
            user = self.jwt_auth.get_current_user_info_from_jwt(token)
        except CustomBaseError as e:
            Logger.base.info(f'🔒 [WS] Rejecting handshake: {e.message}')
            await websocket.close(code=ChannelConfig.CLOSE_POLICY_VIOLATION, reason=e.message)
            return

        await websocket.accept()
        subscriber_id, stream = await self.dispatcher.register(user_id=user.id)
        Logger.base.info(f'🔌 [WS] {user.id} connected as {subscriber_id}')

        try:
            await self.send_message(
                websocket,
                MessageType.SESSION_READY,
                {
                    'userId': user.id,
                    'subscriberId': subscriber_id,
                    'topics': [user_topic(user.id)],
                },
            )

            writer_task = asyncio.create_task(self._forward_frames(websocket, stream))
            reader_task = asyncio.create_task(self._handle_messages(websocket, subscriber_id, user.id))

            # Wait for either task to complete (usually due to disconnection)
            _, pending = await asyncio.wait(
                {writer_task, reader_task}, return_when=asyncio.FIRST_COMPLETED
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
        finally:
            await self.dispatcher.unregister(subscriber_id=subscriber_id)
            Logger.base.info(f'🔌 [WS] {user.id} disconnected ({subscriber_id})')

    async def _forward_frames(
        self, websocket: WebSocket, stream: MemoryObjectReceiveStream[Dict[str, Any]]
    ) -> None:
        async for frame in stream:
            sent = await self.send_message(
                websocket, frame['type'], frame['payload'], timestamp=frame.get('timestamp')
            )
            if not sent:
                return

    async def _handle_messages(self, websocket: WebSocket, subscriber_id: str, user_id: str) -> None:
        while True:
            raw_message = await websocket.receive()

            if raw_message['type'] == 'websocket.disconnect':
                return
            if raw_message['type'] != 'websocket.receive':
                continue

            raw_data = raw_message.get('text')
            if raw_data is None:
                raw_data = raw_message.get('bytes')
            if raw_data is None:
                continue

            try:
                message = self.codec.decode(raw_data=raw_data)
            except ValueError as e:
                if not await self._send_error(
                    websocket, f'{ChannelErrorMessages.INVALID_MESSAGE_FORMAT}: {e}'
                ):
                    return
                continue

            if not await self._handle_message(websocket, subscriber_id, user_id, message):
                return

    async def _handle_message(
        self, websocket: WebSocket, subscriber_id: str, user_id: str, message: Mapping[str, Any]
    ) -> bool:
        message_type = message['type']
        data = message.get('data') or {}

        if message_type == MessageType.PING:
            return await self.send_message(websocket, MessageType.PONG, {})

        if message_type in (MessageType.SUBSCRIBE, MessageType.UNSUBSCRIBE):
            topics = self._parse_topics(data, user_id)
            if topics is None:
                return await self._send_error(websocket, ChannelErrorMessages.TOPICS_MUST_BE_LIST)

            if message_type == MessageType.SUBSCRIBE:
                current = self.dispatcher.subscribe(subscriber_id=subscriber_id, topics=topics)
                ack = MessageType.SUBSCRIBED
            else:
                current = self.dispatcher.unsubscribe(subscriber_id=subscriber_id, topics=topics)
                ack = MessageType.UNSUBSCRIBED
            return await self.send_message(websocket, ack, {'topics': sorted(current)})

        return await self._send_error(
            websocket, f'{ChannelErrorMessages.UNKNOWN_MESSAGE_TYPE}: {message_type}'
        )

    @staticmethod
    def _parse_topics(data: Any, user_id: str) -> Optional[List[str]]:
        topics = data.get('topics') if isinstance(data, dict) else None
        if not isinstance(topics, list) or not all(isinstance(t, str) and t for t in topics):
            return None
        # Personal topics of other users are never joinable
        own_topic = user_topic(user_id)
        return [
            t for t in topics if not t.startswith(ChannelConfig.USER_TOPIC_PREFIX) or t == own_topic
        ]

    async def _send_error(self, websocket: WebSocket, message: str) -> bool:
        return await self.send_message(websocket, MessageType.ERROR, {'message': message})

    async def send_message(
        self,
        websocket: WebSocket,
        message_type: str,
        payload: Mapping[str, Any],
        timestamp: Optional[int] = None,
    ) -> bool:
        """Send one frame

        Returns:
            bool: True if message was sent successfully, False otherwise
        """
        try:
            await websocket.send_text(
                self.codec.encode_inbound(
                    message_type=message_type, payload=payload, timestamp=timestamp
                )
            )
            return True
        except (WebSocketDisconnect, ConnectionError):
            return False
        except RuntimeError as e:
            # Starlette refuses to send once the close handshake has started
            Logger.base.debug(f'🔌 [WS] Send after close: {e}')
            return False

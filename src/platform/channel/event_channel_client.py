"""
Event Channel Client

Long-lived push connection from a client process to the booking server.
One instance per authenticated session: construct it at login, ``connect()``,
and ``disconnect()`` at logout (or use it as an async context manager).

Lifecycle:
    disconnected --connect()--> connecting --open--> connected
    connected --caller disconnect()--> closing --> disconnected (no reconnect)
    connected --any other close--> disconnected --> backoff --> connecting ...

Reconnect delays double from ``reconnect_base_delay``; after
``max_reconnect_attempts`` consecutive failures a ``reconnect_failed`` event is
emitted and automatic attempts stop. The attempt counter only resets once a
connection reaches ``connected``.

Delivery is at-least-once across reconnects: handlers should de-duplicate on
``BookingEventMessage.id``.
"""

import asyncio
from enum import StrEnum
import inspect
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Self, Set
from urllib.parse import urlencode, urlsplit, urlunsplit

import attrs

from src.platform.channel.channel_config import ChannelConfig, ChannelErrorMessages
from src.platform.channel.channel_message_codec import ChannelMessageCodec
from src.platform.channel.channel_transport import (
    ChannelClosed,
    ChannelConnector,
    ChannelTransport,
    ChannelTransportError,
    websockets_connector,
)
from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger
from src.service.shared_kernel.domain.enum import BookingEventKind, ResourceKind


MessageType = ChannelConfig.MessageType

Handler = Callable[[Any], Awaitable[None] | None]
SleepFunc = Callable[[float], Awaitable[None]]


class ConnectionState(StrEnum):
    DISCONNECTED = 'disconnected'
    CONNECTING = 'connecting'
    CONNECTED = 'connected'
    CLOSING = 'closing'


class ChannelEvent(StrEnum):
    CONNECTED = 'connected'
    DISCONNECTED = 'disconnected'
    ERROR = 'error'
    RECONNECT_FAILED = 'reconnect_failed'


@attrs.frozen
class BookingEventMessage:
    """A booking event as received over the channel (booth_update / session_update)."""

    id: str
    kind: BookingEventKind
    action: str
    resource_kind: ResourceKind
    resource_id: str
    parent_event_id: str
    actor_id: Any
    holder_id: Any
    timestamp: Optional[int]
    resource: Dict[str, Any] = attrs.field(factory=dict)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], *, timestamp: Optional[int]) -> Self:
        return cls(
            id=str(payload['id']),
            kind=BookingEventKind(payload['kind']),
            action=str(payload['action']),
            resource_kind=ResourceKind(payload['resourceKind']),
            resource_id=str(payload['resourceId']),
            parent_event_id=str(payload['expoId']),
            actor_id=payload.get('actorId'),
            holder_id=payload.get('holderId'),
            timestamp=timestamp,
            resource=dict(payload.get('resource') or {}),
        )


class EventChannelClient:
    def __init__(
        self,
        *,
        url: Optional[str] = None,
        token: Optional[str] = None,
        connector: ChannelConnector = websockets_connector,
        heartbeat_interval: Optional[float] = None,
        reconnect_base_delay: Optional[float] = None,
        max_reconnect_attempts: Optional[int] = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        # Unset options fall back to the CHANNEL_* settings
        self.url = url or settings.CHANNEL_URL
        self.token = token
        self.heartbeat_interval = (
            settings.CHANNEL_HEARTBEAT_INTERVAL_SECONDS
            if heartbeat_interval is None
            else heartbeat_interval
        )
        self.reconnect_base_delay = (
            settings.CHANNEL_RECONNECT_BASE_DELAY_SECONDS
            if reconnect_base_delay is None
            else reconnect_base_delay
        )
        self.max_reconnect_attempts = (
            settings.CHANNEL_MAX_RECONNECT_ATTEMPTS
            if max_reconnect_attempts is None
            else max_reconnect_attempts
        )
        self._connector = connector
        self._sleep = sleep  # backoff only, the heartbeat runs on real time

        self.state = ConnectionState.DISCONNECTED
        self.reconnect_attempt = 0
        self.subscriptions: Set[str] = set()

        self._handlers: Dict[str, List[Handler]] = {}
        self._transport: Optional[ChannelTransport] = None
        self._reader_task: Optional[asyncio.Task[None]] = None
        self._heartbeat_task: Optional[asyncio.Task[None]] = None
        self._reconnect_task: Optional[asyncio.Task[None]] = None

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.disconnect()

    @property
    def is_connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED and self._transport is not None

    # ========== Lifecycle ==========

    async def connect(self, token: Optional[str] = None) -> None:
        if token is not None:
            self.token = token
        if self.state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            return
        self._cancel_reconnect()
        await self._open()

    async def disconnect(self) -> None:
        self._cancel_reconnect()
        transport = self._transport
        if transport is None:
            self.state = ConnectionState.DISCONNECTED
            return

        self.state = ConnectionState.CLOSING
        self._stop_heartbeat()
        try:
            await transport.close(ChannelConfig.CLOSE_NORMAL, 'Client disconnect')
        except ChannelTransportError as e:
            Logger.base.debug(f'🔌 [CHANNEL] Close handshake failed: {e}')

        # The reader observes the close and finalizes; fall back if it never does
        reader = self._reader_task
        if reader is not None and reader is not asyncio.current_task() and not reader.done():
            _, pending = await asyncio.wait({reader}, timeout=ChannelConfig.DISCONNECT_DRAIN_TIMEOUT)
            for task in pending:
                task.cancel()
        if self._transport is transport:
            await self._on_transport_closed(
                transport, ChannelConfig.CLOSE_NORMAL, 'Client disconnect'
            )
        self._reader_task = None

    def _build_url(self) -> str:
        if not self.token:
            return self.url
        parts = urlsplit(self.url)
        query = '&'.join(
            filter(None, [parts.query, urlencode({ChannelConfig.TOKEN_QUERY_PARAM: self.token})])
        )
        return urlunsplit(parts._replace(query=query))

    async def _open(self) -> None:
        self.state = ConnectionState.CONNECTING
        Logger.base.info(
            f'🔌 [CHANNEL] Connecting to {self.url} (attempt {self.reconnect_attempt})'
        )
        try:
            transport = await self._connector(self._build_url())
        except ChannelTransportError as e:
            self.state = ConnectionState.DISCONNECTED
            Logger.base.warning(f'⚠️ [CHANNEL] Connect failed: {e}')
            await self._emit(ChannelEvent.ERROR, {'message': str(e)})
            await self._schedule_reconnect()
            return

        if self.state is not ConnectionState.CONNECTING:
            # disconnect() ran while the handshake was in flight
            await transport.close(ChannelConfig.CLOSE_NORMAL, 'Client disconnect')
            return

        self._transport = transport
        self.state = ConnectionState.CONNECTED
        self.reconnect_attempt = 0
        self._reader_task = asyncio.create_task(self._read_loop(transport))
        self._heartbeat_task = asyncio.create_task(self._heartbeat_loop(transport))
        Logger.base.info(f'🔌 [CHANNEL] Connected to {self.url}')

        if self.subscriptions:
            await self.send(MessageType.SUBSCRIBE, {'topics': sorted(self.subscriptions)})
        await self._emit(ChannelEvent.CONNECTED, {'url': self.url})

    async def _schedule_reconnect(self) -> None:
        if self.reconnect_attempt >= self.max_reconnect_attempts:
            Logger.base.error(
                f'❌ [CHANNEL] Giving up after {self.reconnect_attempt} reconnect attempts'
            )
            await self._emit(
                ChannelEvent.RECONNECT_FAILED,
                {
                    'message': ChannelErrorMessages.RECONNECT_FAILED,
                    'attempts': self.reconnect_attempt,
                },
            )
            return

        self.reconnect_attempt += 1
        delay = self.reconnect_base_delay * 2 ** (self.reconnect_attempt - 1)
        Logger.base.info(
            f'🔁 [CHANNEL] Reconnect {self.reconnect_attempt}/{self.max_reconnect_attempts} '
            f'in {delay}s'
        )
        self._reconnect_task = asyncio.create_task(self._reconnect_after(delay))

    async def _reconnect_after(self, delay: float) -> None:
        await self._sleep(delay)
        if self.state is ConnectionState.DISCONNECTED:
            await self._open()

    def _cancel_reconnect(self) -> None:
        task = self._reconnect_task
        self._reconnect_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _stop_heartbeat(self) -> None:
        task = self._heartbeat_task
        self._heartbeat_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _on_transport_closed(
        self, transport: ChannelTransport, code: int, reason: str = ''
    ) -> None:
        if transport is not self._transport:
            return
        self._transport = None
        self._stop_heartbeat()
        caller_initiated = self.state is ConnectionState.CLOSING
        self.state = ConnectionState.DISCONNECTED
        Logger.base.info(f'🔌 [CHANNEL] Disconnected (code={code}, reason={reason!r})')
        await self._emit(ChannelEvent.DISCONNECTED, {'code': code, 'reason': reason})

        if caller_initiated or code == ChannelConfig.CLOSE_NORMAL:
            return
        await self._schedule_reconnect()

    # ========== Background loops ==========

    async def _read_loop(self, transport: ChannelTransport) -> None:
        try:
            while True:
                raw = await transport.recv()
                await self._handle_frame(raw)
        except ChannelClosed as e:
            await self._on_transport_closed(transport, e.code, e.reason)
        except ChannelTransportError as e:
            await self._on_transport_closed(transport, ChannelConfig.CLOSE_ABNORMAL, str(e))

    async def _heartbeat_loop(self, transport: ChannelTransport) -> None:
        while transport is self._transport:
            await asyncio.sleep(self.heartbeat_interval)
            if transport is not self._transport:
                return
            await self.send(MessageType.PING)

    # ========== Inbound ==========

    async def _handle_frame(self, raw: str | bytes) -> None:
        try:
            message = ChannelMessageCodec.decode(raw_data=raw)
        except ValueError as e:
            Logger.base.warning(f'⚠️ [CHANNEL] Dropping malformed frame: {e}')
            return

        message_type = message['type']
        payload = message.get('payload') or {}
        if not isinstance(payload, dict):
            Logger.base.warning(f'⚠️ [CHANNEL] Dropping {message_type} frame with non-object payload')
            return

        if message_type in ChannelConfig.CONTROL_ACK_TYPES:
            Logger.base.debug(f'🔌 [CHANNEL] {message_type}: {payload}')
            return
        if message_type == MessageType.ERROR:
            Logger.base.warning(f'⚠️ [CHANNEL] Server error: {payload.get("message")}')
            await self._emit(ChannelEvent.ERROR, payload)
            return
        if message_type not in ChannelConfig.APPLICATION_TYPES:
            Logger.base.warning(f'⚠️ [CHANNEL] Dropping unknown message type {message_type!r}')
            return

        await self._emit(message_type, payload)

        # Close/delete updates carry no booking kind
        if message_type in ChannelConfig.BOOKING_UPDATE_TYPES and 'kind' in payload:
            try:
                event = BookingEventMessage.from_payload(payload, timestamp=message.get('timestamp'))
            except (KeyError, ValueError, TypeError) as e:
                Logger.base.warning(f'⚠️ [CHANNEL] Unparseable {message_type} payload: {e}')
                return
            await self._emit(event.kind, event)

    # ========== Outbound ==========

    async def send(self, message_type: str, data: Optional[Mapping[str, Any]] = None) -> bool:
        """Send a frame while connected; returns False (and logs) otherwise. Never raises."""
        transport = self._transport
        if not self.is_connected or transport is None:
            Logger.base.warning(f'⚠️ [CHANNEL] Not connected ({self.state}), dropping {message_type}')
            return False

        try:
            await transport.send(
                ChannelMessageCodec.encode_outbound(message_type=message_type, data=data)
            )
            return True
        except ChannelTransportError as e:
            Logger.base.warning(f'⚠️ [CHANNEL] Send of {message_type} failed: {e}')
            return False
        except Exception as e:
            Logger.base.error(f'❌ [CHANNEL] Unexpected error sending {message_type}: {e}')
            return False

    async def subscribe(self, *topics: str) -> None:
        added = sorted(set(topics) - self.subscriptions)
        self.subscriptions.update(added)
        if added and self.is_connected:
            await self.send(MessageType.SUBSCRIBE, {'topics': added})

    async def unsubscribe(self, *topics: str) -> None:
        removed = sorted(set(topics) & self.subscriptions)
        self.subscriptions.difference_update(removed)
        if removed and self.is_connected:
            await self.send(MessageType.UNSUBSCRIBE, {'topics': removed})

    # ========== Local pub/sub ==========

    def on(self, event: str, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` for a channel event, frame type or BookingEventKind."""
        self._handlers.setdefault(str(event), []).append(handler)
        return lambda: self.off(event, handler)

    def off(self, event: str, handler: Handler) -> None:
        handlers = self._handlers.get(str(event))
        if not handlers or handler not in handlers:
            return
        handlers.remove(handler)
        if not handlers:
            del self._handlers[str(event)]

    async def _emit(self, event: str, data: Any) -> None:
        for handler in list(self._handlers.get(str(event), ())):
            try:
                result = handler(data)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                Logger.base.exception(f'❌ [CHANNEL] Handler for {event} raised')

"""
Unit tests for EventChannelClient

The websocket is replaced by an in-memory transport and the backoff sleep
by a recorder, so reconnect schedules can be asserted exactly.
"""

import asyncio
from typing import Any, List, Optional

import orjson
import pytest

from src.platform.channel.channel_config import ChannelConfig
from src.platform.channel.channel_message_codec import ChannelMessageCodec
from src.platform.channel.channel_transport import ChannelClosed, ChannelTransportError
from src.platform.channel.event_channel_client import (
    BookingEventMessage,
    ChannelEvent,
    ConnectionState,
    EventChannelClient,
)
from src.platform.config.core_setting import settings
from src.service.shared_kernel.domain.enum import BookingEventKind, ResourceKind


class FakeTransport:
    def __init__(self) -> None:
        self.sent: List[dict] = []
        self.closed_with: Optional[int] = None
        self._inbox: asyncio.Queue[Any] = asyncio.Queue()

    async def send(self, frame: str) -> None:
        if self.closed_with is not None:
            raise ChannelClosed(self.closed_with, 'closed')
        self.sent.append(orjson.loads(frame))

    async def recv(self) -> str | bytes:
        item = await self._inbox.get()
        if isinstance(item, ChannelClosed):
            raise item
        return item

    async def close(self, code: int = ChannelConfig.CLOSE_NORMAL, reason: str = '') -> None:
        if self.closed_with is None:
            self.closed_with = code
            self._inbox.put_nowait(ChannelClosed(code, reason))

    def push(self, message_type: str, payload: Any = None, timestamp: Optional[int] = None) -> None:
        self._inbox.put_nowait(
            ChannelMessageCodec.encode_inbound(
                message_type=message_type, payload=payload, timestamp=timestamp
            )
        )

    def push_raw(self, raw: str) -> None:
        self._inbox.put_nowait(raw)

    def drop(self, code: int = ChannelConfig.CLOSE_ABNORMAL, reason: str = 'gone') -> None:
        self.closed_with = code
        self._inbox.put_nowait(ChannelClosed(code, reason))

    def sent_types(self) -> List[str]:
        return [frame['type'] for frame in self.sent]


class FakeConnector:
    """Hands out the scripted outcomes in order; fails once the script runs out."""

    def __init__(self, *outcomes: Any) -> None:
        self.outcomes = list(outcomes)
        self.urls: List[str] = []

    async def __call__(self, url: str) -> FakeTransport:
        self.urls.append(url)
        outcome = self.outcomes.pop(0) if self.outcomes else ChannelTransportError('refused')
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


async def settle(rounds: int = 50) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


def _client(connector: FakeConnector, sleep: SleepRecorder, **kwargs: Any) -> EventChannelClient:
    return EventChannelClient(
        url='ws://test/ws',
        token='abc',
        connector=connector,
        sleep=sleep,
        heartbeat_interval=kwargs.pop('heartbeat_interval', 30.0),
        reconnect_base_delay=kwargs.pop('reconnect_base_delay', 1.0),
        max_reconnect_attempts=kwargs.pop('max_reconnect_attempts', 5),
    )


def _record(client: EventChannelClient, event: str) -> List[Any]:
    received: List[Any] = []
    client.on(event, received.append)
    return received


def _booking_payload(kind: str = 'booked', action: str = 'booked') -> dict:
    return {
        'id': 'evt-1',
        'kind': kind,
        'action': action,
        'resourceKind': 'booth',
        'resourceId': 'booth-1',
        'expoId': 'expo-1',
        'actorId': 'ex1',
        'holderId': 'ex1',
        'resource': {'id': 'booth-1', 'status': 'occupied'},
    }


@pytest.mark.unit
class TestConnectionLifecycle:
    def test_unset_options_come_from_settings(self) -> None:
        client = EventChannelClient(connector=FakeConnector(FakeTransport()))

        assert client.url == settings.CHANNEL_URL
        assert client.heartbeat_interval == settings.CHANNEL_HEARTBEAT_INTERVAL_SECONDS
        assert client.reconnect_base_delay == settings.CHANNEL_RECONNECT_BASE_DELAY_SECONDS
        assert client.max_reconnect_attempts == settings.CHANNEL_MAX_RECONNECT_ATTEMPTS

    def test_explicit_zero_is_kept(self) -> None:
        client = EventChannelClient(
            url='ws://other/ws',
            connector=FakeConnector(FakeTransport()),
            reconnect_base_delay=0.0,
            max_reconnect_attempts=0,
        )

        assert client.url == 'ws://other/ws'
        assert client.reconnect_base_delay == 0.0
        assert client.max_reconnect_attempts == 0

    @pytest.mark.asyncio
    async def test_connect_opens_with_token_and_emits_connected(self) -> None:
        transport = FakeTransport()
        connector = FakeConnector(transport)
        client = _client(connector, SleepRecorder())
        connected = _record(client, ChannelEvent.CONNECTED)

        await client.connect()

        assert client.is_connected
        assert client.state == ConnectionState.CONNECTED
        assert connector.urls == ['ws://test/ws?token=abc']
        assert connected == [{'url': 'ws://test/ws'}]
        await client.disconnect()

    @pytest.mark.asyncio
    async def test_connect_while_connected_is_a_no_op(self) -> None:
        connector = FakeConnector(FakeTransport())
        client = _client(connector, SleepRecorder())

        await client.connect()
        await client.connect()

        assert len(connector.urls) == 1
        await client.disconnect()

    @pytest.mark.asyncio
    async def test_caller_disconnect_does_not_reconnect(self) -> None:
        transport = FakeTransport()
        connector = FakeConnector(transport, FakeTransport())
        sleep = SleepRecorder()
        client = _client(connector, sleep)
        disconnected = _record(client, ChannelEvent.DISCONNECTED)
        await client.connect()

        await client.disconnect()
        await settle()

        assert transport.closed_with == ChannelConfig.CLOSE_NORMAL
        assert client.state == ConnectionState.DISCONNECTED
        assert disconnected == [{'code': 1000, 'reason': 'Client disconnect'}]
        assert sleep.delays == []
        assert len(connector.urls) == 1

    @pytest.mark.asyncio
    async def test_server_normal_close_does_not_reconnect(self) -> None:
        transport = FakeTransport()
        connector = FakeConnector(transport)
        sleep = SleepRecorder()
        client = _client(connector, sleep)
        await client.connect()

        transport.drop(code=ChannelConfig.CLOSE_NORMAL, reason='bye')
        await settle()

        assert client.state == ConnectionState.DISCONNECTED
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_context_manager_connects_and_disconnects(self) -> None:
        transport = FakeTransport()
        client = _client(FakeConnector(transport), SleepRecorder())

        async with client:
            assert client.is_connected

        assert client.state == ConnectionState.DISCONNECTED
        assert transport.closed_with == ChannelConfig.CLOSE_NORMAL


@pytest.mark.unit
class TestReconnect:
    @pytest.mark.asyncio
    async def test_backoff_doubles_then_reports_reconnect_failed(self) -> None:
        connector = FakeConnector()  # every attempt is refused
        sleep = SleepRecorder()
        client = _client(connector, sleep, max_reconnect_attempts=3)
        failed = _record(client, ChannelEvent.RECONNECT_FAILED)
        errors = _record(client, ChannelEvent.ERROR)

        await client.connect()
        await settle()

        assert sleep.delays == [1.0, 2.0, 4.0]
        assert len(connector.urls) == 4
        assert len(errors) == 4
        assert len(failed) == 1
        assert failed[0]['attempts'] == 3
        assert client.state == ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_attempt_counter_resets_after_successful_connect(self) -> None:
        first = FakeTransport()
        second = FakeTransport()
        connector = FakeConnector(
            ChannelTransportError('refused'), ChannelTransportError('refused'), first, second
        )
        sleep = SleepRecorder()
        client = _client(connector, sleep)

        await client.connect()
        await settle()
        assert client.is_connected
        assert client.reconnect_attempt == 0
        assert sleep.delays == [1.0, 2.0]

        first.drop()
        await settle()

        assert sleep.delays == [1.0, 2.0, 1.0]
        assert client.is_connected
        await client.disconnect()

    @pytest.mark.asyncio
    async def test_abnormal_close_emits_disconnected_then_reconnects(self) -> None:
        first = FakeTransport()
        second = FakeTransport()
        client = _client(FakeConnector(first, second), SleepRecorder())
        disconnected = _record(client, ChannelEvent.DISCONNECTED)
        connected = _record(client, ChannelEvent.CONNECTED)
        await client.connect()

        first.drop(code=ChannelConfig.CLOSE_ABNORMAL)
        await settle()

        assert disconnected == [{'code': 1006, 'reason': 'gone'}]
        assert len(connected) == 2
        assert client.is_connected
        await client.disconnect()

    @pytest.mark.asyncio
    async def test_subscriptions_are_restored_after_reconnect(self) -> None:
        first = FakeTransport()
        second = FakeTransport()
        client = _client(FakeConnector(first, second), SleepRecorder())
        await client.connect()
        await client.subscribe('booth-1', 'expo-1')

        first.drop()
        await settle()

        assert first.sent[-1]['data'] == {'topics': ['booth-1', 'expo-1']}
        assert second.sent_types() == ['subscribe']
        assert second.sent[0]['data'] == {'topics': ['booth-1', 'expo-1']}
        await client.disconnect()


@pytest.mark.unit
class TestInboundFrames:
    @pytest.mark.asyncio
    async def test_frames_are_demultiplexed_by_type(self) -> None:
        transport = FakeTransport()
        client = _client(FakeConnector(transport), SleepRecorder())
        booth_updates = _record(client, 'booth_update')
        notifications = _record(client, 'notification')
        await client.connect()

        transport.push('booth_update', _booking_payload(), timestamp=1700000000000)
        transport.push('notification', {'title': 'Booth booking confirmed'})
        await settle()

        assert booth_updates[0]['resourceId'] == 'booth-1'
        assert notifications == [{'title': 'Booth booking confirmed'}]
        await client.disconnect()

    @pytest.mark.asyncio
    async def test_booking_updates_are_also_emitted_by_kind(self) -> None:
        transport = FakeTransport()
        client = _client(FakeConnector(transport), SleepRecorder())
        promoted = _record(client, BookingEventKind.PROMOTED)
        await client.connect()

        transport.push('booth_update', _booking_payload(kind='promoted'), timestamp=1700000000000)
        await settle()

        assert len(promoted) == 1
        message = promoted[0]
        assert isinstance(message, BookingEventMessage)
        assert message.kind == BookingEventKind.PROMOTED
        assert message.resource_kind == ResourceKind.BOOTH
        assert message.parent_event_id == 'expo-1'
        assert message.timestamp == 1700000000000
        assert message.resource['status'] == 'occupied'
        await client.disconnect()

    @pytest.mark.asyncio
    async def test_malformed_and_unknown_frames_are_dropped(self) -> None:
        transport = FakeTransport()
        client = _client(FakeConnector(transport), SleepRecorder())
        session_updates = _record(client, 'session_update')
        errors = _record(client, ChannelEvent.ERROR)
        await client.connect()

        transport.push_raw('{not json')
        transport.push_raw('[1, 2, 3]')
        transport.push('mystery', {'x': 1})
        transport.push('session_update', {'action': 'closed', 'resourceId': 's1'})
        await settle()

        # The loop survived and the valid frame still arrived
        assert session_updates == [{'action': 'closed', 'resourceId': 's1'}]
        assert errors == []
        assert client.is_connected
        await client.disconnect()

    @pytest.mark.asyncio
    async def test_server_error_frame_is_surfaced(self) -> None:
        transport = FakeTransport()
        client = _client(FakeConnector(transport), SleepRecorder())
        errors = _record(client, ChannelEvent.ERROR)
        await client.connect()

        transport.push('error', {'message': 'Unknown message type: foo'})
        await settle()

        assert errors == [{'message': 'Unknown message type: foo'}]
        await client.disconnect()

    @pytest.mark.asyncio
    async def test_off_and_unsubscribe_handle_stop_delivery(self) -> None:
        transport = FakeTransport()
        client = _client(FakeConnector(transport), SleepRecorder())
        first: List[Any] = []
        second: List[Any] = []
        unsubscribe = client.on('expo_update', first.append)
        client.on('expo_update', second.append)
        await client.connect()

        transport.push('expo_update', {'n': 1})
        await settle()
        unsubscribe()
        client.off('expo_update', second.append)
        transport.push('expo_update', {'n': 2})
        await settle()

        assert first == [{'n': 1}]
        assert second == [{'n': 1}]
        await client.disconnect()

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_block_others(self) -> None:
        transport = FakeTransport()
        client = _client(FakeConnector(transport), SleepRecorder())
        received: List[Any] = []

        def broken(_: Any) -> None:
            raise RuntimeError('handler bug')

        async def working(data: Any) -> None:
            received.append(data)

        client.on('notification', broken)
        client.on('notification', working)
        await client.connect()

        transport.push('notification', {'id': 'n1'})
        await settle()

        assert received == [{'id': 'n1'}]
        await client.disconnect()


@pytest.mark.unit
class TestOutbound:
    @pytest.mark.asyncio
    async def test_send_while_disconnected_returns_false(self) -> None:
        client = _client(FakeConnector(), SleepRecorder())

        assert await client.send('ping') is False

    @pytest.mark.asyncio
    async def test_send_frames_carry_type_data_and_timestamp(self) -> None:
        transport = FakeTransport()
        client = _client(FakeConnector(transport), SleepRecorder())
        await client.connect()

        assert await client.send('subscribe', {'topics': ['expo-1']}) is True

        frame = transport.sent[-1]
        assert frame['type'] == 'subscribe'
        assert frame['data'] == {'topics': ['expo-1']}
        assert isinstance(frame['timestamp'], int)
        await client.disconnect()

    @pytest.mark.asyncio
    async def test_subscribe_sends_only_new_topics(self) -> None:
        transport = FakeTransport()
        client = _client(FakeConnector(transport), SleepRecorder())
        await client.connect()

        await client.subscribe('expo-1')
        await client.subscribe('expo-1', 'booth-1')
        await client.unsubscribe('expo-1', 'never-joined')

        assert [(f['type'], f['data']) for f in transport.sent] == [
            ('subscribe', {'topics': ['expo-1']}),
            ('subscribe', {'topics': ['booth-1']}),
            ('unsubscribe', {'topics': ['expo-1']}),
        ]
        assert client.subscriptions == {'booth-1'}
        await client.disconnect()

    @pytest.mark.asyncio
    async def test_heartbeat_sends_ping_while_connected(self) -> None:
        transport = FakeTransport()
        client = _client(FakeConnector(transport), SleepRecorder(), heartbeat_interval=0.01)
        await client.connect()

        await asyncio.sleep(0.05)
        await client.disconnect()
        pings = transport.sent_types().count('ping')
        await asyncio.sleep(0.03)

        assert pings >= 2
        assert transport.sent_types().count('ping') == pings

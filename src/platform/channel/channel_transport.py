"""
Push channel transport seam

The client talks to a ``ChannelTransport``; production uses the websockets
library, tests plug in an in-memory fake.
"""

from typing import Awaitable, Callable, Protocol

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from src.platform.channel.channel_config import ChannelConfig


class ChannelTransportError(Exception):
    """The transport could not be opened or failed mid-session."""


class ChannelClosed(ChannelTransportError):
    def __init__(self, code: int, reason: str = '') -> None:
        self.code = code
        self.reason = reason
        super().__init__(f'Channel closed (code={code}, reason={reason!r})')


class ChannelTransport(Protocol):
    async def send(self, frame: str) -> None: ...

    async def recv(self) -> str | bytes:
        """Next frame; raises ChannelClosed once the peer or the network ends the session."""
        ...

    async def close(self, code: int = ChannelConfig.CLOSE_NORMAL, reason: str = '') -> None: ...


ChannelConnector = Callable[[str], Awaitable[ChannelTransport]]


def _closed_from(exc: ConnectionClosed) -> ChannelClosed:
    if exc.rcvd is not None:
        return ChannelClosed(exc.rcvd.code, exc.rcvd.reason)
    return ChannelClosed(ChannelConfig.CLOSE_ABNORMAL, 'Connection lost')


class WebsocketsTransport:
    def __init__(self, connection: ClientConnection) -> None:
        self._connection = connection

    async def send(self, frame: str) -> None:
        try:
            await self._connection.send(frame)
        except ConnectionClosed as e:
            raise _closed_from(e) from e

    async def recv(self) -> str | bytes:
        try:
            return await self._connection.recv()
        except ConnectionClosed as e:
            raise _closed_from(e) from e

    async def close(self, code: int = ChannelConfig.CLOSE_NORMAL, reason: str = '') -> None:
        await self._connection.close(code=code, reason=reason)


async def websockets_connector(url: str) -> ChannelTransport:
    # Liveness is driven by the application-level ping frames
    try:
        connection = await connect(url, ping_interval=None)
    except (OSError, TimeoutError, WebSocketException) as e:
        raise ChannelTransportError(f'Unable to open {url}: {e}') from e
    return WebsocketsTransport(connection)

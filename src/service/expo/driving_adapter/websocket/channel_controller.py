from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Query, WebSocket

from src.platform.config.di import Container
from src.service.expo.driving_adapter.websocket.channel_websocket_service import (
    ChannelWebSocketService,
)


router = APIRouter()


@router.websocket('/ws')
@inject
async def channel_websocket(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    service: ChannelWebSocketService = Depends(Provide[Container.channel_websocket_service]),
) -> None:
    """Push channel: booth/session updates, expo updates and personal notifications."""
    await service.handle_connection(websocket, token)

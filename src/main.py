"""
Production FastAPI Application

Booking REST API plus the push channel WebSocket endpoint.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from src.platform.app_factory import create_app
from src.platform.config.core_setting import settings
from src.platform.config.di import container
from src.platform.config.wire_modules import WIRE_MODULES
from src.platform.logging.loguru_io import Logger
from src.platform.observability.tracing import TracingConfig
from src.platform.state.kvrocks_client import kvrocks_client


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan: startup and shutdown."""
    Logger.base.info('🚀 [Expo Service] Starting up...')

    tracing = TracingConfig(service_name='expo-booking-service')
    tracing.setup()
    Logger.base.info('📊 [Expo Service] OpenTelemetry tracing configured')

    if settings.DOCUMENT_STORE_BACKEND == 'kvrocks':
        await kvrocks_client.initialize()
        Logger.base.info('🗄️ [Expo Service] Kvrocks document store connected')

    container.wire(modules=WIRE_MODULES)
    Logger.base.info('🔌 [Expo Service] Dependency injection wired')

    Logger.base.info('✅ [Expo Service] Ready to serve requests')

    yield

    Logger.base.info('🛑 [Expo Service] Shutting down...')

    dispatcher = container.event_dispatcher()
    Logger.base.info(
        f'📡 [Expo Service] Closing channel with {dispatcher.subscriber_count()} subscribers'
    )

    await kvrocks_client.disconnect()
    Logger.base.info('🗄️ [Expo Service] Kvrocks connection closed')

    tracing.shutdown()
    Logger.base.info('📊 [Expo Service] Tracing shutdown complete')

    container.unwire()

    Logger.base.info('👋 [Expo Service] Shutdown complete')


app = create_app(
    lifespan=lifespan,
    description='Expo Booking Service - booth and session booking with a real-time push channel',
)


@app.get('/')
async def root() -> RedirectResponse:
    """Root endpoint - redirect to docs."""
    return RedirectResponse(url='/docs')

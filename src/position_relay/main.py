"""Application entry point wiring the poller, broadcaster and HTTP/WebSocket API."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import APIRouter, FastAPI, WebSocket, WebSocketDisconnect, status
from fastapi.middleware.cors import CORSMiddleware

from position_relay.application.position_poller import PositionPoller
from position_relay.application.remote_session import RemoteSession
from position_relay.application.snapshot_broadcaster import SnapshotBroadcaster
from position_relay.application.subscriber_registry import SubscriberRegistry
from position_relay.config.logging_config import configure_logging, resolve_log_level
from position_relay.config.settings import Settings, get_settings
from position_relay.domain.repositories.remote_console import RemoteConsole
from position_relay.infrastructure.rcon.source_remote_console import SourceRemoteConsole

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    remote_console: RemoteConsole | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance."""

    settings = settings or get_settings()
    configure_logging(resolve_log_level(settings.log_level))

    console = (
        remote_console
        if remote_console is not None
        else SourceRemoteConsole(
            settings.rcon_host,
            settings.rcon_port,
            settings.rcon_password,
            settings.rcon_timeout_seconds,
        )
    )
    registry = SubscriberRegistry()
    broadcaster = SnapshotBroadcaster(
        registry,
        debug=settings.debug,
        send_timeout_seconds=settings.subscriber_send_timeout_seconds,
    )
    session = RemoteSession(console, settings.rcon_timeout_seconds)
    poller = PositionPoller(
        session,
        broadcaster,
        interval_seconds=settings.poll_interval_seconds,
        reconnect_delay_seconds=settings.reconnect_delay_seconds,
        error_threshold=settings.error_threshold,
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "Initializing RCON connection to %s:%s",
            settings.rcon_host,
            settings.rcon_port,
        )
        session.schedule_reconnect(0)
        poller.start()
        try:
            yield
        finally:
            await poller.stop()
            await broadcaster.close_all()
            await session.disconnect()

    app = FastAPI(
        title="Player Position Relay", version=settings.app_version, lifespan=lifespan
    )
    app.state.settings = settings
    app.state.session = session
    app.state.broadcaster = broadcaster
    app.state.poller = poller

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/", status_code=status.HTTP_200_OK)
    async def get_root() -> dict[str, str]:
        """Return a simple heartbeat response for uptime monitoring."""

        return {"message": "RUNNING POSITION RELAY"}

    @app.websocket("/")
    async def subscribe(websocket: WebSocket) -> None:
        """Stream every published snapshot to the connected client."""

        await websocket.accept()
        await broadcaster.on_subscriber_join(websocket)
        try:
            while True:
                # Inbound messages carry no meaning; reading detects the close.
                await websocket.receive_text()
        except WebSocketDisconnect as disconnect:
            logger.debug("Subscriber disconnected with code %s", disconnect.code)
        finally:
            await broadcaster.on_subscriber_leave(websocket)

    api_router = APIRouter(prefix=settings.api_prefix)

    @api_router.get("/status", status_code=status.HTTP_200_OK)
    async def get_status() -> dict:
        """Return the operational status of the relay and its RCON session."""

        return {
            "status": "ok",
            "version": settings.app_version,
            "subscribers": broadcaster.subscriber_count,
            "rcon": session.state.to_dict(),
        }

    @api_router.get("/players", status_code=status.HTTP_200_OK)
    async def get_players() -> dict:
        """Return the last published player snapshot."""

        return broadcaster.last_snapshot.to_dict()

    app.include_router(api_router)
    return app

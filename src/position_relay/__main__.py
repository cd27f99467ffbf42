"""Run the position relay with ``python -m position_relay``."""
from __future__ import annotations

import uvicorn

from position_relay.config.settings import get_settings
from position_relay.main import create_app


def main() -> None:
    """Serve the subscriber WebSocket and status API with Uvicorn."""

    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.listen_host,
        port=settings.websocket_port,
        reload=False,
        log_config=None,
    )


if __name__ == "__main__":
    main()

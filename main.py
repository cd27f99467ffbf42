"""Repository-root entry point exposing the ASGI app and a runner."""
from __future__ import annotations

import sys
from pathlib import Path


def _add_src_to_path() -> None:
    """Ensure the ``src`` directory is available on ``sys.path``."""

    src_dir = str(Path(__file__).resolve().parent / "src")
    if src_dir not in sys.path:
        sys.path.insert(0, src_dir)


_add_src_to_path()

from position_relay.__main__ import main  # noqa: E402  (requires sys.path update)
from position_relay.main import create_app  # noqa: E402  (requires sys.path update)

# ``uvicorn main:app`` entry point.
app = create_app()

if __name__ == "__main__":
    main()

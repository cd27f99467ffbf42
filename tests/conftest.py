"""Shared pytest configuration for the relay test suite."""
from __future__ import annotations

import sys
from pathlib import Path

_SRC = Path(__file__).resolve().parents[1] / "src"

# Allow running the suite from a checkout without installing the package.
if str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

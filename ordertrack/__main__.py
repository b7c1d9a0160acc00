"""Entry point for `python -m ordertrack`.

Usage:
    python -m ordertrack
    uv run python -m ordertrack
"""

from __future__ import annotations

import asyncio

from ordertrack.app import main

asyncio.run(main())

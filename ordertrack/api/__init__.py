"""REST API layer for ordertrack.

Exposes:
    create_app -- FastAPI application factory.
    build_app  -- Alias for create_app (used by the ordertrack.app bootstrap).
"""

from ordertrack.api.app import create_app

build_app = create_app

__all__ = ["build_app", "create_app"]

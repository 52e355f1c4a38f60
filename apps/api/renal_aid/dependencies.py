"""FastAPI dependencies shared by the routers."""
from __future__ import annotations

from fastapi import Request

from .services.session_store import SessionStore


def get_session_store(request: Request) -> SessionStore:
    """Return the store opened by the application lifespan."""

    return request.app.state.session_store

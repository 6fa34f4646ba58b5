"""FastAPI application factory for the reference document server."""

from __future__ import annotations

import os

from fastapi import APIRouter, FastAPI

from habit_sync import __version__
from habit_sync.remote.base import RemoteStore
from habit_sync.remote.memory_remote import InMemoryRemoteStore
from habit_sync.server.models import HealthResponse
from habit_sync.server.routes import documents_router


def create_app(
    remote: RemoteStore | None = None,
    api_key: str | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        remote: Backing document store (default: a fresh in-memory store)
        api_key: Bearer token clients must send (default: $HABITSYNC_API_KEY,
            no authentication when unset)

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="habit-sync",
        description="Reference document server for habit-sync clients",
        version=__version__,
        docs_url="/docs",
        redoc_url=None,
    )
    app.state.remote = remote or InMemoryRemoteStore()
    app.state.api_key = api_key if api_key is not None else os.environ.get("HABITSYNC_API_KEY")

    api_v1 = APIRouter(prefix="/api/v1")
    api_v1.include_router(documents_router)
    app.include_router(api_v1)

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(status="ok", version=__version__)

    return app

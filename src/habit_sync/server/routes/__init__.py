"""API routes."""

from habit_sync.server.routes.documents import router as documents_router

__all__ = ["documents_router"]

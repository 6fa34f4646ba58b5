"""Shared dependencies for API routes."""

from __future__ import annotations

import hmac
from typing import Annotated

from fastapi import Header, HTTPException, Request

from habit_sync.remote.base import RemoteStore


async def get_remote_store(request: Request) -> RemoteStore:
    """Document store backing the API."""
    store: RemoteStore = request.app.state.remote
    return store


async def require_api_key(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
) -> None:
    """Reject requests without the configured bearer token, if one is configured."""
    expected: str | None = request.app.state.api_key
    if not expected:
        return
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not hmac.compare_digest(token, expected):
        raise HTTPException(status_code=401, detail="Invalid or missing API key")

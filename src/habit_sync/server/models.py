"""Pydantic models for the document API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

# ============ Request Models ============


class DocumentWriteRequest(BaseModel):
    """Request to create or overwrite a habit document."""

    fields: dict[str, Any] = Field(..., description="Document fields")


# ============ Response Models ============


class DocumentResponse(BaseModel):
    """A single habit document."""

    key: str
    fields: dict[str, Any] = Field(default_factory=dict)


class DocumentKeyResponse(BaseModel):
    """Key of a written document."""

    key: str


class DocumentListResponse(BaseModel):
    """Every document in an account's collection."""

    documents: list[DocumentResponse] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str

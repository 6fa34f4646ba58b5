"""Habit document API routes."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response

from habit_sync.remote.base import RemoteStore
from habit_sync.server.dependencies import get_remote_store, require_api_key
from habit_sync.server.models import (
    DocumentKeyResponse,
    DocumentListResponse,
    DocumentResponse,
    DocumentWriteRequest,
)

router = APIRouter(
    prefix="/accounts/{account_id}/habits",
    tags=["documents"],
    dependencies=[Depends(require_api_key)],
)

Store = Annotated[RemoteStore, Depends(get_remote_store)]


@router.get("", response_model=DocumentListResponse, summary="List an account's documents")
async def list_documents(account_id: str, store: Store) -> DocumentListResponse:
    documents = await store.list_all(account_id)
    return DocumentListResponse(
        documents=[DocumentResponse(key=key, fields=fields) for key, fields in documents]
    )


@router.get("/{key}", response_model=DocumentResponse, summary="Get one document")
async def get_document(account_id: str, key: str, store: Store) -> DocumentResponse:
    fields = await store.get(account_id, key)
    if fields is None:
        raise HTTPException(status_code=404, detail=f"Document {key} not found")
    return DocumentResponse(key=key, fields=fields)


@router.post(
    "",
    response_model=DocumentKeyResponse,
    status_code=201,
    summary="Create a document with a generated key",
)
async def create_document(
    account_id: str, request: DocumentWriteRequest, store: Store
) -> DocumentKeyResponse:
    key = await store.create(account_id, request.fields)
    return DocumentKeyResponse(key=key)


@router.put("/{key}", response_model=DocumentKeyResponse, summary="Create or overwrite a document")
async def put_document(
    account_id: str, key: str, request: DocumentWriteRequest, store: Store
) -> DocumentKeyResponse:
    await store.set(account_id, key, request.fields)
    return DocumentKeyResponse(key=key)


@router.delete("/{key}", status_code=204, summary="Delete a document")
async def delete_document(account_id: str, key: str, store: Store) -> Response:
    if await store.get(account_id, key) is None:
        raise HTTPException(status_code=404, detail=f"Document {key} not found")
    await store.delete(account_id, key)
    return Response(status_code=204)

"""HTTP remote store client for the habit document API."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import aiohttp

from habit_sync.errors import RemoteRejectedError, RemoteTransientError
from habit_sync.remote.base import Document, RemoteStore

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


class HttpRemoteStore(RemoteStore):
    """
    HTTP client for a habit document server.

    Usage:
        async with HttpRemoteStore("http://localhost:8765") as remote:
            key = await remote.create("user-1", {"name": "Read"})

    Or without context manager:
        remote = HttpRemoteStore("http://localhost:8765")
        await remote.open()
        try:
            docs = await remote.list_all("user-1")
        finally:
            await remote.close()
    """

    def __init__(
        self,
        server_url: str,
        *,
        timeout: float = 10.0,
        api_key: str | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            server_url: Base URL of the document server
            timeout: Total per-request timeout in seconds
            api_key: Optional bearer token
        """
        self._server_url = server_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._api_key = api_key
        self._session: aiohttp.ClientSession | None = None

    @property
    def server_url(self) -> str:
        return self._server_url

    async def open(self) -> None:
        if self._session is None:
            headers = {}
            if self._api_key:
                headers["Authorization"] = f"Bearer {self._api_key}"
            self._session = aiohttp.ClientSession(timeout=self._timeout, headers=headers)

    async def close(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> HttpRemoteStore:
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()

    def _collection_path(self, account_id: str) -> str:
        return f"{API_PREFIX}/accounts/{quote(account_id, safe='')}/habits"

    def _document_path(self, account_id: str, key: str) -> str:
        return f"{self._collection_path(account_id)}/{quote(key, safe='')}"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json_data: dict[str, Any] | None = None,
        allow_missing: bool = False,
    ) -> dict[str, Any] | None:
        """Make a request and map failures onto the remote error taxonomy.

        Returns None for 404 when ``allow_missing`` is set, and for empty
        (204) responses.
        """
        if not self._session:
            await self.open()

        assert self._session is not None

        url = f"{self._server_url}{path}"
        try:
            async with self._session.request(method, url, json=json_data) as response:
                if response.status == 404 and allow_missing:
                    return None
                if response.status >= 400:
                    text = await response.text()
                    if response.status >= 500 or response.status == 429:
                        raise RemoteTransientError(
                            f"Server error: {text}", status_code=response.status
                        )
                    raise RemoteRejectedError(
                        f"Request rejected: {text}", status_code=response.status
                    )
                if response.status == 204:
                    return None
                return await response.json()
        except aiohttp.ClientError as e:
            raise RemoteTransientError(f"Connection error: {e}") from e
        except TimeoutError as e:
            raise RemoteTransientError(f"Request timed out: {method} {path}") from e

    async def list_all(self, account_id: str) -> list[tuple[str, Document]]:
        result = await self._request("GET", self._collection_path(account_id))
        documents: list[tuple[str, Document]] = []
        for item in (result or {}).get("documents") or []:
            key = item.get("key") if isinstance(item, dict) else None
            fields = item.get("fields") if isinstance(item, dict) else None
            if not isinstance(key, str) or not key or not isinstance(fields, dict | None):
                logger.warning("Skipping malformed document entry from %s", self._server_url)
                continue
            documents.append((key, fields or {}))
        return documents

    async def get(self, account_id: str, key: str) -> Document | None:
        result = await self._request(
            "GET", self._document_path(account_id, key), allow_missing=True
        )
        if result is None:
            return None
        return result.get("fields") or {}

    async def create(self, account_id: str, fields: Document) -> str:
        result = await self._request(
            "POST", self._collection_path(account_id), json_data={"fields": fields}
        )
        if not result or "key" not in result:
            raise RemoteTransientError("Server did not return a document key")
        logger.debug("Created remote document %s", result["key"])
        return str(result["key"])

    async def set(self, account_id: str, key: str, fields: Document) -> None:
        await self._request(
            "PUT", self._document_path(account_id, key), json_data={"fields": fields}
        )

    async def delete(self, account_id: str, key: str) -> None:
        await self._request("DELETE", self._document_path(account_id, key), allow_missing=True)

    async def health(self) -> dict[str, Any]:
        """Fetch the server health document."""
        result = await self._request("GET", "/health")
        return result or {}

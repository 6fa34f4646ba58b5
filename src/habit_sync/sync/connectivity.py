"""Connectivity monitors.

A monitor answers "are we online right now?" and fires its subscribers
exactly once per offline -> online transition.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable

import aiohttp

logger = logging.getLogger(__name__)

OnlineCallback = Callable[[], Awaitable[None] | None]


class ConnectivityMonitor:
    """Base monitor holding the online flag and its subscribers."""

    def __init__(self, online: bool = False) -> None:
        self._online = online
        self._callbacks: list[OnlineCallback] = []
        self._tasks: set[asyncio.Task[None]] = set()

    def is_online(self) -> bool:
        return self._online

    def on_online(self, callback: OnlineCallback) -> Callable[[], None]:
        """Subscribe to offline -> online transitions.

        Returns:
            A function that removes the subscription
        """
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._callbacks.remove(callback)

        return unsubscribe

    def _update(self, online: bool) -> None:
        was_online = self._online
        self._online = online
        if online and not was_online:
            logger.info("Connectivity restored")
            self._fire()
        elif was_online and not online:
            logger.info("Connectivity lost")

    def _fire(self) -> None:
        for callback in list(self._callbacks):
            try:
                result = callback()
            except Exception:
                logger.error("Online callback failed", exc_info=True)
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Online callback failed", exc_info=task.exception())

    async def wait_for_callbacks(self) -> None:
        """Wait until every async callback fired so far has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class ManualConnectivityMonitor(ConnectivityMonitor):
    """Monitor whose state is set explicitly by the caller."""

    def set_online(self, online: bool) -> None:
        self._update(online)


class HttpProbeMonitor(ConnectivityMonitor):
    """Monitor that polls a document server's ``/health`` endpoint."""

    def __init__(
        self,
        server_url: str,
        *,
        interval: float = 30.0,
        timeout: float = 5.0,
    ) -> None:
        super().__init__(online=False)
        self._health_url = f"{server_url.rstrip('/')}/health"
        self._interval = interval
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: aiohttp.ClientSession | None = None
        self._poll_task: asyncio.Task[None] | None = None

    async def check(self) -> bool:
        """Probe the server once and update the online flag."""
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        try:
            async with self._session.get(self._health_url) as response:
                online = response.status == 200
        except (aiohttp.ClientError, TimeoutError):
            logger.debug("Health probe to %s failed", self._health_url, exc_info=True)
            online = False
        self._update(online)
        return online

    async def start(self) -> None:
        """Probe immediately, then keep polling in the background."""
        if self._poll_task is not None:
            return
        await self.check()
        self._poll_task = asyncio.create_task(self._poll_loop())

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self.check()

    async def stop(self) -> None:
        if self._poll_task is not None:
            self._poll_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._poll_task
            self._poll_task = None
        if self._session is not None:
            await self._session.close()
            self._session = None

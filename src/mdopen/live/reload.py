"""Live reload wiring for the server.

Connects the filesystem watcher (producer) to the notifier (fan-out) through
a single event queue, and exposes the live reload endpoint.
"""

import asyncio
import logging
from pathlib import Path

from aiohttp import web

from mdopen.config import RELOAD_URL
from mdopen.live.notifier import LiveReloadNotifier
from mdopen.live.watcher import FileWatcher, WatchEvent

logger = logging.getLogger(__name__)


class LiveReloadManager:
    """Manages the file watcher and the notifier for live reload.

    Coordinates between file system watcher and connected clients
    to provide automatic page refresh on source file changes.
    """

    def __init__(
        self,
        root: Path,
        notifier: LiveReloadNotifier | None = None,
        *,
        debounce_ms: int = 200,
    ) -> None:
        """Initialize the live reload manager.

        Args:
            root: Canonical directory to watch for changes
            notifier: Client registry (a new one by default)
            debounce_ms: Watcher debounce window
        """
        self._queue: asyncio.Queue[WatchEvent] = asyncio.Queue()
        self._notifier = notifier if notifier is not None else LiveReloadNotifier()
        self._watcher = FileWatcher(root, self._queue, debounce_ms=debounce_ms)
        self._watch_task: asyncio.Task[None] | None = None
        self._consume_task: asyncio.Task[None] | None = None

    @property
    def notifier(self) -> LiveReloadNotifier:
        return self._notifier

    @property
    def watcher(self) -> FileWatcher:
        return self._watcher

    @property
    def queue(self) -> "asyncio.Queue[WatchEvent]":
        return self._queue

    async def start(self) -> None:
        """Start the file watcher and the event consumer."""
        if self._watch_task is not None:
            return
        self._consume_task = asyncio.create_task(self._consume())
        self._watch_task = asyncio.create_task(self._watcher.run())
        logger.info(f"Live reload: watching {self._watcher.root}")

    async def stop(self) -> None:
        """Stop the file watcher and close all connections."""
        self._watcher.stop()
        for task in (self._watch_task, self._consume_task):
            if task is None:
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._watch_task = None
        self._consume_task = None

        await self._notifier.close_all()

    async def handle_request(self, request: web.Request) -> web.StreamResponse:
        """Dispatch a live reload request by protocol.

        ``Upgrade: websocket`` gets a WebSocket, ``Accept: text/event-stream`` an
        event stream; anything else is a bad request.
        """
        if request.headers.get("Upgrade", "").lower() == "websocket":
            return await self._notifier.handle_websocket(request)
        if "text/event-stream" in request.headers.get("Accept", ""):
            return await self._notifier.handle_event_stream(request)
        raise web.HTTPBadRequest(text="Expected a WebSocket upgrade or an event-stream request")

    async def _consume(self) -> None:
        """Forward watcher events to every connected client."""
        while True:
            event = await self._queue.get()
            self._notifier.broadcast(event)


def create_live_reload_routes(manager: LiveReloadManager) -> list[web.RouteDef]:
    """Create routes for the live reload endpoint.

    Args:
        manager: LiveReloadManager instance

    Returns:
        List of route definitions
    """
    return [web.get(RELOAD_URL, manager.handle_request)]

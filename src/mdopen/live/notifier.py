"""Live reload client registry and fan-out.

Each connected browser owns a ``ClientChannel`` whose queue holds at most one
pending signal. ``broadcast`` only ever does ``put_nowait``, so a slow or dead
client cannot hold up the others; a signal arriving while one is still pending
is folded into it, which is harmless because reloading is idempotent.

The registry is only touched from the event loop thread, and ``broadcast``
iterates over a snapshot, so clients may come and go mid-broadcast.
"""

import asyncio
import itertools
import json
import logging
from dataclasses import dataclass, field

from aiohttp import WSCloseCode, WSMsgType, web

from mdopen.live.watcher import WatchEvent

logger = logging.getLogger(__name__)

WEBSOCKET = "websocket"
EVENT_STREAM = "event-stream"


def _reload_message(event: WatchEvent) -> str:
    return json.dumps({"type": "reload", "path": event.url, "kind": event.kind.value})


@dataclass(eq=False)
class ClientChannel:
    """Delivery channel for one connected client."""

    id: str
    transport: str
    queue: "asyncio.Queue[WatchEvent | None]" = field(
        default_factory=lambda: asyncio.Queue(maxsize=1),
    )
    closed: bool = False

    def offer(self, event: WatchEvent) -> bool:
        """Queue a reload signal without waiting.

        Returns:
            False if the channel is closed, True otherwise (including when
            the signal coalesced with one already pending)
        """
        if self.closed:
            return False
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            pass
        return True

    def close(self) -> None:
        """Replace anything pending with the shutdown sentinel."""
        if self.closed:
            return
        self.closed = True
        while not self.queue.empty():
            self.queue.get_nowait()
        self.queue.put_nowait(None)

    async def get(self) -> WatchEvent | None:
        """Wait for the next signal; None means the channel was closed."""
        return await self.queue.get()


class LiveReloadNotifier:
    """Holds connected live reload clients and broadcasts reload signals."""

    def __init__(self, *, keepalive: float = 15.0) -> None:
        """Initialize the notifier.

        Args:
            keepalive: Seconds between comment lines on idle event streams
        """
        self._channels: dict[str, ClientChannel] = {}
        self._sockets: dict[str, web.WebSocketResponse] = {}
        self._ids = itertools.count(1)
        self._keepalive = keepalive

    def __len__(self) -> int:
        return len(self._channels)

    @property
    def channels(self) -> list[ClientChannel]:
        """Snapshot of registered channels."""
        return list(self._channels.values())

    def register(self, transport: str) -> ClientChannel:
        channel = ClientChannel(id=f"{transport}-{next(self._ids)}", transport=transport)
        self._channels[channel.id] = channel
        logger.debug(f"Live reload client connected: {channel.id} ({len(self)} total)")
        return channel

    def unregister(self, channel: ClientChannel) -> None:
        """Drop a channel; unknown or already removed channels are ignored."""
        channel.close()
        self._sockets.pop(channel.id, None)
        if self._channels.pop(channel.id, None) is not None:
            logger.debug(f"Live reload client disconnected: {channel.id} ({len(self)} total)")

    def broadcast(self, event: WatchEvent) -> int:
        """Signal every registered client.

        Args:
            event: Change that triggered the reload

        Returns:
            Number of clients signalled
        """
        delivered = 0
        for channel in list(self._channels.values()):
            if channel.offer(event):
                delivered += 1
        if delivered:
            logger.info(f"Reload ({event.kind.value} {event.url}) sent to {delivered} client(s)")
        return delivered

    async def close_all(self) -> None:
        """Close every channel and WebSocket, e.g. on server shutdown."""
        for channel in list(self._channels.values()):
            channel.close()
        for ws in list(self._sockets.values()):
            await ws.close(code=WSCloseCode.GOING_AWAY, message=b"Server shutdown")
        self._channels.clear()
        self._sockets.clear()

    async def handle_websocket(self, request: web.Request) -> web.WebSocketResponse:
        """Serve a live reload WebSocket until the client goes away.

        Args:
            request: aiohttp request carrying the upgrade headers

        Returns:
            WebSocket response
        """
        ws = web.WebSocketResponse(heartbeat=30.0)
        await ws.prepare(request)

        channel = self.register(WEBSOCKET)
        self._sockets[channel.id] = ws
        sender = asyncio.create_task(self._send_websocket(ws, channel))

        try:
            async for msg in ws:
                if msg.type == WSMsgType.ERROR:
                    logger.debug(f"WebSocket {channel.id} error: {ws.exception()}")
                    break
        finally:
            self.unregister(channel)
            sender.cancel()
            try:
                await sender
            except asyncio.CancelledError:
                pass

        return ws

    async def handle_event_stream(self, request: web.Request) -> web.StreamResponse:
        """Serve a Server-Sent-Events stream of reload signals.

        Args:
            request: aiohttp request accepting text/event-stream

        Returns:
            Streaming response
        """
        response = web.StreamResponse(
            headers={
                "Content-Type": "text/event-stream",
                "Cache-Control": "no-cache",
                "X-Accel-Buffering": "no",
            },
        )
        await response.prepare(request)

        channel = self.register(EVENT_STREAM)
        try:
            await response.write(b": connected\n\n")
            while True:
                try:
                    event = await asyncio.wait_for(channel.get(), timeout=self._keepalive)
                except TimeoutError:
                    await response.write(b": ping\n\n")
                    continue
                if event is None:
                    break
                await response.write(f"event: reload\ndata: {_reload_message(event)}\n\n".encode())
        except ConnectionResetError:
            logger.debug(f"Event stream {channel.id} dropped by client")
        finally:
            self.unregister(channel)

        return response

    async def _send_websocket(self, ws: web.WebSocketResponse, channel: ClientChannel) -> None:
        while True:
            event = await channel.get()
            if event is None:
                break
            try:
                await ws.send_str(_reload_message(event))
            except ConnectionResetError:
                # Client vanished mid-send; the receive loop sees the close
                logger.debug(f"WebSocket {channel.id} gone during send")
                break

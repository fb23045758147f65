"""Tests for live reload wiring and the reload endpoint."""

import asyncio
import json
from pathlib import Path

import pytest
from aiohttp import WSMsgType
from aiohttp.test_utils import TestClient
from mdopen.app_keys import live_reload_key
from mdopen.config import RELOAD_URL, Config
from mdopen.core.resolver import PathResolver
from mdopen.live.notifier import LiveReloadNotifier
from mdopen.live.reload import LiveReloadManager
from mdopen.live.watcher import WatchEvent, WatchEventKind
from mdopen.server import create_app

EVENT = WatchEvent(path="a.md", kind=WatchEventKind.MODIFIED)


async def _wait_for_clients(notifier: LiveReloadNotifier, count: int) -> None:
    for _ in range(200):
        if len(notifier) == count:
            return
        await asyncio.sleep(0.01)
    raise AssertionError(f"expected {count} clients, have {len(notifier)}")


@pytest.fixture
async def client(aiohttp_client, reload_config: Config) -> TestClient:
    (reload_config.server.root / "note.md").write_text("# Note\n")
    return await aiohttp_client(create_app(reload_config))


@pytest.fixture
def notifier(client: TestClient) -> LiveReloadNotifier:
    return client.app[live_reload_key].notifier


class TestLiveReloadManager:
    """Tests for LiveReloadManager lifecycle."""

    @pytest.mark.asyncio
    async def test__queued_event__broadcast_to_clients(self, root_dir: Path) -> None:
        manager = LiveReloadManager(PathResolver(root_dir).root)
        channel = manager.notifier.register("websocket")

        await manager.start()
        try:
            await manager.queue.put(EVENT)
            received = await asyncio.wait_for(channel.get(), timeout=2)
        finally:
            await manager.stop()

        assert received == EVENT

    @pytest.mark.asyncio
    async def test__stop__closes_clients(self, root_dir: Path) -> None:
        manager = LiveReloadManager(PathResolver(root_dir).root)
        channel = manager.notifier.register("event-stream")
        await manager.start()

        await manager.stop()

        assert channel.closed
        assert len(manager.notifier) == 0

    @pytest.mark.asyncio
    async def test__start_twice__is_noop(self, root_dir: Path) -> None:
        manager = LiveReloadManager(PathResolver(root_dir).root)

        await manager.start()
        await manager.start()
        await manager.stop()

    @pytest.mark.asyncio
    async def test__stop_without_start__is_safe(self, root_dir: Path) -> None:
        await LiveReloadManager(PathResolver(root_dir).root).stop()

    @pytest.mark.asyncio
    async def test__empty_notifier__is_used_as_given(self, root_dir: Path) -> None:
        notifier = LiveReloadNotifier()

        manager = LiveReloadManager(PathResolver(root_dir).root, notifier)

        assert manager.notifier is notifier

    @pytest.mark.asyncio
    async def test__debounce__passed_to_watcher(self, root_dir: Path) -> None:
        manager = LiveReloadManager(PathResolver(root_dir).root, debounce_ms=500)

        assert manager.watcher._debounce_ms == 500


class TestReloadEndpoint:
    """Tests for the /@/reload endpoint."""

    @pytest.mark.asyncio
    async def test__plain_get__400(self, client: TestClient) -> None:
        resp = await client.get(RELOAD_URL)

        assert resp.status == 400

    @pytest.mark.asyncio
    async def test__page__includes_reload_script(self, client: TestClient) -> None:
        resp = await client.get("/note.md")

        body = await resp.text()
        assert "new WebSocket" in body
        assert json.dumps(RELOAD_URL) in body

    @pytest.mark.asyncio
    async def test__websocket__receives_reload(
        self, client: TestClient, notifier: LiveReloadNotifier
    ) -> None:
        ws = await client.ws_connect(RELOAD_URL)
        try:
            await _wait_for_clients(notifier, 1)
            notifier.broadcast(EVENT)

            msg = await ws.receive(timeout=5)
        finally:
            await ws.close()

        assert msg.type == WSMsgType.TEXT
        assert json.loads(msg.data) == {"type": "reload", "path": "/a.md", "kind": "modified"}

    @pytest.mark.asyncio
    async def test__several_websockets__all_receive(
        self, client: TestClient, notifier: LiveReloadNotifier
    ) -> None:
        sockets = [await client.ws_connect(RELOAD_URL) for _ in range(3)]
        try:
            await _wait_for_clients(notifier, 3)
            notifier.broadcast(EVENT)

            messages = [await ws.receive(timeout=5) for ws in sockets]
        finally:
            for ws in sockets:
                await ws.close()

        assert all(json.loads(m.data)["type"] == "reload" for m in messages)

    @pytest.mark.asyncio
    async def test__disconnect__unregisters_client(
        self, client: TestClient, notifier: LiveReloadNotifier
    ) -> None:
        """A broadcast after a client left goes to nobody and does not fail."""
        ws = await client.ws_connect(RELOAD_URL)
        await _wait_for_clients(notifier, 1)

        await ws.close()
        await _wait_for_clients(notifier, 0)

        assert notifier.broadcast(EVENT) == 0

    @pytest.mark.asyncio
    async def test__event_stream__receives_reload(
        self, client: TestClient, notifier: LiveReloadNotifier
    ) -> None:
        resp = await client.get(RELOAD_URL, headers={"Accept": "text/event-stream"})
        try:
            assert resp.status == 200
            assert resp.content_type == "text/event-stream"
            assert await asyncio.wait_for(resp.content.readline(), 5) == b": connected\n"
            await _wait_for_clients(notifier, 1)

            notifier.broadcast(EVENT)

            lines = []
            while len(lines) < 2:
                line = await asyncio.wait_for(resp.content.readline(), 5)
                if line.strip():
                    lines.append(line.decode().strip())
        finally:
            resp.close()

        assert lines[0] == "event: reload"
        assert json.loads(lines[1].removeprefix("data: "))["path"] == "/a.md"

    @pytest.mark.asyncio
    async def test__file_change__reaches_websocket(
        self, client: TestClient, notifier: LiveReloadNotifier, reload_config: Config
    ) -> None:
        """End to end: a save below the root reloads connected pages."""
        ws = await client.ws_connect(RELOAD_URL)
        try:
            await _wait_for_clients(notifier, 1)
            await asyncio.sleep(0.5)
            (reload_config.server.root / "note.md").write_text("# Edited\n")

            msg = await ws.receive(timeout=10)
        finally:
            await ws.close()

        assert json.loads(msg.data)["path"] == "/note.md"

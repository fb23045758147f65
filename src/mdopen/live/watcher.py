"""Background filesystem watcher.

Wraps ``watchfiles.awatch`` and turns its change batches into ``WatchEvent``
objects on a shared queue. Batches are held until ``debounce_ms`` pass with no
further change (or ``max_batch_ms`` in total), then collapsed to one event per
path, so a burst of saves with shorter gaps yields a single event.
"""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from watchfiles import Change, awatch

from mdopen.core.errors import WatchError

logger = logging.getLogger(__name__)


class WatchEventKind(Enum):
    MODIFIED = "modified"
    CREATED = "created"
    REMOVED = "removed"


_CHANGE_KINDS = {
    Change.added: WatchEventKind.CREATED,
    Change.modified: WatchEventKind.MODIFIED,
    Change.deleted: WatchEventKind.REMOVED,
}


@dataclass(frozen=True)
class WatchEvent:
    """A change below the serve root.

    Attributes:
        path: POSIX path relative to the serve root ("" for the root itself)
        kind: What happened to the path
    """

    path: str
    kind: WatchEventKind

    @property
    def url(self) -> str:
        return f"/{self.path}"


def collapse_changes(changes: Iterable[tuple[Change, str]], root: Path) -> list[WatchEvent]:
    """Collapse one change batch into at most one event per path.

    A rename arrives as a delete plus an add, and a save can arrive as any mix
    of add/modify/delete. The collapsed kind is REMOVED if the path is gone,
    CREATED if it was added, MODIFIED otherwise.

    Args:
        changes: (Change, absolute path) pairs from watchfiles
        root: Canonical serve root; paths outside it are dropped

    Returns:
        Events sorted by path
    """
    by_path: dict[str, set[WatchEventKind]] = {}
    for change, raw_path in changes:
        try:
            relative = Path(raw_path).relative_to(root).as_posix()
        except ValueError:
            continue
        if relative == ".":
            relative = ""
        by_path.setdefault(relative, set()).add(_CHANGE_KINDS[change])

    events = []
    for relative in sorted(by_path):
        kinds = by_path[relative]
        if len(kinds) == 1:
            (kind,) = kinds
        elif WatchEventKind.REMOVED in kinds and not (root / relative).exists():
            kind = WatchEventKind.REMOVED
        elif WatchEventKind.CREATED in kinds:
            kind = WatchEventKind.CREATED
        else:
            kind = WatchEventKind.MODIFIED
        events.append(WatchEvent(path=relative, kind=kind))
    return events

class FileWatcher:
    """Watches a directory tree and feeds debounced events into a queue.

    ``awatch`` batches are held back until ``debounce_ms`` pass without a new
    batch (trailing edge), then collapsed and queued together. ``awatch`` ends
    a batch once no new distinct change arrives, so repeated saves of one file
    span several of its batches.

    A failing watch (root unmounted, OS limits) is retried a few times; after
    that the watcher gives up and sets ``failed`` while the server keeps going.
    """

    def __init__(
        self,
        root: Path,
        queue: "asyncio.Queue[WatchEvent]",
        *,
        debounce_ms: int = 200,
        step_ms: int = 50,
        max_batch_ms: int = 1600,
        retry_delay: float = 1.0,
        max_retries: int = 3,
        force_polling: bool | None = None,
    ) -> None:
        """Initialize the watcher.

        Args:
            root: Canonical directory to watch recursively
            queue: Outgoing event queue shared with the consumer
            debounce_ms: Quiet time after the last change before events are queued
            step_ms: Polling step of ``awatch`` (at most ``debounce_ms``)
            max_batch_ms: Longest time changes are held back while they keep
                          coming (at least ``debounce_ms``)
            retry_delay: Seconds to wait before restarting a failed watch
            max_retries: Consecutive failures tolerated before giving up
            force_polling: Passed through to watchfiles
        """
        self._root = root
        self._queue = queue
        self._debounce_ms = debounce_ms
        self._step_ms = min(step_ms, debounce_ms)
        self._max_batch_ms = max(max_batch_ms, debounce_ms)
        self._retry_delay = retry_delay
        self._max_retries = max_retries
        self._force_polling = force_polling
        self._stop_event = asyncio.Event()
        self._pending: list[tuple[Change, str]] = []
        self._pending_since = 0.0
        self._flush_handle: asyncio.TimerHandle | None = None
        self.failed = False

    @property
    def root(self) -> Path:
        return self._root

    def stop(self) -> None:
        """Ask ``run`` to return after the current batch."""
        self._stop_event.set()

    async def run(self) -> None:
        """Watch until stopped or until retries are exhausted.

        Changes still held back when ``run`` returns are queued immediately.
        """
        try:
            await self._watch()
        finally:
            self._flush()

    async def _watch(self) -> None:
        failures = 0
        while not self._stop_event.is_set():
            try:
                logger.debug(f"Watching directory: {self._root}")
                async for changes in awatch(
                    self._root,
                    debounce=self._debounce_ms,
                    step=self._step_ms,
                    stop_event=self._stop_event,
                    recursive=True,
                    force_polling=self._force_polling,
                    ignore_permission_denied=True,
                ):
                    failures = 0
                    self._hold(changes)
                return
            except Exception as e:
                failures += 1
                if failures > self._max_retries:
                    self.failed = True
                    error = WatchError(f"Watching {self._root} failed {failures} times: {e}")
                    logger.error(f"{error}; live reload disabled")
                    return
                logger.warning(
                    f"Watcher error ({e}), retrying in {self._retry_delay}s "
                    f"({failures}/{self._max_retries})"
                )
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=self._retry_delay)
                except TimeoutError:
                    pass

    def _hold(self, changes: Iterable[tuple[Change, str]]) -> None:
        """Add a batch to the pending changes and push the flush deadline back."""
        loop = asyncio.get_running_loop()
        now = loop.time()
        if not self._pending:
            self._pending_since = now
        self._pending.extend(changes)

        if self._flush_handle is not None:
            self._flush_handle.cancel()
        deadline = min(
            now + self._debounce_ms / 1000,
            self._pending_since + self._max_batch_ms / 1000,
        )
        self._flush_handle = loop.call_at(deadline, self._flush)

    def _flush(self) -> None:
        if self._flush_handle is not None:
            self._flush_handle.cancel()
            self._flush_handle = None
        changes, self._pending = self._pending, []
        for event in collapse_changes(changes, self._root):
            logger.debug(f"Watch event: {event.kind.value} {event.url}")
            self._queue.put_nowait(event)

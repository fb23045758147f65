"""Filesystem watching and live reload for connected browsers."""

from mdopen.live.notifier import ClientChannel, LiveReloadNotifier
from mdopen.live.reload import LiveReloadManager
from mdopen.live.watcher import FileWatcher, WatchEvent, WatchEventKind

__all__ = [
    "ClientChannel",
    "FileWatcher",
    "LiveReloadManager",
    "LiveReloadNotifier",
    "WatchEvent",
    "WatchEventKind",
]

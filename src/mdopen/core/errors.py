"""Error hierarchy for request handling and file watching.

Request-scoped errors are translated into HTTP responses by the route
handlers; ``WatchError`` only ever reaches the log.
"""


class MdopenError(Exception):
    """Base class for mdopen errors."""


class PathForbiddenError(MdopenError):
    """Requested path escapes the serve root."""

    def __init__(self, request_path: str) -> None:
        super().__init__(f"Path outside serve root: {request_path!r}")
        self.request_path = request_path


class PathNotFoundError(MdopenError):
    """Requested path does not exist (or vanished before it could be read)."""

    def __init__(self, request_path: str) -> None:
        super().__init__(f"Path not found: {request_path!r}")
        self.request_path = request_path


class ContentReadError(MdopenError):
    """File or directory exists but could not be read."""


class RenderError(MdopenError):
    """Markdown conversion or template rendering failed."""


class WatchError(MdopenError):
    """Filesystem watcher stopped and could not be restarted."""

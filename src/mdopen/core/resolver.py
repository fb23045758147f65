"""Map request paths onto the filesystem below a fixed serve root.

Every path handed out by ``PathResolver`` has been canonicalized (``.``/``..``
segments and symlinks resolved) and checked to be the root or one of its
descendants. Anything that cannot be proven to be inside the root is
rejected with ``PathForbiddenError``.
"""

import logging
import stat
from pathlib import Path

from mdopen.core.errors import PathForbiddenError, PathNotFoundError
from mdopen.core.types import PathKind, ResolvedPath, is_markdown

logger = logging.getLogger(__name__)


class PathResolver:
    """Resolves URL paths relative to a serve root."""

    def __init__(self, root: Path) -> None:
        """Initialize resolver.

        Args:
            root: Directory to serve. Canonicalized once here, so a root that
                  is itself reached through a symlink still compares correctly.

        Raises:
            NotADirectoryError: If root is not an existing directory
        """
        canonical = Path(root).resolve()
        if not canonical.is_dir():
            raise NotADirectoryError(f"Serve root is not a directory: {root}")
        self._root = canonical

    @property
    def root(self) -> Path:
        """Canonical serve root."""
        return self._root

    def resolve(self, request_path: str) -> ResolvedPath:
        """Resolve a URL-decoded request path.

        Containment is checked before existence, so a path outside the root
        is forbidden whether or not it exists.

        Args:
            request_path: Decoded URL path, with or without a leading slash
                          (e.g. "/notes/todo.md", "notes/", "")

        Returns:
            ResolvedPath inside the serve root

        Raises:
            PathForbiddenError: If the path resolves outside the root or is malformed
            PathNotFoundError: If the path does not exist
        """
        if "\x00" in request_path:
            raise PathForbiddenError(request_path)

        relative = request_path[1:] if request_path.startswith("/") else request_path
        try:
            canonical = (self._root / relative).resolve()
        except (OSError, RuntimeError, ValueError) as e:
            # Symlink loops and unrepresentable names end up here
            logger.debug(f"Cannot canonicalize {request_path!r}: {e}")
            raise PathForbiddenError(request_path) from e

        if not self.contains(canonical):
            logger.warning(f"Rejected path outside serve root: {request_path!r}")
            raise PathForbiddenError(request_path)

        try:
            st = canonical.stat()
        except (FileNotFoundError, NotADirectoryError) as e:
            raise PathNotFoundError(request_path) from e
        except OSError as e:
            logger.debug(f"Cannot stat {canonical}: {e}")
            raise PathForbiddenError(request_path) from e

        if stat.S_ISDIR(st.st_mode):
            kind = PathKind.DIRECTORY
        elif is_markdown(canonical):
            kind = PathKind.MARKDOWN
        else:
            kind = PathKind.OTHER

        return ResolvedPath(
            path=canonical,
            relative=self._relative(canonical),
            kind=kind,
        )

    def contains(self, path: Path) -> bool:
        """Check whether a canonical path is the root or below it.

        Compares whole path components, so "/srv/docs-old" is not inside
        "/srv/docs".
        """
        return path == self._root or path.is_relative_to(self._root)

    def relative_url(self, path: Path) -> str | None:
        """Return the root-relative URL path for a filesystem path.

        Args:
            path: Any path; relative paths are taken relative to the root

        Returns:
            POSIX path relative to the root, or None if outside the root
        """
        candidate = path if path.is_absolute() else self._root / path
        try:
            canonical = candidate.resolve()
        except (OSError, RuntimeError):
            return None
        if not self.contains(canonical):
            return None
        return self._relative(canonical)

    def _relative(self, canonical: Path) -> str:
        relative = canonical.relative_to(self._root).as_posix()
        return "" if relative == "." else relative

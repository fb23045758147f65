"""Directory listings.

Children are listed one level deep, directories first, then by
case-folded name with the exact name as tie-breaker.
"""

import logging
import os
from dataclasses import dataclass
from urllib.parse import quote

from mdopen.core.errors import ContentReadError, PathNotFoundError
from mdopen.core.templates import TemplateRenderer
from mdopen.core.types import PathKind, ResolvedPath

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ListingEntry:
    """One child of a listed directory."""

    name: str
    is_dir: bool

    @property
    def href(self) -> str:
        """Relative link, valid from the slash-terminated directory URL."""
        href = quote(self.name)
        return f"{href}/" if self.is_dir else href

    @property
    def display_name(self) -> str:
        return f"{self.name}/" if self.is_dir else self.name

    def sort_key(self) -> tuple[bool, str, str]:
        return (not self.is_dir, self.name.casefold(), self.name)


class DirectoryLister:
    """Builds HTML listings for directories below the serve root."""

    def __init__(self, templates: TemplateRenderer) -> None:
        self._templates = templates

    def entries(self, directory: ResolvedPath) -> list[ListingEntry]:
        """Enumerate and sort the immediate children of a directory.

        Children that cannot be stat'ed (dangling symlinks, entries removed
        while listing) are skipped.

        Args:
            directory: Resolved directory

        Returns:
            Sorted entries

        Raises:
            PathNotFoundError: If the directory vanished after resolution
            ContentReadError: If the directory cannot be enumerated
        """
        if directory.kind is not PathKind.DIRECTORY:
            raise ValueError(f"Not a directory: {directory.relative}")

        entries: list[ListingEntry] = []
        try:
            with os.scandir(directory.path) as it:
                for dir_entry in it:
                    try:
                        is_dir = dir_entry.is_dir()
                        dir_entry.stat()
                    except OSError:
                        logger.debug(f"Skipping unreadable entry {dir_entry.path}")
                        continue
                    entries.append(ListingEntry(name=dir_entry.name, is_dir=is_dir))
        except (FileNotFoundError, NotADirectoryError) as e:
            raise PathNotFoundError(directory.relative) from e
        except OSError as e:
            logger.error(f"Cannot list {directory.path}: {e}")
            raise ContentReadError(f"Cannot list {directory.relative or '/'}: {e.strerror}") from e

        entries.sort(key=ListingEntry.sort_key)
        return entries

    def list(self, directory: ResolvedPath) -> str:
        """Render a directory listing page.

        Args:
            directory: Resolved directory

        Returns:
            Complete HTML document
        """
        entries = self.entries(directory)
        heading = f"/{directory.relative}" if directory.relative else "/"
        body = self._templates.fragment(
            "listing.html",
            heading=heading,
            is_root=directory.is_root,
            entries=entries,
        )
        return self._templates.page(heading, body)

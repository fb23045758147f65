"""Core type definitions."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

MARKDOWN_SUFFIXES = frozenset({".md", ".markdown"})


class PathKind(Enum):
    """Classification of a resolved path."""

    DIRECTORY = "directory"
    MARKDOWN = "markdown"
    OTHER = "other"


@dataclass(frozen=True)
class ResolvedPath:
    """A filesystem path proven to live inside the serve root.

    Attributes:
        path: Canonical absolute path
        relative: POSIX path relative to the serve root ("" for the root itself)
        kind: Directory, markdown file, or any other file
    """

    path: Path
    relative: str
    kind: PathKind

    @property
    def is_root(self) -> bool:
        return self.relative == ""

    @property
    def name(self) -> str:
        return self.path.name


def is_markdown(path: Path) -> bool:
    """Return True if the file name has a markdown extension."""
    return path.suffix.lower() in MARKDOWN_SUFFIXES

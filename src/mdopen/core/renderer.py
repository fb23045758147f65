"""Markdown page rendering.

Reads the source file on every call; there is no cache, so a reload always
shows what is on disk right now.
"""

import logging
from dataclasses import dataclass

from mdopen.core.errors import ContentReadError, PathNotFoundError, RenderError
from mdopen.core.markdown import MarkdownConverter
from mdopen.core.templates import TemplateRenderer
from mdopen.core.types import PathKind, ResolvedPath

logger = logging.getLogger(__name__)


@dataclass
class RenderResult:
    """Result of rendering a markdown document."""

    html: str
    fragment: str
    title: str
    source: ResolvedPath


class PageRenderer:
    """Renders markdown files into complete HTML pages."""

    def __init__(self, templates: TemplateRenderer) -> None:
        """Initialize renderer.

        Args:
            templates: Template renderer; its RenderOptions also drive conversion
        """
        self._templates = templates
        self._converter = MarkdownConverter(templates.options)

    def render(self, source: ResolvedPath) -> RenderResult:
        """Render a markdown file.

        Args:
            source: Resolved markdown file

        Returns:
            RenderResult with the full page, the converted fragment and the title

        Raises:
            PathNotFoundError: If the file disappeared after resolution
            ContentReadError: If the file cannot be read
            RenderError: If conversion or templating fails
        """
        if source.kind is not PathKind.MARKDOWN:
            raise ValueError(f"Not a markdown file: {source.relative}")

        markdown_text = self._read(source)

        try:
            fragment = self._converter.convert(markdown_text)
        except RecursionError as e:
            # Pathologically nested input
            raise RenderError(f"Markdown too deeply nested: {source.relative}") from e
        except Exception as e:
            logger.exception(f"Markdown conversion failed for {source.relative}")
            raise RenderError(f"Cannot render {source.relative}: {e}") from e

        title = source.name
        html = self._templates.page(title, fragment)
        return RenderResult(html=html, fragment=fragment, title=title, source=source)

    def _read(self, source: ResolvedPath) -> str:
        try:
            data = source.path.read_bytes()
        except (FileNotFoundError, NotADirectoryError) as e:
            raise PathNotFoundError(source.relative) from e
        except OSError as e:
            logger.error(f"Cannot read {source.path}: {e}")
            raise ContentReadError(f"Cannot read {source.relative}: {e.strerror}") from e
        return data.decode("utf-8", errors="replace")

"""GitHub-flavored markdown to HTML conversion.

Uses mistune for parsing with GitHub's extension set and Pygments for
server-side highlighting of fenced code blocks.
"""

import html
import logging
import re
from typing import Any, cast

import mistune
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import TextLexer, get_lexer_by_name
from pygments.util import ClassNotFound

from mdopen.config import RenderOptions

logger = logging.getLogger(__name__)

GFM_PLUGINS = ["strikethrough", "table", "task_lists", "footnotes", "url"]

_TAG_RE = re.compile(r"<[^>]+>")


def slugify(text: str) -> str:
    """Build a GitHub style heading anchor.

    Lowercases, keeps alphanumerics, spaces, hyphens and underscores, then turns
    spaces into hyphens.

    Args:
        text: Rendered heading HTML

    Returns:
        Anchor slug (e.g. "getting-started")
    """
    plain = html.unescape(_TAG_RE.sub("", text)).strip().lower()
    kept = "".join(c for c in plain if c.isalnum() or c in " -_")
    return kept.replace(" ", "-")


def highlight_stylesheet(style: str) -> str:
    """Generate the CSS rules for a Pygments style.

    Args:
        style: Pygments style name (e.g. "github-dark")

    Returns:
        CSS scoped to ``.highlight``

    Raises:
        ValueError: If the style does not exist
    """
    try:
        formatter = HtmlFormatter(style=style, cssclass="highlight")
    except ClassNotFound as e:
        raise ValueError(f"Unknown highlight style: {style}") from e
    return cast(str, formatter.get_style_defs(".highlight"))


class GitHubRenderer(mistune.HTMLRenderer):
    """HTML renderer adding heading anchors and Pygments code blocks.

    Holds per-document slug state, so create one instance per conversion.
    """

    def __init__(self, *, escape: bool = True, syntax_highlight: bool = True) -> None:
        super().__init__(escape=escape)
        self._syntax_highlight = syntax_highlight
        self._formatter = HtmlFormatter(cssclass="highlight")
        self._slug_counts: dict[str, int] = {}
        self._issued: set[str] = set()

    def heading(self, text: str, level: int, **attrs: Any) -> str:
        anchor = self._unique_slug(slugify(text))
        return (
            f'<h{level}><a id="{anchor}" class="anchor" href="#{anchor}">'
            f'<span class="octicon octicon-link"></span></a>{text}</h{level}>\n'
        )

    def block_code(self, code: str, info: str | None = None) -> str:
        if not self._syntax_highlight:
            return cast(str, super().block_code(code, info))

        lang = info.strip().split(None, 1)[0] if info and info.strip() else None
        lexer = TextLexer()
        if lang:
            try:
                lexer = get_lexer_by_name(lang)
            except ClassNotFound:
                logger.debug(f"No lexer for code block language {lang!r}")
        return cast(str, highlight(code, lexer, self._formatter))

    def _unique_slug(self, slug: str) -> str:
        # Suffixes skip ids already taken, including literal "name-1" headings
        candidate = slug
        count = self._slug_counts.get(slug, 0)
        while candidate in self._issued:
            count += 1
            candidate = f"{slug}-{count}"
        self._slug_counts[slug] = count
        self._issued.add(candidate)
        return candidate


class MarkdownConverter:
    """Converts markdown text to an HTML fragment."""

    def __init__(self, options: RenderOptions) -> None:
        """Initialize converter.

        Args:
            options: Render switches; math syntax is only parsed when LaTeX is enabled
        """
        self._options = options
        self._plugins = list(GFM_PLUGINS)
        if options.enable_latex:
            self._plugins.append("math")

    def convert(self, markdown_text: str) -> str:
        """Convert markdown to HTML.

        Raw HTML in the source is escaped unless ``allow_html`` is set.

        Args:
            markdown_text: Markdown source text

        Returns:
            HTML fragment
        """
        renderer = GitHubRenderer(
            escape=not self._options.allow_html,
            syntax_highlight=self._options.enable_syntax_highlight,
        )
        markdown = mistune.create_markdown(renderer=renderer, plugins=self._plugins)
        logger.debug(f"Converting {len(markdown_text)} characters of markdown")
        return cast(str, markdown(markdown_text))

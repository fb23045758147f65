"""Jinja2 templates for pages, listings and error bodies."""

import logging

from jinja2 import Environment, PackageLoader, TemplateError, select_autoescape

from mdopen.config import RenderOptions
from mdopen.core.errors import RenderError

logger = logging.getLogger(__name__)


class TemplateRenderer:
    """Renders the bundled templates.

    The page template receives exactly: title, body_html, style_url,
    enable_latex, enable_reload and websocket_url.
    """

    def __init__(self, options: RenderOptions) -> None:
        self._options = options
        self._env = Environment(
            loader=PackageLoader("mdopen", "templates"),
            autoescape=select_autoescape(["html"]),
            keep_trailing_newline=True,
        )

    @property
    def options(self) -> RenderOptions:
        return self._options

    def page(self, title: str, body_html: str) -> str:
        """Wrap an HTML fragment into a complete document.

        Args:
            title: Page title (not escaped by the caller)
            body_html: Trusted HTML fragment

        Returns:
            Complete HTML document

        Raises:
            RenderError: If the template fails to render
        """
        options = self._options
        return self._render(
            "page.html",
            title=title,
            body_html=body_html,
            style_url=options.style_url,
            enable_latex=options.enable_latex,
            enable_reload=options.enable_reload,
            websocket_url=options.reload_url,
        )

    def fragment(self, name: str, **context: object) -> str:
        """Render a body fragment template (listing, error)."""
        return self._render(name, **context)

    def _render(self, name: str, **context: object) -> str:
        try:
            return self._env.get_template(name).render(**context)
        except TemplateError as e:
            logger.error(f"Template {name} failed: {e}")
            raise RenderError(f"Template {name} failed: {e}") from e

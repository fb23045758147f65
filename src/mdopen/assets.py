"""Bundled stylesheet and the page stylesheet built from it.

``static/style.css`` carries the GitHub-like page styles. When code
highlighting is on, the Pygments rules for the configured style are appended,
so every page links one stylesheet whatever the options.
"""

from hashlib import md5
from importlib.resources import files
from pathlib import Path

from mdopen.config import RenderOptions
from mdopen.core.markdown import highlight_stylesheet

STYLESHEET_NAME = "style.css"


def get_static_dir() -> Path:
    """Return the directory holding the bundled stylesheet.

    Raises:
        FileNotFoundError: If the package was installed without its static files.
    """
    static = files("mdopen").joinpath("static")
    if not static.is_dir():
        msg = "Bundled static files not found. Reinstall mdopen."
        raise FileNotFoundError(msg)
    return Path(str(static))


def build_stylesheet(options: RenderOptions) -> str:
    """Compose the stylesheet served at ``RenderOptions.style_url``.

    Args:
        options: Render switches; ``highlight_style`` is only read when
                 syntax highlighting is enabled

    Returns:
        Page CSS, followed by the ``.highlight`` rules when highlighting is on

    Raises:
        FileNotFoundError: If the bundled stylesheet is missing
        ValueError: If the highlight style is unknown
    """
    css = (get_static_dir() / STYLESHEET_NAME).read_text(encoding="utf-8")
    if options.enable_syntax_highlight:
        css = f"{css}\n/* Code highlighting: {options.highlight_style} */\n"
        css += highlight_stylesheet(options.highlight_style)
        css += "\n"
    return css


def compute_etag(content: str) -> str:
    # 64 bits of md5 is plenty to tell stylesheet variants apart
    content_hash = md5(content.encode("utf-8"), usedforsecurity=False).hexdigest()[:16]
    return f'"{content_hash}"'

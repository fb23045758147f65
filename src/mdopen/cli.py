"""CLI interface for mdopen.

Command-line tool for previewing local markdown files in a browser.
"""

import logging
import sys
from pathlib import Path

import click

from mdopen import __version__
from mdopen.config import Config


@click.command()
@click.argument("files", nargs=-1)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, path_type=Path, dir_okay=False),
    default=None,
    help="Path to configuration file (default: auto-discover mdopen.toml)",
)
@click.option(
    "--root",
    "-r",
    type=click.Path(exists=True, path_type=Path, file_okay=False),
    default=None,
    help="Directory to serve (overrides config, default: current directory)",
)
@click.option(
    "--host",
    default=None,
    help="Host to bind to (overrides config, default: 127.0.0.1)",
)
@click.option(
    "--port",
    "-p",
    type=click.IntRange(0, 65535),
    default=None,
    help="Port to bind to (overrides config, default: 5032)",
)
@click.option(
    "--browser",
    "-b",
    default=None,
    help="Browser to open files with (overrides config, default: system browser)",
)
@click.option(
    "--latex/--no-latex",
    default=None,
    help="Enable/disable LaTeX math rendering (overrides config, default: enabled)",
)
@click.option(
    "--syntax-highlight/--no-syntax-highlight",
    default=None,
    help="Enable/disable code highlighting (overrides config, default: enabled)",
)
@click.option(
    "--live-reload/--no-live-reload",
    default=None,
    help="Enable/disable live reload (overrides config, default: disabled)",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable debug logging",
)
@click.version_option(__version__, prog_name="mdopen")
def cli(
    files: tuple[str, ...],
    config_path: Path | None,
    root: Path | None,
    host: str | None,
    port: int | None,
    browser: str | None,
    latex: bool | None,
    syntax_highlight: bool | None,
    live_reload: bool | None,
    verbose: bool,
) -> None:
    """Quickly preview local markdown FILES in the browser."""
    from mdopen.server import run_server

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = Config.load(config_path).with_overrides(
            host=host,
            port=port,
            root=root,
            browser=browser,
            latex=latex,
            syntax_highlight=syntax_highlight,
            live_reload=live_reload,
        )
    except (OSError, ValueError) as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)

    click.echo(f"Serving {config.server.root.resolve()} on http://{config.server.host}:{config.server.port}")
    click.echo(f"LaTeX: {'enabled' if config.render.enable_latex else 'disabled'}")
    click.echo(
        f"Syntax highlighting: {'enabled' if config.render.enable_syntax_highlight else 'disabled'}"
    )
    click.echo(f"Live reload: {'enabled' if config.render.enable_reload else 'disabled'}")

    try:
        run_server(config, files)
    except (OSError, ValueError) as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)


def main() -> None:
    cli()

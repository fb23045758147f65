"""aiohttp server for mdopen.

Application factory, route registration and the process runner.
"""

import asyncio
import logging
import signal
import webbrowser
from collections.abc import Sequence
from pathlib import Path
from urllib.parse import quote

from aiohttp import web

from mdopen.app_keys import (
    config_key,
    lister_key,
    live_reload_key,
    renderer_key,
    resolver_key,
    static_resolver_key,
    stylesheet_key,
    templates_key,
)
from mdopen.assets import build_stylesheet, get_static_dir
from mdopen.config import Config
from mdopen.core.listing import DirectoryLister
from mdopen.core.renderer import PageRenderer
from mdopen.core.resolver import PathResolver
from mdopen.core.templates import TemplateRenderer
from mdopen.live.reload import LiveReloadManager, create_live_reload_routes
from mdopen.middlewares import error_pages, loopback_guard
from mdopen.routes.assets import create_asset_routes
from mdopen.routes.files import create_file_routes

logger = logging.getLogger(__name__)


def create_app(config: Config) -> web.Application:
    """Create aiohttp application.

    Args:
        config: Application configuration

    Returns:
        Configured aiohttp application

    Raises:
        NotADirectoryError: If the serve root is not a directory
        ValueError: If the highlight style is unknown
    """
    app = web.Application(middlewares=[error_pages, loopback_guard])

    resolver = PathResolver(config.server.root)
    templates = TemplateRenderer(config.render)

    app[config_key] = config
    app[resolver_key] = resolver
    app[static_resolver_key] = PathResolver(get_static_dir())
    app[templates_key] = templates
    app[renderer_key] = PageRenderer(templates)
    app[lister_key] = DirectoryLister(templates)
    app[stylesheet_key] = build_stylesheet(config.render)

    # Live reload endpoint (must be registered before the asset catch-all)
    if config.render.enable_reload:
        manager = LiveReloadManager(resolver.root, debounce_ms=config.live_reload.debounce_ms)
        app[live_reload_key] = manager
        app.router.add_routes(create_live_reload_routes(manager))
        app.on_startup.append(_start_live_reload)
        # Before the runner waits for handlers, so open event streams end
        app.on_shutdown.append(_stop_live_reload)

    app.router.add_routes(create_asset_routes())

    # Files and directories - must be last to catch all remaining paths
    app.router.add_routes(create_file_routes())

    return app


async def _start_live_reload(app: web.Application) -> None:
    """Start live reload on application startup."""
    await app[live_reload_key].start()


async def _stop_live_reload(app: web.Application) -> None:
    """Stop live reload on application shutdown."""
    await app[live_reload_key].stop()


def browser_urls(
    resolver: PathResolver,
    files: Sequence[str],
    host: str,
    port: int,
) -> list[str]:
    """Build the URLs to open for files given on the command line.

    Files are taken relative to the current directory. Files outside the
    serve root are skipped with a warning.

    Args:
        resolver: Resolver for the serve root
        files: File arguments
        host: Bound host
        port: Bound port

    Returns:
        One URL per servable file
    """
    if host in ("", "0.0.0.0", "::"):
        host = "localhost"
    elif ":" in host:
        host = f"[{host}]"

    urls = []
    for file in files:
        relative = resolver.relative_url(Path(file).absolute())
        if relative is None:
            logger.warning(f"Not opening {file}: outside of {resolver.root}")
            continue
        urls.append(f"http://{host}:{port}/{quote(relative)}")
    return urls


def open_in_browser(urls: Sequence[str], browser: str | None = None) -> int:
    """Open URLs in a web browser.

    Failures are logged, never raised.

    Args:
        urls: URLs to open
        browser: Browser name understood by ``webbrowser.get``; default browser if None

    Returns:
        Number of URLs handed to the browser
    """
    try:
        controller = webbrowser.get(browser)
    except webbrowser.Error as e:
        logger.error(f"Cannot open browser {browser or '(default)'}: {e}")
        return 0

    opened = 0
    for url in urls:
        try:
            if controller.open(url):
                opened += 1
            else:
                logger.error(f"Browser refused to open {url}")
        except (webbrowser.Error, OSError) as e:
            logger.error(f"Cannot open browser: {e}")
    return opened


async def serve(config: Config, files: Sequence[str] = ()) -> None:
    """Serve until interrupted.

    Binding errors propagate before any request is accepted. Browsers are
    opened once, after the listener is bound.

    Args:
        config: Application configuration
        files: Files to open in the browser once the server is up
    """
    app = create_app(config)
    runner = web.AppRunner(app)
    await runner.setup()

    try:
        site = web.TCPSite(runner, config.server.host, config.server.port)
        await site.start()
        port = runner.addresses[0][1]
        logger.info(f"Serving {app[resolver_key].root} on http://{config.server.host}:{port}")

        loop = asyncio.get_running_loop()
        stop = asyncio.Event()
        try:
            loop.add_signal_handler(signal.SIGTERM, stop.set)
        except NotImplementedError:
            pass

        if files:
            urls = browser_urls(app[resolver_key], files, config.server.host, port)
            await loop.run_in_executor(None, open_in_browser, urls, config.server.browser)

        await stop.wait()
    finally:
        await runner.cleanup()


def run_server(config: Config, files: Sequence[str] = ()) -> None:
    """Run the server.

    Args:
        config: Application configuration
        files: Files to open in the browser once the server is up
    """
    try:
        asyncio.run(serve(config, files))
    except KeyboardInterrupt:
        logger.info("Shutting down")

"""Serving files and directories below the serve root.

Directories get a listing, markdown files a rendered page, everything else
its raw bytes.
"""

import asyncio
import logging

from aiohttp import web

from mdopen.app_keys import lister_key, renderer_key, resolver_key
from mdopen.core.errors import MdopenError, PathForbiddenError, PathNotFoundError
from mdopen.core.types import PathKind, ResolvedPath

logger = logging.getLogger(__name__)

NO_CACHE = {"Cache-Control": "no-cache"}


def create_file_routes() -> list[web.RouteDef]:
    # Catch-all; must be registered last
    return [web.get("/{path:.*}", serve_path)]


async def serve_path(request: web.Request) -> web.StreamResponse:
    path = request.match_info["path"]
    resolver = request.app[resolver_key]

    try:
        resolved = resolver.resolve(path)
    except MdopenError as e:
        raise to_http_error(e) from e

    if resolved.kind is PathKind.DIRECTORY:
        if not request.path.endswith("/"):
            raise web.HTTPMovedPermanently(location=_with_slash(request))
        return await _serve_directory(request, resolved)

    if resolved.kind is PathKind.MARKDOWN:
        return await _serve_markdown(request, resolved)

    logger.debug(f"Serving raw file {resolved.path}")
    return web.FileResponse(resolved.path, headers=NO_CACHE)


def to_http_error(error: MdopenError) -> web.HTTPException:
    """Map a request-scoped error onto an HTTP error.

    Args:
        error: Error raised while resolving, reading or rendering

    Returns:
        HTTP exception to raise
    """
    if isinstance(error, PathForbiddenError):
        return web.HTTPForbidden()
    if isinstance(error, PathNotFoundError):
        return web.HTTPNotFound()
    logger.error(f"Cannot serve page: {error}")
    return web.HTTPInternalServerError()


async def _serve_directory(request: web.Request, resolved: ResolvedPath) -> web.Response:
    lister = request.app[lister_key]
    loop = asyncio.get_running_loop()
    try:
        html = await loop.run_in_executor(None, lister.list, resolved)
    except MdopenError as e:
        raise to_http_error(e) from e
    return _html_response(html)


async def _serve_markdown(request: web.Request, resolved: ResolvedPath) -> web.Response:
    renderer = request.app[renderer_key]
    loop = asyncio.get_running_loop()
    try:
        result = await loop.run_in_executor(None, renderer.render, resolved)
    except MdopenError as e:
        raise to_http_error(e) from e
    return _html_response(result.html)


def _html_response(html: str) -> web.Response:
    return web.Response(
        text=html,
        content_type="text/html",
        charset="utf-8",
        headers=NO_CACHE,
    )


def _with_slash(request: web.Request) -> str:
    location = f"{request.rel_url.raw_path}/"
    if request.query_string:
        location = f"{location}?{request.query_string}"
    return location

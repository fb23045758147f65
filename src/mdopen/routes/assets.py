"""Bundled asset routes under the ``/@/`` prefix."""

from aiohttp import web

from mdopen.app_keys import static_resolver_key, stylesheet_key
from mdopen.assets import STYLESHEET_NAME, compute_etag
from mdopen.config import STATIC_PREFIX
from mdopen.core.errors import MdopenError
from mdopen.core.types import PathKind

ASSET_CACHE = {"Cache-Control": "max-age=31536000"}


def create_asset_routes() -> list[web.RouteDef]:
    return [
        web.get(STATIC_PREFIX + STYLESHEET_NAME, get_stylesheet),
        web.get(STATIC_PREFIX + "{name:.+}", get_asset),
    ]


async def get_stylesheet(request: web.Request) -> web.Response:
    # Content depends on the render options, so revalidate instead of caching
    css = request.app[stylesheet_key]
    etag = compute_etag(css)
    if request.headers.get("If-None-Match") == etag:
        return web.Response(status=304, headers={"ETag": etag})
    return web.Response(
        text=css,
        content_type="text/css",
        charset="utf-8",
        headers={"ETag": etag, "Cache-Control": "no-cache"},
    )


async def get_asset(request: web.Request) -> web.FileResponse:
    static_resolver = request.app[static_resolver_key]
    try:
        resolved = static_resolver.resolve(request.match_info["name"])
    except MdopenError as e:
        raise web.HTTPNotFound() from e
    if resolved.kind is PathKind.DIRECTORY:
        raise web.HTTPNotFound()
    return web.FileResponse(resolved.path, headers=ASSET_CACHE)

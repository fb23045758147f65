"""Request middlewares: loopback guard and HTML error pages."""

import ipaddress
import logging
from collections.abc import Mapping

from aiohttp import web
from aiohttp.typedefs import Handler

from mdopen.app_keys import config_key, templates_key
from mdopen.core.errors import RenderError

logger = logging.getLogger(__name__)


def is_loopback(remote: str | None) -> bool:
    """Check whether a peer address is a loopback address.

    Unix socket peers (no address) count as local, and IPv4 peers seen
    through a dual-stack IPv6 socket ("::ffff:127.0.0.1") are unwrapped.
    """
    if not remote:
        return True
    try:
        address = ipaddress.ip_address(remote)
    except ValueError:
        return False
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        return address.ipv4_mapped.is_loopback
    return address.is_loopback


@web.middleware
async def loopback_guard(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Reject requests from other hosts unless remote access is allowed."""
    if not request.app[config_key].server.allow_remote and not is_loopback(request.remote):
        logger.warning(f"Request to {request.path} from non-loopback address {request.remote}")
        raise web.HTTPForbidden()
    return await handler(request)


@web.middleware
async def error_pages(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Turn HTTP errors and unexpected exceptions into small HTML pages.

    Nothing raised while handling a request gets past this point.
    """
    try:
        return await handler(request)
    except web.HTTPException as e:
        if e.status < 400:
            raise
        return error_response(request, e.status, e.reason, _custom_text(e), e.headers)
    except Exception:
        logger.exception(f"Unhandled error serving {request.method} {request.path}")
        return error_response(request, 500, "Internal Server Error")


def error_response(
    request: web.Request,
    status: int,
    reason: str,
    message: str | None = None,
    headers: Mapping[str, str] | None = None,
) -> web.Response:
    """Build an HTML error response using the page template.

    Args:
        request: Request being answered
        status: HTTP status code
        reason: HTTP reason phrase
        message: Optional extra line shown under the heading
        headers: Headers of the original exception (only ``Allow`` is kept)

    Returns:
        HTML response
    """
    extra: dict[str, str] = {}
    allow = headers.get("Allow") if headers else None
    if allow:
        extra["Allow"] = allow

    templates = request.app[templates_key]
    try:
        body = templates.fragment("error.html", status=status, reason=reason, message=message)
        text = templates.page("mdopen", body)
    except RenderError:
        text = f"<h1>{status} {reason}</h1>"

    return web.Response(
        text=text,
        status=status,
        content_type="text/html",
        charset="utf-8",
        headers=extra,
    )


def _custom_text(e: web.HTTPException) -> str | None:
    # aiohttp fills in "404: Not Found" when no text was given
    text = e.text
    if not text or text == f"{e.status}: {e.reason}":
        return None
    return text

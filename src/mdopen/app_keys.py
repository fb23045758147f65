"""Application keys for type-safe app configuration access."""

from aiohttp import web

from mdopen.config import Config
from mdopen.core.listing import DirectoryLister
from mdopen.core.renderer import PageRenderer
from mdopen.core.resolver import PathResolver
from mdopen.core.templates import TemplateRenderer
from mdopen.live.reload import LiveReloadManager

config_key = web.AppKey("config", Config)
resolver_key = web.AppKey("resolver", PathResolver)
static_resolver_key = web.AppKey("static_resolver", PathResolver)
templates_key = web.AppKey("templates", TemplateRenderer)
renderer_key = web.AppKey("renderer", PageRenderer)
lister_key = web.AppKey("lister", DirectoryLister)
stylesheet_key = web.AppKey("stylesheet", str)
live_reload_key = web.AppKey("live_reload", LiveReloadManager)

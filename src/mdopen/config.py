"""Configuration management for mdopen.

Supports TOML configuration format with auto-discovery. Command-line flags
are layered on top with ``Config.with_overrides``.
"""

import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path

CONFIG_FILENAME = "mdopen.toml"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 5032

STATIC_PREFIX = "/@/"
RELOAD_URL = "/@/reload"


@dataclass(frozen=True)
class ServerConfig:
    """Server configuration."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    root: Path = field(default_factory=Path.cwd)
    browser: str | None = None
    allow_remote: bool = False


@dataclass(frozen=True)
class RenderOptions:
    """Rendering switches shared read-only by every request."""

    enable_latex: bool = True
    enable_syntax_highlight: bool = True
    enable_reload: bool = False
    style_url: str = f"{STATIC_PREFIX}style.css"
    allow_html: bool = False
    highlight_style: str = "github-dark"
    reload_url: str = RELOAD_URL


@dataclass(frozen=True)
class LiveReloadConfig:
    """File watcher tuning."""

    debounce_ms: int = 200


@dataclass(frozen=True)
class Config:
    """Application configuration."""

    server: ServerConfig
    render: RenderOptions
    live_reload: LiveReloadConfig
    config_path: Path | None = None

    @classmethod
    def load(cls, config_path: Path | None = None) -> "Config":
        """Load configuration from file.

        If config_path is provided, loads from that file.
        Otherwise, searches for mdopen.toml in current directory and parents.

        Args:
            config_path: Optional explicit path to config file

        Returns:
            Config instance with defaults for missing sections

        Raises:
            FileNotFoundError: If explicit config_path doesn't exist
            ValueError: If configuration is invalid
        """
        if config_path is not None:
            if not config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {config_path}")
            return cls._load_from_file(config_path)

        discovered_path = cls._discover_config()
        if discovered_path is None:
            return cls._default()

        return cls._load_from_file(discovered_path)

    @classmethod
    def _discover_config(cls) -> Path | None:
        """Search for config file in current directory and parents."""
        current = Path.cwd()
        while True:
            candidate = current / CONFIG_FILENAME
            if candidate.exists():
                return candidate
            parent = current.parent
            if parent == current:
                return None
            current = parent

    @classmethod
    def _default(cls) -> "Config":
        return cls(
            server=ServerConfig(),
            render=RenderOptions(),
            live_reload=LiveReloadConfig(),
        )

    @classmethod
    def _load_from_file(cls, path: Path) -> "Config":
        """Load configuration from a specific file.

        Args:
            path: Path to TOML configuration file

        Returns:
            Config instance

        Raises:
            ValueError: If configuration is invalid
        """
        with path.open("rb") as f:
            try:
                data = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ValueError(f"Invalid TOML in {path}: {e}") from e

        config_dir = path.parent

        server = cls._parse_server(data.get("server"), config_dir)
        live_reload_data = data.get("live_reload")
        render = cls._parse_render(data.get("render"), live_reload_data)
        live_reload = cls._parse_live_reload(live_reload_data)

        return cls(
            server=server,
            render=render,
            live_reload=live_reload,
            config_path=path,
        )

    @classmethod
    def _parse_server(cls, data: object, config_dir: Path) -> ServerConfig:
        """Parse server configuration section.

        Args:
            data: Raw server section data
            config_dir: Directory containing config file (for relative root)

        Returns:
            ServerConfig instance
        """
        if data is None:
            return ServerConfig()

        if not isinstance(data, dict):
            raise ValueError("server section must be a dictionary")

        host = data.get("host", DEFAULT_HOST)
        if not isinstance(host, str):
            raise ValueError("server.host must be a string")

        port = data.get("port", DEFAULT_PORT)
        if isinstance(port, bool) or not isinstance(port, int):
            raise ValueError("server.port must be an integer")
        if not 0 <= port <= 65535:
            raise ValueError("server.port must be between 0 and 65535")

        root_raw = data.get("root")
        if root_raw is None:
            root = Path.cwd()
        elif isinstance(root_raw, str):
            root = config_dir / root_raw
        else:
            raise ValueError("server.root must be a string")

        browser = data.get("browser")
        if browser is not None and not isinstance(browser, str):
            raise ValueError("server.browser must be a string")

        allow_remote = data.get("allow_remote", False)
        if not isinstance(allow_remote, bool):
            raise ValueError("server.allow_remote must be a boolean")

        return ServerConfig(
            host=host,
            port=port,
            root=root,
            browser=browser,
            allow_remote=allow_remote,
        )

    @classmethod
    def _parse_render(cls, data: object, live_reload_data: object) -> RenderOptions:
        """Parse render section, plus the enabled flag of the live_reload section.

        Args:
            data: Raw render section data
            live_reload_data: Raw live_reload section data

        Returns:
            RenderOptions instance
        """
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError("render section must be a dictionary")

        values: dict[str, bool] = {}
        for key in ("latex", "syntax_highlight", "allow_html"):
            value = data.get(key)
            if value is None:
                continue
            if not isinstance(value, bool):
                raise ValueError(f"render.{key} must be a boolean")
            values[key] = value

        highlight_style = data.get("highlight_style", "github-dark")
        if not isinstance(highlight_style, str):
            raise ValueError("render.highlight_style must be a string")

        enable_reload = False
        if isinstance(live_reload_data, dict):
            enabled = live_reload_data.get("enabled", False)
            if not isinstance(enabled, bool):
                raise ValueError("live_reload.enabled must be a boolean")
            enable_reload = enabled

        return RenderOptions(
            enable_latex=values.get("latex", True),
            enable_syntax_highlight=values.get("syntax_highlight", True),
            enable_reload=enable_reload,
            allow_html=values.get("allow_html", False),
            highlight_style=highlight_style,
        )

    @classmethod
    def _parse_live_reload(cls, data: object) -> LiveReloadConfig:
        """Parse live_reload configuration section.

        Args:
            data: Raw live_reload section data

        Returns:
            LiveReloadConfig instance
        """
        if data is None:
            return LiveReloadConfig()

        if not isinstance(data, dict):
            raise ValueError("live_reload section must be a dictionary")

        debounce_ms = data.get("debounce_ms", 200)
        if isinstance(debounce_ms, bool) or not isinstance(debounce_ms, int):
            raise ValueError("live_reload.debounce_ms must be an integer")
        if debounce_ms <= 0:
            raise ValueError("live_reload.debounce_ms must be positive")

        return LiveReloadConfig(debounce_ms=debounce_ms)

    def with_overrides(
        self,
        *,
        host: str | None = None,
        port: int | None = None,
        root: Path | None = None,
        browser: str | None = None,
        latex: bool | None = None,
        syntax_highlight: bool | None = None,
        live_reload: bool | None = None,
    ) -> "Config":
        """Create a new Config with CLI overrides applied.

        Only non-None values override the existing config. The original
        Config is not modified.

        Args:
            host: Override server.host
            port: Override server.port
            root: Override server.root
            browser: Override server.browser
            latex: Override render.latex
            syntax_highlight: Override render.syntax_highlight
            live_reload: Override live_reload.enabled

        Returns:
            New Config instance with overrides applied
        """
        server = replace(
            self.server,
            host=host if host is not None else self.server.host,
            port=port if port is not None else self.server.port,
            root=root if root is not None else self.server.root,
            browser=browser if browser is not None else self.server.browser,
        )

        render = replace(
            self.render,
            enable_latex=latex if latex is not None else self.render.enable_latex,
            enable_syntax_highlight=(
                syntax_highlight
                if syntax_highlight is not None
                else self.render.enable_syntax_highlight
            ),
            enable_reload=live_reload if live_reload is not None else self.render.enable_reload,
        )

        return replace(self, server=server, render=render)

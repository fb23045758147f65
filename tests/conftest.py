"""Shared test fixtures."""

from dataclasses import replace
from pathlib import Path

import pytest
from mdopen.config import Config, LiveReloadConfig, RenderOptions, ServerConfig
from mdopen.core.templates import TemplateRenderer


@pytest.fixture
def root_dir(tmp_path: Path) -> Path:
    """Serve root with no files in it."""
    root = tmp_path / "root"
    root.mkdir()
    return root


@pytest.fixture
def test_config(root_dir: Path) -> Config:
    """Create a test configuration serving root_dir.

    Live reload is disabled; use ``replace`` on ``render`` to turn it on.
    """
    return Config(
        server=ServerConfig(root=root_dir, port=0),
        render=RenderOptions(),
        live_reload=LiveReloadConfig(),
    )


@pytest.fixture
def reload_config(test_config: Config) -> Config:
    """Test configuration with live reload enabled."""
    return replace(test_config, render=replace(test_config.render, enable_reload=True))


@pytest.fixture
def templates() -> TemplateRenderer:
    return TemplateRenderer(RenderOptions())

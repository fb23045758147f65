"""Tests for path resolution."""

import os
from pathlib import Path

import pytest
from mdopen.core.errors import PathForbiddenError, PathNotFoundError
from mdopen.core.resolver import PathResolver
from mdopen.core.types import PathKind


@pytest.fixture
def resolver(root_dir: Path) -> PathResolver:
    (root_dir / "README.md").write_text("# Readme")
    (root_dir / "notes.markdown").write_text("notes")
    (root_dir / "image.png").write_bytes(b"\x89PNG")
    (root_dir / "docs").mkdir()
    (root_dir / "docs" / "guide.md").write_text("# Guide")
    return PathResolver(root_dir)


class TestPathResolverInit:
    """Tests for PathResolver construction."""

    def test__missing_root__raises_not_a_directory(self, tmp_path: Path) -> None:
        with pytest.raises(NotADirectoryError):
            PathResolver(tmp_path / "missing")

    def test__file_root__raises_not_a_directory(self, tmp_path: Path) -> None:
        file = tmp_path / "file.md"
        file.write_text("x")

        with pytest.raises(NotADirectoryError):
            PathResolver(file)

    def test__root__is_canonical(self, root_dir: Path) -> None:
        """Root is stored resolved even when given with dot segments."""
        (root_dir / "sub").mkdir()
        resolver = PathResolver(root_dir / "." / "sub" / "..")

        assert resolver.root == root_dir.resolve()


class TestPathResolverResolve:
    """Tests for PathResolver.resolve()."""

    def test__empty_path__resolves_root_directory(self, resolver: PathResolver) -> None:
        resolved = resolver.resolve("")

        assert resolved.kind is PathKind.DIRECTORY
        assert resolved.relative == ""
        assert resolved.is_root

    def test__slash__resolves_root_directory(self, resolver: PathResolver) -> None:
        assert resolver.resolve("/").is_root

    @pytest.mark.parametrize(
        ("request_path", "kind"),
        [
            ("/README.md", PathKind.MARKDOWN),
            ("notes.markdown", PathKind.MARKDOWN),
            ("/image.png", PathKind.OTHER),
            ("/docs", PathKind.DIRECTORY),
            ("/docs/", PathKind.DIRECTORY),
            ("/docs/guide.md", PathKind.MARKDOWN),
        ],
    )
    def test__existing_path__is_classified(
        self, resolver: PathResolver, request_path: str, kind: PathKind
    ) -> None:
        """Classify directories, markdown files and other files."""
        assert resolver.resolve(request_path).kind is kind

    def test__uppercase_extension__is_markdown(self, root_dir: Path) -> None:
        (root_dir / "CHANGES.MD").write_text("x")

        resolved = PathResolver(root_dir).resolve("/CHANGES.MD")

        assert resolved.kind is PathKind.MARKDOWN

    def test__dot_segments__are_normalized(self, resolver: PathResolver) -> None:
        resolved = resolver.resolve("/docs/../docs/./guide.md")

        assert resolved.relative == "docs/guide.md"
        assert resolved.path == resolver.root / "docs" / "guide.md"

    def test__missing_path__raises_not_found(self, resolver: PathResolver) -> None:
        with pytest.raises(PathNotFoundError):
            resolver.resolve("/missing.md")

    def test__path_below_file__raises_not_found(self, resolver: PathResolver) -> None:
        with pytest.raises(PathNotFoundError):
            resolver.resolve("/README.md/child")

    @pytest.mark.parametrize(
        "request_path",
        [
            "/../../etc/passwd",
            "../../etc/passwd",
            "/docs/../../outside",
            "//etc/passwd",
            "/..",
        ],
    )
    def test__traversal__raises_forbidden(
        self, resolver: PathResolver, request_path: str
    ) -> None:
        """Reject paths resolving outside the root, existing or not."""
        with pytest.raises(PathForbiddenError):
            resolver.resolve(request_path)

    def test__nul_byte__raises_forbidden(self, resolver: PathResolver) -> None:
        with pytest.raises(PathForbiddenError):
            resolver.resolve("/README.md\x00.png")

    def test__sibling_with_common_prefix__raises_forbidden(self, tmp_path: Path) -> None:
        """A sibling directory sharing the root's name prefix is outside."""
        root = tmp_path / "site"
        root.mkdir()
        sibling = tmp_path / "site-private"
        sibling.mkdir()
        (sibling / "secret.md").write_text("secret")

        with pytest.raises(PathForbiddenError):
            PathResolver(root).resolve("/../site-private/secret.md")

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks not supported")
    def test__symlink_escaping_root__raises_forbidden(
        self, tmp_path: Path, root_dir: Path
    ) -> None:
        """A symlink inside the root pointing outside is rejected."""
        outside = tmp_path / "outside"
        outside.mkdir()
        (outside / "secret.md").write_text("secret")
        (root_dir / "link").symlink_to(outside, target_is_directory=True)

        with pytest.raises(PathForbiddenError):
            PathResolver(root_dir).resolve("/link/secret.md")

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks not supported")
    def test__symlink_within_root__resolves_target(self, resolver: PathResolver) -> None:
        (resolver.root / "alias.md").symlink_to(resolver.root / "README.md")

        resolved = resolver.resolve("/alias.md")

        assert resolved.path == resolver.root / "README.md"
        assert resolved.kind is PathKind.MARKDOWN


class TestPathResolverRelativeUrl:
    """Tests for PathResolver.relative_url()."""

    def test__absolute_path_inside__returns_relative(self, resolver: PathResolver) -> None:
        assert resolver.relative_url(resolver.root / "docs" / "guide.md") == "docs/guide.md"

    def test__relative_path__is_taken_from_root(self, resolver: PathResolver) -> None:
        assert resolver.relative_url(Path("README.md")) == "README.md"

    def test__path_outside__returns_none(self, resolver: PathResolver, tmp_path: Path) -> None:
        assert resolver.relative_url(tmp_path / "elsewhere.md") is None

"""Shared test fixtures."""
from pathlib import Path
from typing import Callable
import pytest
from sitemill import Mode, Site


def write_file(root: Path, relative: str, content: str | bytes) -> Path:
    """Write a project file, creating parent directories."""
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Empty project root."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def make_site(project: Path) -> Callable[..., Site]:
    """Factory for sites rooted at the project fixture."""

    def factory(mode: Mode = Mode.BUILD, configure=None) -> Site:
        return Site(project, mode, configure=configure)

    return factory


@pytest.fixture
def write(project: Path) -> Callable[[str, str | bytes], Path]:
    """Write files relative to the project root."""

    def writer(relative: str, content: str | bytes) -> Path:
        return write_file(project, relative, content)

    return writer

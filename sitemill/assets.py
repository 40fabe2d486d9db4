"""
Content-hashed asset names.

In build mode every file of the prebuild directory, and every page marked
``digest``, is written under a name that includes a digest of its bytes,
so the same content always gets the same URL and changed content never
does. :class:`AssetResolver` keeps the mapping from original to hashed
path and answers ``asset_path`` lookups from templates.
"""
import hashlib
import logging
import os
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Final, Iterator
from .context import Mode

logger = logging.getLogger(__name__)

DIGEST_LENGTH: Final[int] = 10


def normalize_path(*segments: str) -> str:
    """Join path segments with ``/``, dropping empty and duplicate separators."""
    joined = "/".join(str(segment) for segment in segments)
    parts = [part for part in joined.replace("\\", "/").split("/") if part not in ("", ".")]
    path = "/".join(parts)
    if path and joined.endswith("/"):
        path += "/"
    return path


def join_url(prefix: str, *segments: str) -> str:
    """
    Append path segments to a URL prefix.

    >>> join_url("/", "page1")
    '/page1'
    >>> join_url("/site/", "/css//site.css")
    '/site/css/site.css'
    """
    return f"{prefix.rstrip('/')}/{normalize_path(*segments)}"


def content_digest(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()[:DIGEST_LENGTH]


def hashed_name(path: str, digest: str) -> str:
    """
    Insert ``digest`` before the final suffix of ``path``.

    ``css/site.css`` becomes ``css/site-<digest>.css``; a name without a
    suffix gets the digest appended.
    """
    pure = PurePosixPath(path)
    name = f"{pure.stem}-{digest}{pure.suffix}"
    return name if pure.parent == PurePosixPath(".") else f"{pure.parent}/{name}"


@dataclass(frozen=True)
class Asset:
    original_path: str
    content_hash: str
    hashed_path: str

    @classmethod
    def from_content(cls, path: str, content: bytes) -> "Asset":
        digest = content_digest(content)
        return cls(path, digest, hashed_name(path, digest))


class AssetResolver:
    """Table of original path to content-hashed path, filled during a build."""

    def __init__(self) -> None:
        self._assets: dict[str, Asset] = {}
        self._lock = threading.Lock()
        self._recorders = threading.local()

    def scan(self, prebuild_dir: Path) -> list[Asset]:
        """
        Register every file below ``prebuild_dir``.

        :param prebuild_dir: Directory of externally produced assets.
        :return: The registered assets, sorted by original path.
        """
        if not prebuild_dir.is_dir():
            logger.debug("No prebuild directory at %s.", prebuild_dir)
            return []

        found = []
        for dir_in, _, files in os.walk(prebuild_dir):
            sub_dir = Path(dir_in)
            for file in files:
                file_path = sub_dir.joinpath(file)
                found.append(file_path.relative_to(prebuild_dir).as_posix())

        assets = []
        for relative in sorted(found):
            asset = self.register(relative, prebuild_dir.joinpath(relative).read_bytes())
            logger.debug("Asset %s -> %s.", relative, asset.hashed_path)
            assets.append(asset)
        return assets

    def register(self, path: str, content: bytes) -> Asset:
        asset = Asset.from_content(normalize_path(path), content)
        with self._lock:
            self._assets[asset.original_path] = asset
        return asset

    def lookup(self, path: str) -> Asset | None:
        with self._lock:
            return self._assets.get(normalize_path(path))

    def hashed_path(self, path: str) -> str | None:
        asset = self.lookup(path)
        return asset.hashed_path if asset else None

    def asset_path(self, mode: Mode, prefix: str, *segments: str) -> str:
        """
        Resolve an asset URL.

        :param mode: Hashed names are only used in build mode; the dev
            server serves files under their own names.
        :param prefix: URL prefix, normally the ``asset_http_prefix`` config.
        :param segments: Path of the asset relative to the site root.
        """
        path = normalize_path(*segments)
        if mode.is_server:
            return join_url(prefix, path)

        hashed = self.hashed_path(path)
        if hashed is None:
            misses = self._active_misses()
            if misses is None:
                self.warn_miss(path)
            else:
                misses.add(path)
            return join_url(prefix, path)

        return join_url(prefix, hashed)

    def __len__(self) -> int:
        return len(self._assets)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and self.lookup(path) is not None

    @contextmanager
    def recording_misses(self) -> Iterator[set[str]]:
        """
        Collect, instead of warning about, lookups on this thread that
        find no hashed asset.

        Used while rendering digested pages, whose references to other
        digested pages can only be resolved once those have been rendered.
        """
        stack = self._recorder_stack()
        misses: set[str] = set()
        stack.append(misses)
        try:
            yield misses
        finally:
            stack.pop()

    @staticmethod
    def warn_miss(path: str) -> None:
        logger.warning("No hashed asset for %s, using the unhashed path.", path)

    def _recorder_stack(self) -> list[set[str]]:
        if not hasattr(self._recorders, "stack"):
            self._recorders.stack = []
        return self._recorders.stack

    def _active_misses(self) -> set[str] | None:
        stack = self._recorder_stack()
        return stack[-1] if stack else None

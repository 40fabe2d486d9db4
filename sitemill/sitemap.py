import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Final, Iterator, Literal, Mapping
from .exec import ConfigurationError

logger = logging.getLogger(__name__)

RESERVED_ATTRIBUTES: Final[frozenset[str]] = frozenset(
    {"path", "template", "layout", "digest"}
)


def normalize_page_path(path: str) -> str:
    parts = [part for part in path.replace("\\", "/").split("/") if part not in ("", ".")]
    return "/".join(parts)


@dataclass(frozen=True)
class PageEntry:
    """
    A single page of the site.

    :ivar path: Output path, relative to the build directory.
    :ivar template: Template path, relative to the project root.
    :ivar layout: Layout template path; ``None`` inherits the ``layout``
        config, ``False`` renders the page without any layout.
    :ivar digest: Write the output under a content-hashed name.
    :ivar extra: Any other attributes, readable from templates via ``page``.
    """
    path: str
    template: str
    layout: str | Literal[False] | None = None
    digest: bool = False
    extra: Mapping[str, Any] = field(default_factory=dict)

    def attributes(self) -> dict[str, Any]:
        """Attributes as seen by templates, ``extra`` flattened in."""
        attrs = dict(self.extra)
        attrs.update(
            path=self.path,
            template=self.template,
            layout=self.layout,
            digest=self.digest,
        )
        return attrs


class Sitemap:
    """Ordered registry of every page the site produces."""

    def __init__(self) -> None:
        self._pages: dict[str, PageEntry] = {}
        self._frozen = False

    def add_page(self, path: str, **attributes: Any) -> PageEntry:
        """
        Register a page.

        Registering a path a second time replaces the earlier entry but
        keeps its position in iteration order.

        :param path: Output path of the page, e.g. ``"blog/index.html"``.
        :param attributes: ``template`` (required), ``layout``, ``digest``
            and any extra attributes for templates.
        :return: The stored entry.
        :raise ConfigurationError: If ``template`` is missing or
            configuration has finished.
        """
        if self._frozen:
            raise ConfigurationError(
                f"Cannot add page '{path}' after configuration has finished."
            )

        normalized = normalize_page_path(path)
        if not normalized or ".." in normalized.split("/"):
            raise ConfigurationError(f"Invalid page path '{path}'.")

        template = attributes.get("template")
        if not template or not isinstance(template, str):
            raise ConfigurationError(f"Page '{normalized}' has no template.")

        layout = attributes.get("layout")
        if layout is not None and layout is not False and not isinstance(layout, str):
            raise ConfigurationError(
                f"Page '{normalized}' layout must be a template path or False."
            )

        digest = attributes.get("digest", False)
        if not isinstance(digest, bool):
            raise ConfigurationError(
                f"Page '{normalized}' digest must be True or False."
            )

        entry = PageEntry(
            path=normalized,
            template=template,
            layout=layout,
            digest=digest,
            extra=MappingProxyType({
                key: value
                for key, value in attributes.items()
                if key not in RESERVED_ATTRIBUTES
            }),
        )

        if normalized in self._pages:
            logger.debug("Page %s registered again, replacing.", normalized)
        self._pages[normalized] = entry
        return entry

    def get(self, path: str) -> PageEntry | None:
        return self._pages.get(normalize_page_path(path))

    def entries(self) -> tuple[PageEntry, ...]:
        return tuple(self._pages.values())

    def freeze(self) -> None:
        self._frozen = True

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and normalize_page_path(path) in self._pages

    def __iter__(self) -> Iterator[PageEntry]:
        return iter(self.entries())

    def __len__(self) -> int:
        return len(self._pages)

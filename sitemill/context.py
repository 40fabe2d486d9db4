from dataclasses import dataclass, field, replace
from enum import IntEnum, Enum
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any, Mapping, Self

if TYPE_CHECKING:
    from .assets import AssetResolver
    from .config import ConfigStore
    from .data import DataStore
    from .helpers import HelperRegistry
    from .templates import TemplateRenderer


class BuildReason(IntEnum):
    CREATED = 0
    CHANGED = 1
    UNCHANGED = 2
    DELETED = 3


class Mode(Enum):
    """Selects between writing the site to disk and serving it on demand."""
    BUILD = "build"
    SERVER = "server"

    @property
    def is_build(self) -> bool:
        return self is Mode.BUILD

    @property
    def is_server(self) -> bool:
        return self is Mode.SERVER


class FileType(Enum):
    """Represents file types the generator treats specially."""
    OTHER = frozenset() #For anything else
    HTML = frozenset({
        ".html",
        ".htm",
        ".xhtml",
        ".xht"
    })
    XML = frozenset({
        ".xml",
        ".svg",
        ".atom",
        ".rss"
    })
    JSON = frozenset({
        ".json"
    })
    YAML = frozenset({
        ".yaml",
        ".yml"
    })
    TEMPLATE = frozenset({
        ".j2",
        ".jinja",
        ".jinja2"
    })

    @classmethod
    def from_suffix(cls, suffix: str) -> "FileType":
        for f_st in cls:
            if suffix.lower() in f_st.value:
                return f_st
        return cls.OTHER

    @classmethod
    def from_name(cls, name: str) -> "FileType":
        """
        Classify a file by name, looking through a trailing template suffix,
        so ``index.html.j2`` is HTML.
        """
        path = PurePosixPath(name)
        if cls.from_suffix(path.suffix) is cls.TEMPLATE:
            path = path.with_suffix("")
        return cls.from_suffix(path.suffix)

    @classmethod
    def data(cls) -> frozenset[str]:
        return cls.JSON.value | cls.YAML.value


@dataclass(frozen=True)
class RenderContext:
    """
    Everything a template may read while it is rendered.

    A new context is created for every render call; config, data and
    helpers are shared references to the frozen site stores, ``page`` is a
    private copy of the current page's attributes merged with ``locals``.

    :ivar config: Site configuration.
    :ivar data: Project data namespaces.
    :ivar page: Current page attributes, locals taking precedence.
    :ivar helpers: Registry the template's helper functions are bound from.
    :ivar mode: Build or server mode.
    :ivar renderer: Renderer used by the ``render`` helper.
    :ivar assets: Hash table consulted by ``asset_path``.
    :ivar locals: Values passed to this render call only.
    :ivar page_path: Path of the page the render started from; partial
        locals never change it.
    """
    config: "ConfigStore"
    data: "DataStore"
    page: Mapping[str, Any]
    helpers: "HelperRegistry"
    mode: Mode
    renderer: "TemplateRenderer"
    assets: "AssetResolver"
    locals: Mapping[str, Any] = field(default_factory=dict)
    page_path: str | None = None

    def derive(self, **local_values: Any) -> Self:
        """Context for a partial: same stores, page merged with new locals."""
        return replace(
            self,
            page={**self.page, **local_values},
            locals=local_values,
        )

    def bindings(self, **extra: Any) -> dict[str, Any]:
        """Names exposed to the template evaluator."""
        names: dict[str, Any] = self.helpers.bind(self)
        names.update(self.locals)
        names.update(extra)
        names.update(
            config=self.config,
            data=self.data,
            page=self.page,
            mode=self.mode.value,
        )
        return names

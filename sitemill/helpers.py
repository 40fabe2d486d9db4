"""
Helper functions available to configuration code and templates.

A helper is a plain function whose first parameter is the
:class:`~sitemill.context.RenderContext` it runs in. The registry binds
that parameter when a context is created, so templates call
``asset_path("css/site.css")`` without knowing about contexts at all.
"""
import inspect
import logging
from functools import partial
from types import ModuleType
from typing import Any, Callable, Iterator, Mapping
from markupsafe import Markup
from .assets import join_url
from .context import RenderContext
from .exec import ConfigurationError

logger = logging.getLogger(__name__)

Helper = Callable[..., Any]


def render(
        ctx: RenderContext,
        template: str,
        local_values: Mapping[str, Any] | None = None,
        /,
        **kwargs: Any,
) -> Markup:
    """
    Render a partial template, without layout, into the current output.

    Locals may be passed as a mapping, as keywords, or both; keywords win.
    """
    return Markup(ctx.renderer.render(template, ctx, **{**(local_values or {}), **kwargs}))


def include_file(ctx: RenderContext, path: str) -> Markup:
    """Insert a file from the project verbatim."""
    return Markup(ctx.renderer.read_file(path))


def http_prefix(ctx: RenderContext) -> str:
    return ctx.config.get("http_prefix")


def asset_http_prefix(ctx: RenderContext) -> str:
    return ctx.config.get("asset_http_prefix") or http_prefix(ctx)


def asset_path(ctx: RenderContext, *segments: str) -> str:
    """
    URL of a prebuilt asset or digested page.

    In build mode, the content-hashed name is used when one is known.
    """
    return ctx.assets.asset_path(ctx.mode, asset_http_prefix(ctx), *segments)


def canonical_url(ctx: RenderContext, *segments: str) -> str:
    return join_url(http_prefix(ctx), *segments)


def is_build(ctx: RenderContext) -> bool:
    return ctx.mode.is_build


def is_server(ctx: RenderContext) -> bool:
    return ctx.mode.is_server


BUILTIN_HELPERS: Mapping[str, Helper] = {
    "render": render,
    "include_file": include_file,
    "http_prefix": http_prefix,
    "asset_http_prefix": asset_http_prefix,
    "asset_path": asset_path,
    "canonical_url": canonical_url,
    "is_production": is_build,
    "is_build": is_build,
    "is_development": is_server,
    "is_server": is_server,
}


def _bundle_members(bundle: Any) -> Iterator[tuple[str, Helper]]:
    if isinstance(bundle, Mapping):
        yield from bundle.items()
        return

    for name, member in inspect.getmembers(bundle, inspect.isroutine):
        if name.startswith("_"):
            continue
        # Skip what a module merely imported.
        if isinstance(bundle, ModuleType) and getattr(member, "__module__", None) != bundle.__name__:
            continue
        yield name, member


class HelperRegistry:
    """
    Named helper functions shared by every render context.

    Built-in helpers are registered first and may be replaced by
    registering a helper of the same name.
    """

    def __init__(self, builtins: bool = True) -> None:
        self._helpers: dict[str, Helper] = dict(BUILTIN_HELPERS) if builtins else {}
        self._frozen = False

    def register(self, fn: Helper | None = None, *, name: str | None = None) -> Any:
        """
        Register one helper. Works as a plain call or as a decorator::

            @site.helpers.register
            def title(ctx, text): ...
        """
        if fn is None:
            return partial(self.register, name=name)

        self._add(name or fn.__name__, fn)
        return fn

    def register_block(self, *fns: Helper) -> None:
        """Register several inline functions under their own names."""
        for fn in fns:
            self._add(fn.__name__, fn)

    def register_bundle(self, bundle: Any) -> list[str]:
        """
        Mix in a collection of helpers.

        :param bundle: A mapping of name to function, a module (its public
            functions), or any object (its public routines).
        :return: Names registered.
        """
        names = []
        for name, fn in _bundle_members(bundle):
            self._add(name, fn)
            names.append(name)
        return names

    def _add(self, name: str, fn: Helper) -> None:
        if self._frozen:
            raise ConfigurationError(
                f"Cannot register helper '{name}' after configuration has finished."
            )
        if not callable(fn):
            raise ConfigurationError(f"Helper '{name}' is not callable.")
        if name in self._helpers:
            logger.debug("Helper %s overrides an earlier definition.", name)
        self._helpers[name] = fn

    def get(self, name: str) -> Helper | None:
        return self._helpers.get(name)

    def names(self) -> list[str]:
        return list(self._helpers)

    def bind(self, context: RenderContext) -> dict[str, Callable[..., Any]]:
        return {name: partial(fn, context) for name, fn in self._helpers.items()}

    def freeze(self) -> None:
        self._frozen = True

    def __contains__(self, name: object) -> bool:
        return name in self._helpers

    def __len__(self) -> int:
        return len(self._helpers)

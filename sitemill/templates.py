import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final
from charset_normalizer import from_path
from jinja2 import Environment, FileSystemLoader, StrictUndefined
from jinja2.exceptions import TemplateNotFound, TemplateSyntaxError
from markupsafe import Markup
from .assets import AssetResolver, normalize_path
from .config import ConfigStore
from .context import FileType, Mode, RenderContext
from .data import DataStore
from .exec import RenderError
from .helpers import HelperRegistry
from .sitemap import PageEntry

if TYPE_CHECKING:
    from .site import Site

logger = logging.getLogger(__name__)
ESCAPED_TYPES: Final[frozenset[FileType]] = frozenset({FileType.HTML, FileType.XML})


def _autoescape(template_name: str | None) -> bool:
    if template_name is None:
        return False
    return FileType.from_name(template_name) in ESCAPED_TYPES


class TemplateRenderer:
    """
    Renders templates and pages against the site stores.

    Template paths are always relative to the project root; there are no
    other search directories. Undefined names are errors, not empty strings.

    :ivar root_path: Project root, the only template search path.
    :ivar jinja_env: Jinja2 environment used for every template.
    """
    root_path: Final[Path]
    jinja_env: Environment

    def __init__(
            self,
            root_path: Path,
            config: ConfigStore,
            data: DataStore,
            helpers: HelperRegistry,
            assets: AssetResolver,
            mode: Mode,
    ):
        self.root_path = root_path
        self.config = config
        self.data = data
        self.helpers = helpers
        self.assets = assets
        self.mode = mode
        self.jinja_env = Environment(
            loader=FileSystemLoader(root_path),
            undefined=StrictUndefined,
            autoescape=_autoescape,
            keep_trailing_newline=True,
            # The dev server must pick up template edits on every request.
            cache_size=0 if mode.is_server else 400,
        )

    @classmethod
    def for_site(cls, site: "Site") -> "TemplateRenderer":
        return cls(site.root_path, site.config, site.data, site.helpers, site.assets, site.mode)

    def context_for(self, page: PageEntry | None = None) -> RenderContext:
        """Top-level context for a page, or for configuration code if ``page`` is None."""
        return RenderContext(
            config=self.config,
            data=self.data,
            page=page.attributes() if page else {},
            helpers=self.helpers,
            mode=self.mode,
            renderer=self,
            assets=self.assets,
            page_path=page.path if page else None,
        )

    def layout_for(self, page: PageEntry) -> str | None:
        if page.layout is False:
            return None
        return page.layout or self.config.get("layout") or None

    def render(self, template: str, context: RenderContext, **local_values: Any) -> str:
        """
        Render a single template, without layout.

        :param template: Template path relative to the project root.
        :param context: Context of the caller; ``local_values`` are merged
            into a derived context so the caller's own page is untouched.
        :raise RenderError: If the template is missing or fails to render.
        """
        if local_values:
            context = context.derive(**local_values)
        return self._evaluate(template, context)

    def render_page(self, page: PageEntry) -> str:
        """
        Render a page and wrap it in its layout, if one applies.

        :raise RenderError: If the page template or its layout fails.
        """
        context = self.context_for(page)
        body = self._evaluate(page.template, context)

        layout = self.layout_for(page)
        if layout is None:
            return body

        logger.debug("Wrapping %s in layout %s.", page.path, layout)
        return self._evaluate(layout, context, body=Markup(body))

    def _evaluate(self, template: str, context: RenderContext, **extra: Any) -> str:
        name = normalize_path(template)
        try:
            return self.jinja_env.get_template(name).render(context.bindings(**extra))

        except RenderError:
            raise

        except TemplateNotFound as e:
            raise RenderError(
                f"template not found: {e.name}", name, context.page_path
            ) from e

        except TemplateSyntaxError as e:
            raise RenderError(
                f"{e.message} at line {e.lineno}", e.name or name, context.page_path
            ) from e

        except Exception as e:
            raise RenderError(
                str(e) or type(e).__name__, name, context.page_path
            ) from e

    def read_file(self, path: str) -> str:
        """
        Read a project file as text, detecting its encoding.

        :raise FileNotFoundError: If the file does not exist under the project root.
        """
        file_path = self.root_path.joinpath(normalize_path(path)).resolve()
        if not (file_path.is_relative_to(self.root_path.resolve()) and file_path.is_file()):
            raise FileNotFoundError(f"No such file in project: {path}")

        charset = from_path(file_path).best()
        if charset is None:
            return file_path.read_text(encoding="utf-8", errors="replace")
        return str(charset)

import importlib.util
import logging
from functools import partial
from pathlib import Path
from typing import Any, Callable, Final, List
from .assets import AssetResolver
from .config import ConfigStore
from .context import Mode
from .data import DataStore
from .exec import ConfigurationError
from .helpers import Helper, HelperRegistry
from .sitemap import PageEntry, Sitemap
from .templates import TemplateRenderer

logger = logging.getLogger(__name__)

CONFIG_FILENAME: Final[str] = "config.py"

Configurator = Callable[["Site"], Any]


def load_configurator(root_path: Path) -> Configurator | None:
    """
    Load the ``configure(site)`` function from the project's ``config.py``.

    :param root_path: Project root.
    :return: The function, or None if the project has no config file.
    :raise ConfigurationError: If the file defines no ``configure`` function.
    """
    config_path = root_path.joinpath(CONFIG_FILENAME)
    if not config_path.is_file():
        logger.debug("No %s in %s.", CONFIG_FILENAME, root_path)
        return None

    spec = importlib.util.spec_from_file_location("sitemill_project_config", config_path)
    if spec is None or spec.loader is None:
        raise ConfigurationError(f"Cannot load {config_path}.")

    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    configure = getattr(module, "configure", None)
    if not callable(configure):
        raise ConfigurationError(f"{config_path} does not define configure(site).")
    return configure


class Site:
    """
    This class represents the root of the site, and every store the
    configuration phase fills in.

    A site is mutable until :meth:`setup` has run: data files are loaded,
    then each configurator is called with the site, then every store is
    frozen. Build and serve only ever see the frozen site.

    :ivar root_path: Project root; templates resolve relative to it.
    :ivar data_dir: Directory of auto-loaded data files.
    :ivar prebuild_dir: Directory of externally produced assets.
    :ivar build_dir: Output directory of a build.
    :ivar mode: Build or server mode, fixed for the life of the site.
    """
    root_path: Final[Path]
    data_dir: Final[Path]
    prebuild_dir: Final[Path]
    build_dir: Final[Path]
    mode: Final[Mode]
    configurators: List[Configurator]

    def __init__(
            self,
            root_path: Path,
            mode: Mode = Mode.BUILD,
            *,
            configure: Configurator | None = None,
            data_dir: str | Path = "data",
            prebuild_dir: str | Path = "prebuild",
            build_dir: str | Path = "build",
    ):
        """
        :param root_path: Path to the root of the site.
        :param mode: Build or server mode.
        :param configure: Optional configuration function, called with the site.
        :param data_dir: Data directory, relative to ``root_path``.
        :param prebuild_dir: Prebuild directory, relative to ``root_path``.
        :param build_dir: Build output directory, relative to ``root_path``.
        """
        self.root_path = root_path
        self.mode = mode
        self.data_dir = root_path.joinpath(data_dir)
        self.prebuild_dir = root_path.joinpath(prebuild_dir)
        self.build_dir = root_path.joinpath(build_dir)

        self.config = ConfigStore()
        self.data = DataStore()
        self.sitemap = Sitemap()
        self.helpers = HelperRegistry()
        self.assets = AssetResolver()
        self.renderer = TemplateRenderer.for_site(self)

        self.configurators = [configure] if configure else []
        self._ready = False

    def configure(self, fn: Configurator) -> Configurator:
        """Add a configuration function; usable as a decorator."""
        if self._ready:
            raise ConfigurationError("Site has already been configured.")
        self.configurators.append(fn)
        return fn

    def setup(self) -> None:
        """
        Run the configuration phase once: load data, call the
        configurators, then freeze every store.

        :raise DataLoadError: If a data file is malformed; no configurator runs.
        :raise ConfigurationError: If a configurator registers an invalid page.
        """
        if self._ready:
            return

        loaded = self.data.autoload(self.data_dir)
        logger.debug("Loaded %d data files.", len(loaded))

        for configure in self.configurators:
            configure(self)

        self.freeze()
        logger.debug(
            "Site configured: %d pages, %d helpers.", len(self.sitemap), len(self.helpers)
        )

    def freeze(self) -> None:
        self.config.freeze()
        self.data.freeze()
        self.sitemap.freeze()
        self.helpers.freeze()
        self._ready = True

    @property
    def frozen(self) -> bool:
        return self._ready

    # Shorthands for configuration code.
    def set(self, key: str, value: Any) -> None:
        self.config.set(key, value)

    def add_data(self, namespace: str, value: Any) -> None:
        self.data.add(namespace, value)

    def add_page(self, path: str, **attributes: Any) -> PageEntry:
        return self.sitemap.add_page(path, **attributes)

    def helper(self, name: str) -> Callable[..., Any]:
        """
        A helper bound to a page-less context, for calls from configuration code.

        :raise KeyError: If no helper has that name.
        """
        fn: Helper | None = self.helpers.get(name)
        if fn is None:
            raise KeyError(name)
        return partial(fn, self.renderer.context_for())

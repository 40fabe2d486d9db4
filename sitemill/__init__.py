from .assets import DIGEST_LENGTH, Asset, AssetResolver
from .build import BuildEngine
from .cli import BuildStats
from .config import ConfigStore
from .context import BuildReason, FileType, Mode, RenderContext
from .data import DataStore
from .exec import ConfigurationError, DataLoadError, RenderError, SitemillError
from .helpers import HelperRegistry
from .server import DevServer, Response
from .site import Site
from .sitemap import PageEntry, Sitemap
from .templates import TemplateRenderer

__version__ = "0.1.0"
__all__ = [
    "Site",
    "Mode",
    "ConfigStore",
    "DataStore",
    "Sitemap",
    "PageEntry",
    "HelperRegistry",
    "RenderContext",
    "TemplateRenderer",
    "AssetResolver",
    "Asset",
    "DIGEST_LENGTH",
    "BuildEngine",
    "BuildStats",
    "BuildReason",
    "DevServer",
    "Response",
    "FileType",
    "SitemillError",
    "ConfigurationError",
    "DataLoadError",
    "RenderError",
]

"""
Development server.

Pages are rendered on every request, straight from the current templates,
config and data; anything else is looked up in the prebuild directory by
its literal name.
"""
import asyncio
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Final
from urllib.parse import unquote
from aiohttp import web
from .assets import normalize_path
from .context import Mode
from .exec import ConfigurationError, RenderError
from .site import Site

logger = logging.getLogger(__name__)

INDEX_FILE: Final[str] = "index.html"
DEFAULT_CONTENT_TYPE: Final[str] = "application/octet-stream"
PAGE_CHARSET: Final[str] = "utf-8"


def guess_content_type(path: str) -> str:
    content_type, _ = mimetypes.guess_type(path, strict=False)
    return content_type or DEFAULT_CONTENT_TYPE


@dataclass(frozen=True)
class Response:
    """
    Transport-independent response of :meth:`DevServer.dispatch`.

    :ivar charset: Encoding of ``body`` if it is text, else ``None``.
    """
    status: int
    content_type: str
    body: bytes
    charset: str | None = None


class DevServer:
    """Maps request paths to rendered pages or prebuilt files."""

    def __init__(self, site: Site) -> None:
        """
        Configure the site for serving.

        :param site: Site in server mode.
        :raise ConfigurationError: If the site is not in server mode.
        """
        if site.mode is not Mode.SERVER:
            raise ConfigurationError(f"Cannot serve a site in {site.mode.value} mode.")
        site.setup()
        self.site = site

    @staticmethod
    def resolve_path(request_path: str) -> str:
        """
        Turn a URL path into a sitemap or prebuild lookup key.

        Directory-style paths map to their index file.
        """
        path = normalize_path(unquote(request_path))
        if not path or path.endswith("/"):
            path += INDEX_FILE
        return path

    def dispatch(self, request_path: str) -> Response:
        """
        Answer one request.

        :param request_path: URL path without query string.
        :return: Rendered page, prebuilt file, error or not-found response.
        """
        path = self.resolve_path(request_path)

        page = self.site.sitemap.get(path)
        if page is not None:
            try:
                body = self.site.renderer.render_page(page)
            except RenderError as e:
                logger.error("%s", e.message)
                return Response(500, "text/plain", e.message.encode(PAGE_CHARSET), PAGE_CHARSET)
            return Response(200, guess_content_type(page.path), body.encode(PAGE_CHARSET), PAGE_CHARSET)

        file_path = self._prebuild_file(path)
        if file_path is not None:
            return Response(200, guess_content_type(path), file_path.read_bytes())

        logger.debug("Not found: %s", request_path)
        return Response(
            404, "text/plain", f"Not found: {request_path}".encode(PAGE_CHARSET), PAGE_CHARSET
        )

    def static_file(self, request_path: str) -> Path | None:
        """
        Prebuilt file a request would be answered with, if any.

        :return: ``None`` when the path is a page or names no prebuilt file.
        """
        path = self.resolve_path(request_path)
        if path in self.site.sitemap:
            return None
        return self._prebuild_file(path)

    def _prebuild_file(self, path: str) -> Path | None:
        prebuild_dir = self.site.prebuild_dir.resolve()
        candidate = prebuild_dir.joinpath(path).resolve()
        if not candidate.is_relative_to(prebuild_dir) or not candidate.is_file():
            return None
        return candidate


dev_server_key = web.AppKey("dev_server", DevServer)


def create_app(server: DevServer) -> web.Application:
    """
    Create an aiohttp application serving every path through ``server``.

    Prebuilt files are streamed from disk; pages are rendered off the
    event loop.

    :param server: Configured dev server.
    :return: The application.
    """

    async def handle(request: web.Request) -> web.StreamResponse:
        request_path = request.rel_url.raw_path
        file_path = await asyncio.to_thread(server.static_file, request_path)
        if file_path is not None:
            return web.FileResponse(file_path)

        response = await asyncio.to_thread(server.dispatch, request_path)
        return web.Response(
            status=response.status,
            body=response.body,
            content_type=response.content_type,
            charset=response.charset,
        )

    app = web.Application()
    app[dev_server_key] = server
    app.router.add_get("/{path:.*}", handle)
    return app


def run_server(server: DevServer, *, host: str = "127.0.0.1", port: int = 4567) -> None:
    """
    Run the dev server until interrupted.

    :param server: Configured dev server.
    :param host: Host to bind to.
    :param port: Port to bind to.
    """
    app = create_app(server)
    web.run_app(app, host=host, port=port, print=None)

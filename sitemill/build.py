import logging
import os
import time
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Final, Iterable
from .cli import BuildStats
from .context import BuildReason
from .exec import ConfigurationError, RenderError
from .site import Site
from .sitemap import PageEntry

logger = logging.getLogger(__name__)
DEFAULT_WORKERS: Final[int] = 1


def write_output(dest: Path, content: bytes) -> BuildReason:
    """
    Write ``content`` to ``dest`` unless it already holds exactly that.

    :return: Whether the file was created, changed or left unchanged.
    """
    if dest.is_file():
        if dest.read_bytes() == content:
            return BuildReason.UNCHANGED
        reason = BuildReason.CHANGED
    else:
        reason = BuildReason.CREATED

    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_bytes(content)
    return reason


class BuildEngine:
    """
    Renders every page of a site into its build directory.

    Pages are rendered in two passes: pages marked ``digest`` first, each
    after the digested pages it links to, so their hashed names are known
    before any other page asks for them; then every other page, on a pool
    of ``workers`` threads. Render failures are collected and the
    remaining pages still build.

    :ivar site: Site to build; configured by :meth:`run` if it is not yet.
    :ivar workers: Size of the render thread pool.
    :ivar clean: Delete files in the build directory this run did not write.
    """
    site: Final[Site]
    workers: int
    clean: bool

    def __init__(self, site: Site, *, workers: int = DEFAULT_WORKERS, clean: bool = True):
        self.site = site
        self.workers = max(1, workers)
        self.clean = clean

    def run(self) -> BuildStats:
        """
        Configure the site, then build it.

        :return: Statistics, including every page failure.
        :raise ConfigurationError: If the site is not in build mode, or
            configuration fails.
        :raise DataLoadError: If a data file is malformed.
        """
        s_time = time.perf_counter()
        site = self.site
        if not site.mode.is_build:
            raise ConfigurationError(f"Cannot build a site in {site.mode.value} mode.")
        if site.root_path.resolve().is_relative_to(site.build_dir.resolve()):
            raise ConfigurationError("Build directory must not contain the project root.")

        site.setup()
        stats = BuildStats()
        written: set[Path] = set()

        assets = site.assets.scan(site.prebuild_dir)
        pages = site.sitemap.entries()
        stats.pages = len(pages)
        stats.assets = len(assets)
        logger.info("Building %d pages...", len(pages))

        digested = [page for page in pages if page.digest]
        plain = [page for page in pages if not page.digest]
        i, m = 0, len(pages)

        rendered = self._render_digested(digested, stats)
        for page in digested:
            i += 1
            if page.path not in rendered:
                continue
            logger.info("[%d/%d] %s.", i, m, page.path)
            self._collect(page, self._try_write(page, rendered[page.path]), stats, written)

        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            futures = [(page, pool.submit(self.build_page, page)) for page in plain]
            for page, future in futures:
                i += 1
                logger.info("[%d/%d] %s.", i, m, page.path)
                self._collect(page, future, stats, written)

        for asset in assets:
            dest = site.build_dir.joinpath(asset.hashed_path)
            content = site.prebuild_dir.joinpath(asset.original_path).read_bytes()
            reason = write_output(dest, content)
            logger.debug("%s %s.", reason.name.lower(), asset.hashed_path)
            stats.add_stat(reason)
            written.add(dest)

        if self.clean:
            for path in self._remove_stale(written):
                logger.debug("deleted %s.", path.relative_to(site.build_dir))
                stats.add_stat(BuildReason.DELETED)

        for failure in stats.failures:
            logger.error("%s", failure.message)

        stats.time_seconds = time.perf_counter() - s_time
        return stats

    def build_page(self, page: PageEntry) -> tuple[Path, BuildReason]:
        """
        Render one page and write it out.

        A page marked ``digest`` is registered with the asset table and
        written under its hashed name.

        :return: Destination path and what happened to it.
        :raise RenderError: If the page fails to render or write.
        """
        content = self.site.renderer.render_page(page).encode("utf-8")
        if page.digest:
            self.site.assets.register(page.path, content)
        return self.write_page(page, content)

    def write_page(self, page: PageEntry, content: bytes) -> tuple[Path, BuildReason]:
        """
        Write rendered page content, under its hashed name if digested.

        :raise RenderError: If the output cannot be written.
        """
        output_path = page.path
        if page.digest:
            output_path = self.site.assets.hashed_path(page.path) or page.path

        dest = self.site.build_dir.joinpath(output_path)
        try:
            reason = write_output(dest, content)
        except OSError as e:
            raise RenderError(f"cannot write {dest}: {e}", page.template, page.path) from e

        logger.debug("%s %s.", reason.name.lower(), output_path)
        return dest, reason

    def _render_digested(self, pages: list[PageEntry], stats: BuildStats) -> dict[str, bytes]:
        """
        Render and register every digested page, dependencies first.

        A digested page whose ``asset_path`` lookups miss other digested
        pages is rendered again once those are registered, so registration
        order does not affect the output.

        :return: Rendered content of each page that did not fail.
        :raise ConfigurationError: If digested pages reference each other in a cycle.
        """
        assets = self.site.assets
        by_path = {page.path: page for page in pages}
        rendered: dict[str, bytes] = {}
        failed: set[str] = set()
        visiting: list[str] = []

        def render(page: PageEntry) -> tuple[bytes, set[str]]:
            with assets.recording_misses() as misses:
                content = self.site.renderer.render_page(page).encode("utf-8")
            return content, misses

        def visit(page: PageEntry) -> None:
            if page.path in rendered or page.path in failed:
                return
            if page.path in visiting:
                cycle = visiting[visiting.index(page.path):] + [page.path]
                raise ConfigurationError(
                    f"Digested pages reference each other: {' -> '.join(cycle)}."
                )

            visiting.append(page.path)
            try:
                content, misses = render(page)
                waiting = [by_path[path] for path in sorted(misses) if path in by_path]
                if waiting:
                    for dependency in waiting:
                        visit(dependency)
                    content, misses = render(page)

            except RenderError as e:
                logger.debug("Failed to build %s.", page.path)
                stats.failures.append(e)
                failed.add(page.path)
                return

            finally:
                visiting.pop()

            for path in sorted(misses):
                assets.warn_miss(path)
            assets.register(page.path, content)
            rendered[page.path] = content

        for page in pages:
            visit(page)
        return rendered

    def _try_write(self, page: PageEntry, content: bytes) -> Future:
        future: Future = Future()
        try:
            future.set_result(self.write_page(page, content))
        except RenderError as e:
            future.set_exception(e)
        return future

    @staticmethod
    def _collect(page: PageEntry, future: Future, stats: BuildStats, written: set[Path]) -> None:
        try:
            dest, reason = future.result()
        except RenderError as e:
            logger.debug("Failed to build %s.", page.path)
            stats.failures.append(e)
            return

        stats.add_stat(reason)
        written.add(dest)

    def _remove_stale(self, keep: set[Path]) -> Iterable[Path]:
        build_dir = self.site.build_dir
        if not build_dir.is_dir():
            return

        for dir_in, dirs, files in os.walk(build_dir, topdown=False):
            sub_dir = Path(dir_in)
            for file in files:
                file_path = sub_dir.joinpath(file)
                if file_path not in keep:
                    file_path.unlink()
                    yield file_path

            if sub_dir != build_dir and not any(sub_dir.iterdir()):
                sub_dir.rmdir()

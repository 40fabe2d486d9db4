import os, click, logging
from pathlib import Path
from .log import configure_logging
from .site import Site, load_configurator
from .build import BuildEngine, DEFAULT_WORKERS
from .context import Mode
from .exec import ConfigurationError, DataLoadError
from .server import DevServer, run_server
from . import __version__

logger = logging.getLogger(__name__)
cwd = Path(os.getcwd())

directory_option = click.option(
    "--directory",
    default=cwd,
    type=Path,
    help="Use the specified directory, instead of the current directory"
)


def load_site(directory: Path, mode: Mode) -> Site:
    try:
        return Site(directory, mode, configure=load_configurator(directory))
    except ConfigurationError as e:
        raise click.ClickException(e.message) from e


@click.group()
@click.option('--verbose', '-v', is_flag=True, default=False)
@click.version_option(version=__version__)
def cli(verbose: bool) -> None:
    configure_logging(verbose)


@cli.command(help="Build the site.")
@directory_option
@click.option(
    "--workers",
    default=DEFAULT_WORKERS,
    type=click.IntRange(min=1),
    help="Number of pages to render in parallel"
)
@click.option(
    "--clean/--no-clean",
    default=True,
    help="Remove files from the build directory that the build did not produce"
)
def build(directory: Path, workers: int, clean: bool):
    logger.info("Building site at %s.", directory)
    site = load_site(directory, Mode.BUILD)

    try:
        build_stats = BuildEngine(site, workers=workers, clean=clean).run()
    except (ConfigurationError, DataLoadError) as e:
        raise click.ClickException(e.message) from e

    logger.info(build_stats.summary())
    if build_stats.failed:
        raise SystemExit(1)


@cli.command(help="Serve the site, rendering pages on every request.")
@directory_option
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", "-p", default=4567, type=int, help="Port to bind to")
def serve(directory: Path, host: str, port: int):
    site = load_site(directory, Mode.SERVER)

    try:
        server = DevServer(site)
    except (ConfigurationError, DataLoadError) as e:
        raise click.ClickException(e.message) from e

    logger.info("Serving %s on http://%s:%d/", directory, host, port)
    run_server(server, host=host, port=port)


if __name__ == "__main__":
    cli()

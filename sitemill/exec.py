from pathlib import Path


class SitemillError(Exception):
    def __init__(self, message: str, *args):
        self.message = message
        super().__init__(message, *args)


class ConfigurationError(SitemillError):
    """The site was configured incorrectly, or configured too late."""


class DataLoadError(SitemillError):
    """A data file could not be parsed."""

    def __init__(self, message: str, path: Path) -> None:
        self.path = path
        super().__init__(f"{path.name}: {message}")


class RenderError(SitemillError):
    """
    A template could not be rendered.

    :ivar template: Path of the template that failed, relative to the project root.
    :ivar page: Path of the page being rendered when the failure happened, if any.
    """

    def __init__(self, message: str, template: str, page: str | None = None) -> None:
        self.template = template
        self.page = page
        where = f"{template} (page {page})" if page else template
        super().__init__(f"{where}: {message}")

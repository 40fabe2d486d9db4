import logging
from typing import Any, Final, Iterator
from .exec import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_HTTP_PREFIX: Final[str] = "/"


class ConfigStore:
    """
    Site settings, written during configuration and read while rendering.

    ``http_prefix`` defaults to ``"/"`` and ``asset_http_prefix`` follows
    whatever ``http_prefix`` currently is until it is set explicitly. Every
    other key reads as ``None`` until it is set.
    """

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}
        self._frozen = False

    def set(self, key: str, value: Any) -> None:
        if self._frozen:
            raise ConfigurationError(
                f"Cannot set config '{key}' after configuration has finished."
            )
        logger.debug("config %s = %r", key, value)
        self._values[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._values:
            return self._values[key]

        match key:
            case "http_prefix":
                return DEFAULT_HTTP_PREFIX
            case "asset_http_prefix":
                return self.get("http_prefix")

        return default

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __getitem__(self, key: str) -> Any:
        return self.get(key)

    def __getattr__(self, key: str) -> Any:
        if key.startswith("_"):
            raise AttributeError(key)
        return self.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def as_dict(self) -> dict[str, Any]:
        values = {
            "http_prefix": self.get("http_prefix"),
            "asset_http_prefix": self.get("asset_http_prefix"),
        }
        values.update(self._values)
        return values

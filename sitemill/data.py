import json
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Iterator
import yaml
from .context import FileType
from .exec import ConfigurationError, DataLoadError

logger = logging.getLogger(__name__)


def parse_data_file(path: Path) -> Any:
    """
    Parse a JSON or YAML data file.

    :param path: Path to the data file.
    :return: The parsed value.
    :raise DataLoadError: If the file cannot be read or parsed.
    """
    file_type = FileType.from_suffix(path.suffix)
    try:
        text = path.read_text(encoding="utf-8")
        if file_type is FileType.JSON:
            return json.loads(text)
        if file_type is FileType.YAML:
            return yaml.safe_load(text)

    except (OSError, UnicodeDecodeError, ValueError, yaml.YAMLError) as e:
        raise DataLoadError(str(e), path) from e

    raise DataLoadError(f"unsupported data file type '{path.suffix}'", path)


class DataStore(Mapping[str, Any]):
    """
    Read-only project data, grouped in namespaces.

    Namespaces come from files in the data directory (named after the file
    without its extension) and from explicit :meth:`add` calls. Writing a
    namespace replaces it entirely.
    """

    def __init__(self) -> None:
        self._namespaces: dict[str, Any] = {}
        self._frozen = False

    def autoload(self, data_dir: Path) -> list[str]:
        """
        Load every JSON and YAML file directly inside ``data_dir``.

        :param data_dir: Directory to scan; subdirectories are ignored.
        :return: Names of the namespaces loaded.
        :raise DataLoadError: If any file fails to parse.
        """
        if not data_dir.is_dir():
            logger.debug("No data directory at %s.", data_dir)
            return []

        loaded = []
        for path in sorted(data_dir.iterdir()):
            if not path.is_file() or path.suffix.lower() not in FileType.data():
                continue

            self.add(path.stem, parse_data_file(path))
            logger.debug("Loaded data namespace '%s' from %s.", path.stem, path.name)
            loaded.append(path.stem)

        return loaded

    def add(self, namespace: str, value: Any) -> None:
        if self._frozen:
            raise ConfigurationError(
                f"Cannot add data '{namespace}' after configuration has finished."
            )
        if namespace in self._namespaces:
            logger.debug("Replacing data namespace '%s'.", namespace)
        self._namespaces[namespace] = value

    def get(self, namespace: str, *keys: Any) -> Any:
        """
        Look up a namespace, or a value nested inside it.

        ``get("site", "author", "name")`` walks mappings by key and
        sequences by integer index. Missing values read as ``None``.
        """
        value = self._namespaces.get(namespace)
        for key in keys:
            if isinstance(value, Mapping):
                value = value.get(key)
            elif (
                isinstance(value, Sequence)
                and not isinstance(value, str)
                and isinstance(key, int)
                and -len(value) <= key < len(value)
            ):
                value = value[key]
            else:
                return None
        return value

    def freeze(self) -> None:
        self._frozen = True

    def __getitem__(self, namespace: str) -> Any:
        return self._namespaces[namespace]

    def __iter__(self) -> Iterator[str]:
        return iter(self._namespaces)

    def __len__(self) -> int:
        return len(self._namespaces)

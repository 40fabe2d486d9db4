"""Tests for data store."""
from pathlib import Path
from typing import Callable
import pytest
from sitemill import ConfigurationError, DataLoadError, DataStore


class TestDataStoreAutoload:
    """Tests for DataStore.autoload()."""

    def test__json_file__loaded_under_stem(
        self, project: Path, write: Callable[..., Path]
    ) -> None:
        """data/site.json becomes the 'site' namespace."""
        write("data/site.json", '{"title": "Hi"}')
        data = DataStore()

        loaded = data.autoload(project / "data")

        assert loaded == ["site"]
        assert data.get("site", "title") == "Hi"

    def test__yaml_files__loaded(self, project: Path, write: Callable[..., Path]) -> None:
        """Both .yaml and .yml extensions load."""
        write("data/people.yaml", "- name: Ada\n- name: Grace\n")
        write("data/menu.yml", "home: /\n")
        data = DataStore()

        data.autoload(project / "data")

        assert data.get("people", 1, "name") == "Grace"
        assert data.get("menu") == {"home": "/"}

    def test__other_files_and_subdirs__ignored(
        self, project: Path, write: Callable[..., Path]
    ) -> None:
        """Only data files directly inside the directory load."""
        write("data/notes.txt", "ignore me")
        write("data/nested/deep.json", "{}")
        data = DataStore()

        assert data.autoload(project / "data") == []
        assert len(data) == 0

    def test__missing_directory__loads_nothing(self, project: Path) -> None:
        data = DataStore()

        assert data.autoload(project / "data") == []

    def test__malformed_json__raises_data_load_error(
        self, project: Path, write: Callable[..., Path]
    ) -> None:
        """A parse failure names the offending file."""
        write("data/broken.json", "{not json")
        data = DataStore()

        with pytest.raises(DataLoadError, match="broken.json") as exc_info:
            data.autoload(project / "data")

        assert exc_info.value.path.name == "broken.json"

    def test__malformed_yaml__raises_data_load_error(
        self, project: Path, write: Callable[..., Path]
    ) -> None:
        write("data/broken.yaml", "key: [unclosed\n")
        data = DataStore()

        with pytest.raises(DataLoadError, match="broken.yaml"):
            data.autoload(project / "data")


class TestDataStoreAccess:
    """Tests for DataStore.add() and DataStore.get()."""

    def test__add__overwrites_whole_namespace(self) -> None:
        """A later write replaces the namespace, no deep merge."""
        data = DataStore()
        data.add("site", {"title": "Hi", "lang": "en"})
        data.add("site", {"title": "Bye"})

        assert data.get("site") == {"title": "Bye"}
        assert data.get("site", "lang") is None

    def test__add_after_autoload__wins(
        self, project: Path, write: Callable[..., Path]
    ) -> None:
        write("data/site.json", '{"title": "From file"}')
        data = DataStore()
        data.autoload(project / "data")

        data.add("site", {"title": "Explicit"})

        assert data.get("site", "title") == "Explicit"

    def test__missing_lookups__return_none(self) -> None:
        """Missing namespaces and keys never raise."""
        data = DataStore()
        data.add("site", {"title": "Hi", "tags": ["a"]})

        assert data.get("nope") is None
        assert data.get("nope", "title") is None
        assert data.get("site", "title", "deeper") is None
        assert data.get("site", "tags", 5) is None

    def test__mapping_interface__exposes_namespaces(self) -> None:
        data = DataStore()
        data.add("site", {"title": "Hi"})

        assert data["site"]["title"] == "Hi"
        assert list(data) == ["site"]
        assert "site" in data

    def test__frozen__add_raises(self) -> None:
        data = DataStore()
        data.freeze()

        with pytest.raises(ConfigurationError):
            data.add("site", {})

"""Tests for the build engine."""
import hashlib
from pathlib import Path
from typing import Callable
import pytest
from sitemill import BuildEngine, ConfigurationError, DataLoadError, Mode, Site
from sitemill.build import write_output
from sitemill.context import BuildReason


def snapshot(directory: Path) -> dict[str, bytes]:
    return {
        path.relative_to(directory).as_posix(): path.read_bytes()
        for path in sorted(directory.rglob("*"))
        if path.is_file()
    }


class TestWriteOutput:
    """Tests for write_output()."""

    def test__reasons__created_unchanged_changed(self, tmp_path: Path) -> None:
        dest = tmp_path / "out" / "a.txt"

        assert write_output(dest, b"one") is BuildReason.CREATED
        assert write_output(dest, b"one") is BuildReason.UNCHANGED
        assert write_output(dest, b"two") is BuildReason.CHANGED
        assert dest.read_bytes() == b"two"


class TestBuildEngine:
    """Tests for BuildEngine.run()."""

    def test__simple_page__written_to_build_dir(
        self, project: Path, make_site: Callable[..., Site], write: Callable[..., Path]
    ) -> None:
        write("index.html.j2", "<h1>Hello</h1>")

        def configure(site: Site) -> None:
            site.add_page("index.html", template="index.html.j2")

        stats = BuildEngine(make_site(configure=configure)).run()

        assert not stats.failed
        assert stats.created == 1
        assert (project / "build" / "index.html").read_text() == "<h1>Hello</h1>"

    def test__layout__output_is_layout_with_body(
        self, project: Path, make_site: Callable[..., Site], write: Callable[..., Path]
    ) -> None:
        write("index.html.j2", "<p>Body</p>")
        write("layout.html.j2", "<html>{{ body }}</html>")

        def configure(site: Site) -> None:
            site.add_page("index.html", template="index.html.j2", layout="layout.html.j2")

        BuildEngine(make_site(configure=configure)).run()

        assert (project / "build" / "index.html").read_text() == "<html><p>Body</p></html>"

    def test__nested_page_path__creates_directories(
        self, project: Path, make_site: Callable[..., Site], write: Callable[..., Path]
    ) -> None:
        write("post.html.j2", "{{ page.slug }}")

        def configure(site: Site) -> None:
            for slug in ["one", "two"]:
                site.add_page(f"blog/{slug}/index.html", template="post.html.j2", slug=slug)

        BuildEngine(make_site(configure=configure), workers=4).run()

        assert (project / "build/blog/one/index.html").read_text() == "one"
        assert (project / "build/blog/two/index.html").read_text() == "two"

    def test__digested_page__written_under_hash_and_resolvable(
        self, project: Path, make_site: Callable[..., Site], write: Callable[..., Path]
    ) -> None:
        write("app.js.j2", "var x=1;")
        write("index.html.j2", '<script src="{{ asset_path("app.js") }}"></script>')

        def configure(site: Site) -> None:
            site.add_page("index.html", template="index.html.j2")
            site.add_page("app.js", template="app.js.j2", digest=True)

        site = make_site(configure=configure)
        BuildEngine(site).run()

        digest = hashlib.sha256(b"var x=1;").hexdigest()[:10]
        hashed = project / "build" / f"app-{digest}.js"
        assert hashed.read_text() == "var x=1;"
        assert not (project / "build" / "app.js").exists()
        assert site.helper("asset_path")("app.js") == f"/app-{digest}.js"
        assert (project / "build" / "index.html").read_text() == (
            f'<script src="/app-{digest}.js"></script>'
        )

    def test__digested_page_links_later_digested_page__hashed_url(
        self, project: Path, make_site: Callable[..., Site], write: Callable[..., Path]
    ) -> None:
        write("main.js.j2", "import '{{ asset_path(\"lib.js\") }}';")
        write("lib.js.j2", "export const x = 1;")

        def configure(site: Site) -> None:
            site.add_page("main.js", template="main.js.j2", digest=True)
            site.add_page("lib.js", template="lib.js.j2", digest=True)

        site = make_site(configure=configure)
        stats = BuildEngine(site).run()

        lib_digest = hashlib.sha256(b"export const x = 1;").hexdigest()[:10]
        main_content = f"import '/lib-{lib_digest}.js';".encode()
        main_digest = hashlib.sha256(main_content).hexdigest()[:10]
        assert not stats.failed
        assert (project / "build" / f"main-{main_digest}.js").read_bytes() == main_content
        assert (project / "build" / f"lib-{lib_digest}.js").is_file()
        assert sorted(p.name for p in (project / "build").iterdir()) == sorted(
            [f"main-{main_digest}.js", f"lib-{lib_digest}.js"]
        )

    def test__digested_pages_link_each_other__configuration_error(
        self, make_site: Callable[..., Site], write: Callable[..., Path]
    ) -> None:
        write("a.js.j2", "{{ asset_path('b.js') }}")
        write("b.js.j2", "{{ asset_path('a.js') }}")

        def configure(site: Site) -> None:
            site.add_page("a.js", template="a.js.j2", digest=True)
            site.add_page("b.js", template="b.js.j2", digest=True)

        with pytest.raises(ConfigurationError, match="reference each other: a.js -> b.js -> a.js"):
            BuildEngine(make_site(configure=configure)).run()

    def test__digested_page_links_itself__configuration_error(
        self, make_site: Callable[..., Site], write: Callable[..., Path]
    ) -> None:
        write("a.js.j2", "{{ asset_path('a.js') }}")

        def configure(site: Site) -> None:
            site.add_page("a.js", template="a.js.j2", digest=True)

        with pytest.raises(ConfigurationError, match="reference each other"):
            BuildEngine(make_site(configure=configure)).run()

    def test__prebuild_assets__copied_under_hashed_names(
        self, project: Path, make_site: Callable[..., Site], write: Callable[..., Path]
    ) -> None:
        write("prebuild/css/site.css", "body{}")
        write("index.html.j2", '<link href="{{ asset_path("css", "site.css") }}">')

        def configure(site: Site) -> None:
            site.set("http_prefix", "/site")
            site.add_page("index.html", template="index.html.j2")

        BuildEngine(make_site(configure=configure)).run()

        digest = hashlib.sha256(b"body{}").hexdigest()[:10]
        assert (project / "build" / "css" / f"site-{digest}.css").read_bytes() == b"body{}"
        assert (project / "build" / "index.html").read_text() == (
            f'<link href="/site/css/site-{digest}.css">'
        )

    def test__broken_page__collected_and_others_built(
        self, project: Path, make_site: Callable[..., Site], write: Callable[..., Path]
    ) -> None:
        write("good.html.j2", "good")
        write("bad.html.j2", "{{ missing }}")

        def configure(site: Site) -> None:
            site.add_page("bad.html", template="bad.html.j2")
            site.add_page("broken.html", template="nope.html.j2")
            site.add_page("good.html", template="good.html.j2")

        stats = BuildEngine(make_site(configure=configure)).run()

        assert stats.failed
        assert stats.errors == 2
        assert {failure.page for failure in stats.failures} == {"bad.html", "broken.html"}
        assert (project / "build" / "good.html").read_text() == "good"
        assert "Build finished with errors." in stats.summary()

    def test__second_build__byte_identical(
        self, project: Path, make_site: Callable[..., Site], write: Callable[..., Path]
    ) -> None:
        write("prebuild/img/logo.svg", "<svg/>")
        write("data/site.yaml", "title: Hi\n")
        write("app.js.j2", "var title = '{{ data.site.title }}';")
        write("index.html.j2", "{{ data.site.title }} {{ asset_path('app.js') }}")

        def configure(site: Site) -> None:
            site.add_page("index.html", template="index.html.j2")
            site.add_page("app.js", template="app.js.j2", digest=True)

        BuildEngine(make_site(configure=configure)).run()
        first = snapshot(project / "build")

        stats = BuildEngine(make_site(configure=configure)).run()
        second = snapshot(project / "build")

        assert first == second
        assert stats.unchanged == 3
        assert stats.created == stats.changed == stats.deleted == 0

    def test__clean__removes_stale_output(
        self, project: Path, make_site: Callable[..., Site], write: Callable[..., Path]
    ) -> None:
        write("page.html.j2", "page")
        write("build/old/stale.html", "stale")

        def configure(site: Site) -> None:
            site.add_page("page.html", template="page.html.j2")

        stats = BuildEngine(make_site(configure=configure)).run()

        assert stats.deleted == 1
        assert not (project / "build" / "old").exists()
        assert (project / "build" / "page.html").exists()

    def test__no_clean__keeps_stale_output(
        self, project: Path, make_site: Callable[..., Site], write: Callable[..., Path]
    ) -> None:
        write("build/stale.html", "stale")

        BuildEngine(make_site(), clean=False).run()

        assert (project / "build" / "stale.html").exists()

    def test__server_mode_site__rejected(self, make_site: Callable[..., Site]) -> None:
        with pytest.raises(ConfigurationError, match="server mode"):
            BuildEngine(make_site(Mode.SERVER)).run()

    def test__missing_template_attribute__aborts_before_rendering(
        self, project: Path, make_site: Callable[..., Site]
    ) -> None:
        def configure(site: Site) -> None:
            site.add_page("index.html", title="No template")

        with pytest.raises(ConfigurationError):
            BuildEngine(make_site(configure=configure)).run()

        assert not (project / "build").exists()

    def test__malformed_data__aborts_before_configuration(
        self, make_site: Callable[..., Site], write: Callable[..., Path]
    ) -> None:
        write("data/site.json", "{")
        calls = []

        with pytest.raises(DataLoadError):
            BuildEngine(make_site(configure=calls.append)).run()

        assert calls == []

"""Tests for relsmith.release.model module."""

from dataclasses import replace
from pathlib import Path

from relsmith.release.component import Component, StartType
from relsmith.release.model import Release
from relsmith.release.profile import Profile


def _release(**profile: object) -> Release:
    release = Release.new("shop", "0.2.0", ("logger",), build_dir=Path("/b"))
    return release.with_profile(replace(release.profile, **profile))  # type: ignore[arg-type]


class TestPaths:
    def test_derived_from_output_dir(self) -> None:
        r = _release()
        assert r.output_dir == Path("/b/rel/shop")
        assert r.bin_path == Path("/b/rel/shop/bin")
        assert r.lib_path == Path("/b/rel/shop/lib")
        assert r.version_path == Path("/b/rel/shop/releases/0.2.0")
        assert r.descriptor_path == Path("/b/rel/shop/releases/0.2.0/shop.rel")
        assert r.release_path("0.1.0") == Path("/b/rel/shop/releases/0.1.0")
        assert r.component_lib_path("logger", "1.0") == Path("/b/rel/shop/lib/logger-1.0")

    def test_paths_follow_profile(self) -> None:
        r = _release(output_dir=Path("/elsewhere"))
        assert r.lib_path == Path("/elsewhere/lib")

    def test_archive_path(self) -> None:
        assert _release().archive_path == Path("/b/rel/shop/releases/0.2.0/shop.tar.gz")
        assert _release(executable=True).archive_path == Path("/b/rel/shop/bin/shop.run")

    def test_upgrade_flags(self) -> None:
        r = _release(is_upgrade=True, upgrade_from="0.1.0")
        assert r.is_upgrade
        assert r.upgrade_from == "0.1.0"


def _components() -> tuple[Component, ...]:
    return (
        Component(name="kernel", version="9.0", path=Path("/sys/kernel-9.0")),
        Component(name="runtime", version="14.1", path=Path("/sys/runtime-14.1")),
        Component(
            name="shop",
            version="0.2.0",
            path=Path("/src/shop"),
            start_type=StartType.PERMANENT,
        ),
        Component(name="tools", version="1.0", path=Path("/src/tools"), start_type=StartType.LOAD),
    )


def test_to_descriptor() -> None:
    r = _release(runtime_version="14.1").with_components(_components())
    d = r.to_descriptor()
    assert (d.name, d.version, d.runtime_version) == ("shop", "0.2.0", "14.1")
    assert d.name_versions() == [
        ("kernel", "9.0"),
        ("runtime", "14.1"),
        ("shop", "0.2.0"),
        ("tools", "1.0"),
    ]
    assert d.entries[2].start_type is StartType.PERMANENT


def test_clean_start_demotes_non_core() -> None:
    r = _release().with_components(_components()).clean_start()
    types = {c.name: c.start_type for c in r.components}
    assert types["kernel"] is None
    assert types["runtime"] is None
    assert types["shop"] is StartType.LOAD
    assert types["tools"] is StartType.LOAD


def test_code_paths_staged_first() -> None:
    r = _release().with_components(_components()[2:3])
    assert r.code_paths() == [
        Path("/b/rel/shop/lib/shop-0.2.0/modules"),
        Path("/src/shop/modules"),
    ]


def test_default_profile() -> None:
    assert Release(name="x", version="1").profile == Profile()

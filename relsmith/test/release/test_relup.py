"""Tests for relsmith.release.relup module."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from pathlib import Path

import pytest

from relsmith.core.result import Err, Ok
from relsmith.output.console import MockConsole
from relsmith.output.reporter import Reporter
from relsmith.platform.files import read_json
from relsmith.release.descriptor import DescriptorEntry, ReleaseDescriptor, write_descriptor
from relsmith.release.diff import VersionDiff
from relsmith.release.linker import LinkOutcome, Relup, RelupRequest, parse_relup
from relsmith.release.model import Release
from relsmith.release.relup import compose_relup, upgrade_search_paths
from relsmith.release.synthesizer import AppupState

type MakeComponent = Callable[..., Path]


class FakeGenerator:
    def __init__(self, outcome: LinkOutcome[Relup] | None = None) -> None:
        self.outcome = outcome
        self.requests: list[RelupRequest] = []

    def generate(self, request: RelupRequest) -> LinkOutcome[Relup]:
        self.requests.append(request)
        if self.outcome is not None:
            return self.outcome
        return LinkOutcome.of(Relup(version=request.new.version, up=(), down=()))


def _write_rel(release: Release, version: str, entries: dict[str, str]) -> None:
    descriptor = ReleaseDescriptor(
        name=release.name,
        version=version,
        runtime_version="14.1",
        entries=tuple(DescriptorEntry(n, v) for n, v in entries.items()),
    )
    written = write_descriptor(release.release_path(version) / "shop.rel", descriptor)
    assert isinstance(written, Ok)


@pytest.fixture
def release(tmp_path: Path, make_component: MakeComponent) -> Release:
    """An upgrade 0.1.0 -> 0.2.0 with both builds already in lib/."""
    base = Release.new("shop", "0.2.0", build_dir=tmp_path / "_build")
    release = base.with_profile(replace(base.profile, is_upgrade=True, upgrade_from="0.1.0"))
    lib = release.lib_path
    make_component("kernel", "9.0", root=lib)
    make_component("shop", "0.1.0", root=lib, modules={"shop": "a", "shop_cart": "a"})
    make_component("shop", "0.2.0", root=lib, modules={"shop": "a", "shop_cart": "b"})
    make_component("metrics", "0.1", root=lib)
    _write_rel(release, "0.1.0", {"kernel": "9.0", "shop": "0.1.0"})
    _write_rel(release, "0.2.0", {"kernel": "9.0", "metrics": "0.1", "shop": "0.2.0"})
    return release


def test_search_paths_order(tmp_path: Path) -> None:
    diff = VersionDiff(
        added=(("metrics", "0.1"),),
        changed=(("shop", "0.1.0", "0.2.0"),),
        removed=(("legacy", "1.0"),),
        unaffected=(("kernel", "9.0"),),
    )
    dirs = [p.parent.name for p in upgrade_search_paths(diff, tmp_path)]
    assert dirs[::2] == ["metrics-0.1", "shop-0.2.0", "shop-0.1.0", "legacy-1.0", "kernel-9.0"]
    assert dirs[::2] == dirs[1::2]


class TestComposeRelup:
    def test_writes_relup_and_appups(self, release: Release) -> None:
        generator = FakeGenerator()
        result = compose_relup(release, reporter=Reporter.silent(), generator=generator)
        assert isinstance(result, Ok)
        assert result.value.path == release.version_path / "relup"
        assert result.value.diff.added == (("metrics", "0.1"),)
        (outcome,) = result.value.appups
        assert outcome.name == "shop"
        assert outcome.state is AppupState.GENERATED
        assert outcome.path.is_file()

        raw = read_json(result.value.path)
        assert isinstance(raw, Ok)
        assert parse_relup(raw.value) == result.value.relup

        (request,) = generator.requests
        assert request.old.version == "0.1.0"
        assert [a.name for a in request.appups] == ["shop"]

    def test_default_generator(self, release: Release) -> None:
        result = compose_relup(release, reporter=Reporter.silent())
        assert isinstance(result, Ok)
        (up,) = result.value.relup.up
        assert up.version == "0.1.0"
        assert [d.op for d in up.instructions] == ["load_module", "add_application"]

    def test_warnings_are_reported(self, release: Release) -> None:
        console = MockConsole()
        relup = Relup(version="0.2.0", up=(), down=())
        generator = FakeGenerator(LinkOutcome.of(relup, ["module x not found"]))
        result = compose_relup(release, reporter=Reporter(console=console), generator=generator)
        assert isinstance(result, Ok)
        assert console.find("    module x not found")

    def test_generator_error(self, release: Release) -> None:
        generator = FakeGenerator(LinkOutcome.failed(["no route", "no plan"]))
        result = compose_relup(release, reporter=Reporter.silent(), generator=generator)
        assert isinstance(result, Err)
        assert result.error.kind == "relup_failed"
        assert result.error.message.endswith(":\n    no route\n    no plan")
        assert not (release.version_path / "relup").exists()

    def test_requires_upgrade_source(self, release: Release) -> None:
        plain = release.with_profile(replace(release.profile, is_upgrade=False))
        result = compose_relup(plain, reporter=Reporter.silent())
        assert isinstance(result, Err)
        assert result.error.kind == "bad_upgrade_spec"

    def test_missing_old_descriptor(self, release: Release) -> None:
        (release.release_path("0.1.0") / "shop.rel").unlink()
        result = compose_relup(release, reporter=Reporter.silent(), generator=FakeGenerator())
        assert isinstance(result, Err)
        assert result.error.kind == "missing_descriptor"

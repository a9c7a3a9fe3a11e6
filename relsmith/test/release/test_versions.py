"""Tests for relsmith.release.versions module."""

from pathlib import Path

from relsmith.release.versions import (
    list_release_versions,
    newest,
    parse_semver,
    sort_versions,
    split_versioned_name,
)


class TestParseSemver:
    def test_full(self) -> None:
        v = parse_semver("1.2.3")
        assert v is not None
        assert (v.major, v.minor, v.patch) == (1, 2, 3)

    def test_prefix_and_missing_patch(self) -> None:
        v = parse_semver("v2.5")
        assert v is not None
        assert str(v) == "2.5.0"

    def test_build_metadata_ignored(self) -> None:
        assert parse_semver("1.0.0+abc") == parse_semver("1.0.0")

    def test_not_semver(self) -> None:
        assert parse_semver("nightly") is None
        assert parse_semver("1") is None


class TestOrdering:
    def test_numeric_not_lexical(self) -> None:
        assert sort_versions(["0.10.0", "0.2.0", "0.9.1"]) == ["0.2.0", "0.9.1", "0.10.0"]

    def test_prerelease_below_release(self) -> None:
        assert sort_versions(["1.0.0", "1.0.0-rc.1", "1.0.0-alpha"]) == [
            "1.0.0-alpha",
            "1.0.0-rc.1",
            "1.0.0",
        ]

    def test_non_semver_sorts_first(self) -> None:
        assert sort_versions(["0.1.0", "zeta", "alpha"]) == ["alpha", "zeta", "0.1.0"]

    def test_newest(self) -> None:
        assert newest(["0.1.0", "0.3.0", "0.2.0"]) == "0.3.0"
        assert newest([]) is None


def test_list_release_versions(tmp_path: Path) -> None:
    releases = tmp_path / "releases"
    for v in ("0.1.0", "0.10.0", "0.2.0"):
        (releases / v).mkdir(parents=True)
    (releases / "start.data").write_text("x", encoding="utf-8")
    assert list_release_versions(tmp_path) == ["0.10.0", "0.2.0", "0.1.0"]
    assert list_release_versions(tmp_path / "nowhere") == []


def test_split_versioned_name() -> None:
    assert split_versioned_name("logger-1.2.0") == ("logger", "1.2.0")
    assert split_versioned_name("my-app-0.1.0") == ("my-app", "0.1.0")
    assert split_versioned_name("logger") is None
    assert split_versioned_name("-1.0") is None

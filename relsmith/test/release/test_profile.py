"""Tests for relsmith.release.profile module."""

from dataclasses import fields
from pathlib import Path

from relsmith.core.result import Err, Ok
from relsmith.release.profile import (
    LATEST,
    Cookie,
    KernelProcess,
    Profile,
    ProfileOverride,
    merge_profile,
    normalize_cookie,
)


class TestMergeProfile:
    def test_unset_override_keeps_everything(self) -> None:
        base = Profile(output_dir=Path("out"), config_providers=("a:B",), dev_mode=True)
        assert merge_profile(base, ProfileOverride()) == base

    def test_empty_list_keeps_base(self) -> None:
        base = Profile(config_providers=("a:B",), kernel_processes=(KernelProcess("x", "m"),))
        merged = merge_profile(base, ProfileOverride(config_providers=(), kernel_processes=()))
        assert merged.config_providers == ("a:B",)
        assert merged.kernel_processes == (KernelProcess("x", "m"),)

    def test_values_replace(self) -> None:
        base = Profile(include_runtime=True, dev_mode=False, config_providers=("a:B",))
        merged = merge_profile(
            base,
            ProfileOverride(include_runtime=False, dev_mode=True, config_providers=("c:D",)),
        )
        assert merged.include_runtime is False
        assert merged.dev_mode is True
        assert merged.config_providers == ("c:D",)

    def test_false_is_a_value(self) -> None:
        merged = merge_profile(Profile(include_source=True), ProfileOverride(include_source=False))
        assert merged.include_source is False

    def test_override_mirrors_profile_fields(self) -> None:
        assert {f.name for f in fields(ProfileOverride)} == {f.name for f in fields(Profile)}


class TestCookie:
    def test_string_is_normalized(self) -> None:
        assert normalize_cookie("s3cret") == Ok(Cookie("s3cret"))

    def test_any_string_is_accepted_verbatim(self) -> None:
        assert normalize_cookie("") == Ok(Cookie(""))
        assert normalize_cookie(" x ") == Ok(Cookie(" x "))

    def test_cookie_and_none_pass_through(self) -> None:
        assert normalize_cookie(Cookie("x")) == Ok(Cookie("x"))
        assert normalize_cookie(None) == Ok(None)

    def test_invalid(self) -> None:
        for value in (42, b"s3cret", ["a"]):
            result = normalize_cookie(value)
            assert isinstance(result, Err)
            assert result.error.kind == "invalid_cookie"


def test_latest_marker() -> None:
    assert str(LATEST) == "latest"
    assert Profile().upgrade_from is LATEST

"""Tests for relsmith.core.config module."""

from pathlib import Path

from relsmith.core.config import parse_toml
from relsmith.core.result import Err, Ok


def test_parse_toml_ok(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text('[project]\ndefault_release = "shop"\n', encoding="utf-8")
    result = parse_toml(path)
    assert isinstance(result, Ok)
    assert result.value == {"project": {"default_release": "shop"}}


def test_parse_toml_missing_file(tmp_path: Path) -> None:
    result = parse_toml(tmp_path / "nope.toml")
    assert isinstance(result, Err)
    assert "not found" in result.error.message
    assert result.error.path == tmp_path / "nope.toml"


def test_parse_toml_invalid_syntax(tmp_path: Path) -> None:
    path = tmp_path / "bad.toml"
    path.write_text("[project\n", encoding="utf-8")
    result = parse_toml(path)
    assert isinstance(result, Err)
    assert "Invalid TOML" in result.error.message

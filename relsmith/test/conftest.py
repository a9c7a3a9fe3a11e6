"""Shared fixtures: on-disk component builds."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from pathlib import Path

import pytest

type MakeComponent = Callable[..., Path]


def write_component(
    root: Path,
    name: str,
    version: str,
    *,
    applications: Mapping[str, str] | None = None,
    included: Sequence[str] = (),
    start_type: str | None = None,
    modules: Mapping[str, str] | None = None,
) -> Path:
    """Write ``<root>/<name>-<version>`` with a manifest and a module table."""
    path = root / f"{name}-{version}"
    (path / "modules").mkdir(parents=True, exist_ok=True)

    lines = ["[component]", f'name = "{name}"', f'version = "{version}"']
    if start_type is not None:
        lines.append(f'start_type = "{start_type}"')
    if included:
        lines.append("included = [" + ", ".join(f'"{i}"' for i in included) + "]")
    lines.append("")
    lines.append("[component.applications]")
    for dep, st in (applications or {}).items():
        lines.append(f'{dep} = "{st}"')
    (path / "component.toml").write_text("\n".join(lines) + "\n", encoding="utf-8")

    for module, body in (modules if modules is not None else {name: version}).items():
        (path / "modules" / f"{module}.mod").write_text(body, encoding="utf-8")
    return path


@pytest.fixture
def make_component(tmp_path: Path) -> MakeComponent:
    """Factory writing component builds under ``root`` (default ``tmp_path/src``)."""

    def make(name: str, version: str, *, root: Path | None = None, **kwargs: object) -> Path:
        target = root or tmp_path / "src"
        return write_component(target, name, version, **kwargs)  # type: ignore[arg-type]

    return make

"""Version ordering.

Component and release versions are plain strings. Strings that parse as
semantic versions compare numerically (a pre-release sorts below its release);
anything else compares lexically and sorts below every semantic version.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

_SEMVER_RE = re.compile(
    r"^v?(0|[1-9]\d*)\.(0|[1-9]\d*)(?:\.(0|[1-9]\d*))?(?:-([0-9A-Za-z.-]+))?(?:\+[0-9A-Za-z.-]+)?$"
)


@dataclass(frozen=True, slots=True, order=True)
class SemVer:
    major: int
    minor: int
    patch: int
    # (1,) for releases so they sort above any pre-release tuple (0, ...)
    pre: tuple[tuple[int, int | str], ...] = ((1, 0),)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def _pre_key(pre: str | None) -> tuple[tuple[int, int | str], ...]:
    if pre is None:
        return ((1, 0),)
    parts: list[tuple[int, int | str]] = [(0, 0)]
    for ident in pre.split("."):
        # numeric identifiers sort below alphanumeric ones
        parts.append((0, int(ident)) if ident.isdigit() else (1, ident))
    return tuple(parts)


def parse_semver(version: str) -> SemVer | None:
    m = _SEMVER_RE.match(version.strip())
    if m is None:
        return None
    return SemVer(
        int(m.group(1)),
        int(m.group(2)),
        int(m.group(3) or 0),
        _pre_key(m.group(4)),
    )


def version_key(version: str) -> tuple[int, SemVer | None, str]:
    """Sort key implementing the ordering described in the module docstring."""
    parsed = parse_semver(version)
    if parsed is None:
        return (0, None, version)
    return (1, parsed, version)


def sort_versions(versions: list[str], *, descending: bool = False) -> list[str]:
    return sorted(versions, key=version_key, reverse=descending)


def newest(versions: list[str]) -> str | None:
    if not versions:
        return None
    return sort_versions(versions, descending=True)[0]


def list_release_versions(output_dir: Path) -> list[str]:
    """List the release versions present in ``<output_dir>/releases``, newest first.

    Only directories count; files such as ``start.data`` are skipped.
    """
    releases_dir = output_dir / "releases"
    if not releases_dir.is_dir():
        return []
    found = [p.name for p in releases_dir.iterdir() if p.is_dir() and not p.name.startswith(".")]
    return sort_versions(found, descending=True)


def split_versioned_name(dirname: str) -> tuple[str, str] | None:
    """Split ``<name>-<version>`` at the last dash.

    Returns None when there is no dash or either side is empty.
    """
    name, sep, version = dirname.rpartition("-")
    if not sep or not name or not version:
        return None
    return (name, version)

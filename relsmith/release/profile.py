"""Release profile and environment overrides.

A ``Profile`` is the merged build configuration of one release. Environments
carry a ``ProfileOverride`` where every field is optional; merging keeps the
base value for unset (``None``) or empty overrides and replaces it otherwise.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from relsmith.core.errors import AssemblyError
from relsmith.core.result import Err, Ok, Result

if TYPE_CHECKING:
    from .appup import AppupTransform


class Latest(Enum):
    """Marker for "upgrade from the newest release found on disk"."""

    LATEST = "latest"

    def __str__(self) -> str:
        return self.value


LATEST = Latest.LATEST

type UpgradeSource = str | Latest
type IncludeRuntime = bool | Path
type TransformRef = str | AppupTransform


@dataclass(frozen=True, slots=True)
class Cookie:
    """Normalized secret cookie shared by nodes of a release."""

    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class KernelProcess:
    """A process started by the kernel during boot, before the component controller."""

    name: str
    module: str
    function: str = "start"
    args: tuple[str, ...] = ()


PIDFILE_PROCESS = KernelProcess(name="pidfile", module="relsmith.runtime.pidfile")


@dataclass(frozen=True, slots=True)
class Profile:
    output_dir: Path = Path("_build/rel")
    include_runtime: IncludeRuntime = True
    include_source: bool = False
    include_system_libs: bool = True
    runtime_version: str | None = None
    dev_mode: bool = False
    executable: bool = False
    # str until normalized by apply_configuration
    cookie: Cookie | str | None = None
    config_providers: tuple[str, ...] = ()
    overlays: tuple[tuple[str, ...], ...] = ()
    appup_transforms: tuple[TransformRef, ...] = ()
    appups_dir: Path | None = None
    kernel_processes: tuple[KernelProcess, ...] = (PIDFILE_PROCESS,)
    runtime_component: str = "runtime"
    is_upgrade: bool = False
    upgrade_from: UpgradeSource | None = LATEST
    jobs: int = 4


@dataclass(frozen=True, slots=True)
class ProfileOverride:
    """Per-environment overrides. ``None`` means "keep the release's value"."""

    output_dir: Path | None = None
    include_runtime: IncludeRuntime | None = None
    include_source: bool | None = None
    include_system_libs: bool | None = None
    runtime_version: str | None = None
    dev_mode: bool | None = None
    executable: bool | None = None
    cookie: Cookie | str | None = None
    config_providers: tuple[str, ...] | None = None
    overlays: tuple[tuple[str, ...], ...] | None = None
    appup_transforms: tuple[TransformRef, ...] | None = None
    appups_dir: Path | None = None
    kernel_processes: tuple[KernelProcess, ...] | None = None
    runtime_component: str | None = None
    is_upgrade: bool | None = None
    upgrade_from: UpgradeSource | None = None
    jobs: int | None = None


def _is_empty(value: object) -> bool:
    if value is None:
        return True
    return isinstance(value, (tuple, list)) and len(value) == 0


def merge_profile(base: Profile, override: ProfileOverride) -> Profile:
    """Last-write-wins merge of an environment override over a base profile."""
    changes: dict[str, object] = {}
    for f in fields(override):
        value = getattr(override, f.name)
        if _is_empty(value):
            continue
        changes[f.name] = value
    return replace(base, **changes)


def normalize_cookie(value: object) -> Result[Cookie | None, AssemblyError]:
    """Normalize a configured cookie to a Cookie.

    Any string is taken verbatim, Cookie values and None pass through, anything
    else is an invalid_cookie error.
    """
    match value:
        case None:
            return Ok(None)
        case Cookie():
            return Ok(value)
        case str():
            return Ok(Cookie(value))
        case _:
            return Err(
                AssemblyError(
                    kind="invalid_cookie",
                    message=f"invalid cookie: {value!r}",
                    hint="cookie must be a string",
                )
            )

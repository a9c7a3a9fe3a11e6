"""Component model and the index of installed components.

A component is one named, versioned application unit. Its artifact directory
holds a ``component.toml`` manifest and a ``modules/`` directory with the
compiled modules:

    logger-1.2.0/
        component.toml
        modules/
            logger.mod
            logger_backend.mod

Manifest format:

    [component]
    name = "logger"
    version = "1.2.0"
    start_type = "permanent"        # optional
    included = ["logger_formats"]   # optional, loaded but not started

    [component.applications]        # dependencies, value "" means default start
    kernel = ""
    crypto = "load"
"""

from __future__ import annotations

import tomllib
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from types import MappingProxyType

from relsmith.core.errors import AssemblyError
from relsmith.core.result import Err, Ok, Result
from relsmith.core.structured import as_str_dict, get_str, get_str_tuple, get_table

from .versions import version_key

MANIFEST_NAME = "component.toml"
MODULES_DIR = "modules"


class StartType(StrEnum):
    PERMANENT = "permanent"
    TRANSIENT = "transient"
    TEMPORARY = "temporary"
    LOAD = "load"
    NONE = "none"


def parse_start_type(value: object) -> StartType | None:
    """Return the StartType for value, or None when it is not a start type."""
    if isinstance(value, StartType):
        return value
    if isinstance(value, str):
        try:
            return StartType(value)
        except ValueError:
            return None
    return None


def _empty_deps() -> Mapping[str, StartType | None]:
    return MappingProxyType({})


@dataclass(frozen=True, slots=True)
class Component:
    name: str
    version: str
    path: Path
    applications: Mapping[str, StartType | None] = field(default_factory=_empty_deps)
    included: tuple[str, ...] = ()
    start_type: StartType | None = None

    @property
    def versioned_name(self) -> str:
        return f"{self.name}-{self.version}"

    @property
    def modules_path(self) -> Path:
        return self.path / MODULES_DIR

    def edges(self) -> tuple[tuple[str, StartType | None], ...]:
        """Outgoing edges: dependencies first, then included components.

        Included components are only loaded, so they get ``load`` unless the
        dependency map already names them.
        """
        deps = tuple(self.applications.items())
        extra = tuple(
            (name, StartType.LOAD) for name in self.included if name not in self.applications
        )
        return deps + extra

    def with_start_type(self, start_type: StartType | None) -> Component:
        return Component(
            name=self.name,
            version=self.version,
            path=self.path,
            applications=self.applications,
            included=self.included,
            start_type=start_type,
        )

    def relocated(self, path: Path, version: str) -> Component:
        return Component(
            name=self.name,
            version=version,
            path=path,
            applications=self.applications,
            included=self.included,
            start_type=self.start_type,
        )


def _manifest_error(path: Path, message: str) -> AssemblyError:
    return AssemblyError(kind="malformed_descriptor", message=message, path=path)


def read_manifest(component_dir: Path) -> Result[Component, AssemblyError]:
    """Read ``component.toml`` from a component artifact directory."""
    path = component_dir / MANIFEST_NAME
    try:
        data_obj: object = tomllib.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        return Err(_manifest_error(path, f"cannot read component manifest: {e}"))
    except tomllib.TOMLDecodeError as e:
        return Err(_manifest_error(path, f"invalid TOML in component manifest: {e}"))

    data = as_str_dict(data_obj) or {}
    table = get_table(data, "component")
    if table is None:
        return Err(_manifest_error(path, "missing [component] table"))

    name = get_str(table, "name")
    version = get_str(table, "version")
    if name is None or version is None:
        return Err(_manifest_error(path, "component name and version are required"))

    raw_start = table.get("start_type")
    start_type = parse_start_type(raw_start)
    if raw_start is not None and start_type is None:
        return Err(
            AssemblyError(
                kind="invalid_start_type",
                message=f"invalid start type for {name}: {raw_start!r}",
                path=path,
            )
        )

    applications: dict[str, StartType | None] = {}
    for dep, raw in (get_table(table, "applications") or {}).items():
        dep_start = parse_start_type(raw)
        if raw not in ("", None) and dep_start is None:
            return Err(
                AssemblyError(
                    kind="invalid_start_type",
                    message=f"invalid start type for dependency {dep} of {name}: {raw!r}",
                    path=path,
                )
            )
        applications[dep] = dep_start

    return Ok(
        Component(
            name=name,
            version=version,
            path=component_dir,
            applications=MappingProxyType(applications),
            included=get_str_tuple(table, "included") or (),
            start_type=start_type,
        )
    )


@dataclass(frozen=True, slots=True)
class ComponentIndex:
    """Installed components keyed by name, then version."""

    entries: Mapping[str, Mapping[str, Component]]

    @classmethod
    def of(cls, components: Iterable[Component]) -> ComponentIndex:
        table: dict[str, dict[str, Component]] = {}
        for c in components:
            table.setdefault(c.name, {})[c.version] = c
        return cls(entries=MappingProxyType({k: MappingProxyType(v) for k, v in table.items()}))

    @classmethod
    def scan(cls, lib_dirs: Iterable[Path]) -> Result[ComponentIndex, AssemblyError]:
        """Build an index from every ``*/component.toml`` under the given directories.

        Directories that do not exist are skipped.
        """
        found: list[Component] = []
        for lib_dir in lib_dirs:
            if not lib_dir.is_dir():
                continue
            for manifest in sorted(lib_dir.glob(f"*/{MANIFEST_NAME}")):
                result = read_manifest(manifest.parent)
                if isinstance(result, Err):
                    return result
                found.append(result.value)
        return Ok(cls.of(found))

    def names(self) -> list[str]:
        return sorted(self.entries)

    def versions(self, name: str) -> list[str]:
        return sorted(self.entries.get(name, {}), key=version_key)

    def get(self, name: str, version: str | None = None) -> Component | None:
        """Return the requested version, or the newest installed one."""
        by_version = self.entries.get(name)
        if not by_version:
            return None
        if version is not None:
            return by_version.get(version)
        return by_version[self.versions(name)[-1]]

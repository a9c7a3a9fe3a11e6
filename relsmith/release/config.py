"""Project configuration (``rel/config.toml``).

Example:

    [project]
    default_release = "shop"
    default_environment = "prod"
    lib_dirs = ["_build/lib"]

    [runtime]
    version = "14.1"
    lib_dir = "/usr/lib/runtime/lib"

    [release.shop]
    version = "0.2.0"
    components = ["logger", {name = "tools", start_type = "load"}]

    [release.shop.profile]
    config_providers = ["shop.config:TomlProvider"]

    [environment.prod]
    include_runtime = true
    cookie = "s3cret"

    [environment.dev]
    dev_mode = true
    include_runtime = false
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType

from relsmith.core.config import ConfigError, parse_toml
from relsmith.core.result import Err, Ok, Result
from relsmith.core.structured import (
    StrDict,
    as_obj_list,
    as_str_dict,
    get_bool,
    get_int,
    get_list,
    get_str,
    get_str_tuple,
    get_table,
)

from .model import ComponentRequest, Release
from .profile import LATEST, KernelProcess, ProfileOverride, UpgradeSource, merge_profile


DEFAULT_RUNTIME_VERSION = "0.0.0"
DEFAULT_RUNTIME_LIB_DIR = Path("/usr/lib/runtime/lib")


@dataclass(frozen=True, slots=True)
class HostRuntime:
    """The runtime installed on the build host."""

    version: str = DEFAULT_RUNTIME_VERSION
    lib_dir: Path = DEFAULT_RUNTIME_LIB_DIR


@dataclass(frozen=True, slots=True)
class EnvironmentDef:
    name: str
    profile: ProfileOverride = ProfileOverride()


def _empty_releases() -> Mapping[str, Release]:
    return MappingProxyType({})


def _empty_environments() -> Mapping[str, EnvironmentDef]:
    return MappingProxyType({})


@dataclass(frozen=True, slots=True)
class ProjectConfig:
    root: Path = Path(".")
    releases: Mapping[str, Release] = field(default_factory=_empty_releases)
    environments: Mapping[str, EnvironmentDef] = field(default_factory=_empty_environments)
    default_release: str | None = None
    default_environment: str | None = None
    lib_dirs: tuple[Path, ...] = ()
    runtime: HostRuntime = HostRuntime()
    # build request
    selected_release: str | None = None
    selected_environment: str | None = None
    is_upgrade: bool = False
    upgrade_from: UpgradeSource | None = None

    def select(
        self,
        *,
        release: str | None = None,
        environment: str | None = None,
        is_upgrade: bool | None = None,
        upgrade_from: UpgradeSource | None = None,
    ) -> ProjectConfig:
        """Return a copy with the build request applied; None keeps the current value."""
        return replace(
            self,
            selected_release=release if release is not None else self.selected_release,
            selected_environment=(
                environment if environment is not None else self.selected_environment
            ),
            is_upgrade=is_upgrade if is_upgrade is not None else self.is_upgrade,
            upgrade_from=upgrade_from if upgrade_from is not None else self.upgrade_from,
        )


def parse_upgrade_source(value: str) -> UpgradeSource:
    return LATEST if value.strip().lower() == str(LATEST) else value.strip()


def _parse_kernel_processes(
    items: list[object], path: Path
) -> Result[tuple[KernelProcess, ...], ConfigError]:
    procs: list[KernelProcess] = []
    for item in items:
        table = as_str_dict(item)
        name = get_str(table, "name") if table else None
        module = get_str(table, "module") if table else None
        if table is None or name is None or module is None:
            return Err(ConfigError("kernel_processes entries need a name and a module", path))
        procs.append(
            KernelProcess(
                name=name,
                module=module,
                function=get_str(table, "function") or "start",
                args=get_str_tuple(table, "args") or (),
            )
        )
    return Ok(tuple(procs))


def parse_profile_override(
    table: StrDict, *, root: Path, path: Path
) -> Result[ProfileOverride, ConfigError]:
    """Build a ProfileOverride from a TOML table; absent keys stay unset."""
    include_runtime: bool | Path | None = get_bool(table, "include_runtime")
    runtime_path = get_str(table, "include_runtime")
    if runtime_path is not None:
        include_runtime = root / runtime_path

    overlays: tuple[tuple[str, ...], ...] | None = None
    raw_overlays = get_list(table, "overlays")
    if raw_overlays is not None:
        parsed: list[tuple[str, ...]] = []
        for item in raw_overlays:
            op = as_obj_list(item)
            if op is None or not all(isinstance(p, str) for p in op):
                return Err(ConfigError(f"invalid overlay: {item!r}", path))
            parsed.append(tuple(str(p) for p in op))
        overlays = tuple(parsed)

    kernel_processes: tuple[KernelProcess, ...] | None = None
    raw_procs = get_list(table, "kernel_processes")
    if raw_procs is not None:
        procs = _parse_kernel_processes(raw_procs, path)
        if isinstance(procs, Err):
            return procs
        kernel_processes = procs.value

    output_dir = get_str(table, "output_dir")
    appups_dir = get_str(table, "appups_dir")
    upgrade_from = get_str(table, "upgrade_from")

    return Ok(
        ProfileOverride(
            output_dir=root / output_dir if output_dir else None,
            include_runtime=include_runtime,
            include_source=get_bool(table, "include_source"),
            include_system_libs=get_bool(table, "include_system_libs"),
            runtime_version=get_str(table, "runtime_version"),
            dev_mode=get_bool(table, "dev_mode"),
            executable=get_bool(table, "executable"),
            # validated later, so a bad type surfaces as invalid_cookie
            cookie=table.get("cookie"),  # type: ignore[arg-type]
            config_providers=get_str_tuple(table, "config_providers"),
            overlays=overlays,
            appup_transforms=get_str_tuple(table, "appup_transforms"),
            appups_dir=root / appups_dir if appups_dir else None,
            kernel_processes=kernel_processes,
            runtime_component=get_str(table, "runtime_component"),
            is_upgrade=get_bool(table, "is_upgrade"),
            upgrade_from=parse_upgrade_source(upgrade_from) if upgrade_from else None,
            jobs=get_int(table, "jobs"),
        )
    )


def _parse_requests(
    items: list[object], path: Path
) -> Result[tuple[ComponentRequest, ...], ConfigError]:
    requests: list[ComponentRequest] = []
    for item in items:
        if isinstance(item, str):
            requests.append(item)
            continue
        table = as_str_dict(item)
        name = get_str(table, "name") if table else None
        if table is None or name is None:
            return Err(ConfigError(f"invalid component request: {item!r}", path))
        start_type = table.get("start_type")
        if start_type is None:
            requests.append(name)
        else:
            # start type validated by the resolver
            requests.append((name, str(start_type)))
    return Ok(tuple(requests))


def _parse_release(
    name: str, table: StrDict, *, root: Path, build_dir: Path, path: Path
) -> Result[Release, ConfigError]:
    version = get_str(table, "version")
    if version is None:
        return Err(ConfigError(f"release {name} has no version", path))

    requests = _parse_requests(get_list(table, "components") or [], path)
    if isinstance(requests, Err):
        return requests

    release = Release.new(name, version, requests.value, build_dir=build_dir)
    profile_table = get_table(table, "profile")
    if profile_table is not None:
        override = parse_profile_override(profile_table, root=root, path=path)
        if isinstance(override, Err):
            return override
        release = release.with_profile(merge_profile(release.profile, override.value))
    return Ok(release)


def config_from_dict(
    data: StrDict, *, root: Path, path: Path
) -> Result[ProjectConfig, ConfigError]:
    project = get_table(data, "project") or {}
    runtime = get_table(data, "runtime") or {}
    build_dir = root / (get_str(project, "build_dir") or "_build")

    releases: dict[str, Release] = {}
    for name, raw in (get_table(data, "release") or {}).items():
        table = as_str_dict(raw)
        if table is None:
            return Err(ConfigError(f"[release.{name}] must be a table", path))
        release = _parse_release(name, table, root=root, build_dir=build_dir, path=path)
        if isinstance(release, Err):
            return release
        releases[name] = release.value

    environments: dict[str, EnvironmentDef] = {}
    for name, raw in (get_table(data, "environment") or {}).items():
        table = as_str_dict(raw)
        if table is None:
            return Err(ConfigError(f"[environment.{name}] must be a table", path))
        override = parse_profile_override(table, root=root, path=path)
        if isinstance(override, Err):
            return override
        environments[name] = EnvironmentDef(name=name, profile=override.value)

    runtime_lib = get_str(runtime, "lib_dir")
    return Ok(
        ProjectConfig(
            root=root,
            releases=MappingProxyType(releases),
            environments=MappingProxyType(environments),
            default_release=get_str(project, "default_release"),
            default_environment=get_str(project, "default_environment"),
            lib_dirs=tuple(root / p for p in (get_str_tuple(project, "lib_dirs") or ())),
            runtime=HostRuntime(
                version=get_str(runtime, "version") or DEFAULT_RUNTIME_VERSION,
                lib_dir=Path(runtime_lib) if runtime_lib else DEFAULT_RUNTIME_LIB_DIR,
            ),
        )
    )


def load_project_config(path: Path) -> Result[ProjectConfig, ConfigError]:
    """Load ``rel/config.toml``; relative paths resolve against its project root.

    The project root is the parent of the ``rel/`` directory holding the file.
    """
    parsed = parse_toml(path)
    if isinstance(parsed, Err):
        return parsed
    root = path.parent.parent if path.parent.name == "rel" else path.parent
    return config_from_dict(parsed.value, root=root, path=path)

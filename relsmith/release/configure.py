"""Release configuration steps.

Each step takes the current ``Release`` and returns a new one (or an error):

    select_environment / select_release -> apply_environment
        -> apply_configuration (runtime, cookie, resolution)
        -> select_upgrade_source (upgrade builds only)
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

from relsmith.core.errors import AssemblyError
from relsmith.core.result import Err, Ok, Result
from relsmith.output.reporter import Reporter

from .component import ComponentIndex
from .config import EnvironmentDef, ProjectConfig
from .model import Release
from .profile import Latest, UpgradeSource, merge_profile, normalize_cookie
from .resolver import CyclePolicy, resolve
from .versions import list_release_versions, split_versioned_name, version_key

RUNTIME_DIR_PREFIX = "runtime"
DEFAULT_ENVIRONMENT = "default"


def select_environment(config: ProjectConfig) -> Result[EnvironmentDef, AssemblyError]:
    """Pick the requested environment, falling back to the project default.

    A project without any environment gets an empty ``default`` one.
    """
    name = config.selected_environment or config.default_environment or DEFAULT_ENVIRONMENT
    env = config.environments.get(name)
    if env is not None:
        return Ok(env)
    if not config.environments and name == DEFAULT_ENVIRONMENT:
        return Ok(EnvironmentDef(name=DEFAULT_ENVIRONMENT))
    return Err(
        AssemblyError(
            kind="missing_environment",
            message=f"environment {name} is not defined",
            hint=", ".join(sorted(config.environments)) or None,
        )
    )


def select_release(config: ProjectConfig) -> Result[Release, AssemblyError]:
    """Pick the requested release, the project default, or the first defined."""
    name = config.selected_release or config.default_release
    if name is None:
        if not config.releases:
            return Err(AssemblyError(kind="missing_release", message="no releases are defined"))
        return Ok(next(iter(config.releases.values())))

    release = config.releases.get(name)
    if release is None:
        return Err(
            AssemblyError(
                kind="missing_release",
                message=f"release {name} is not defined",
                hint=", ".join(sorted(config.releases)) or None,
            )
        )
    return Ok(release)


def apply_environment(release: Release, environment: EnvironmentDef) -> Release:
    """Merge the environment's profile overrides over the release profile."""
    profile = merge_profile(release.profile, environment.profile)
    return replace(release, profile=profile, env=environment.name)


def detect_runtime_version(root: Path) -> Result[str, AssemblyError]:
    """Detect the runtime version bundled at root from its ``runtime-<vsn>`` directory."""
    versions: list[str] = []
    if root.is_dir():
        for p in root.glob(f"{RUNTIME_DIR_PREFIX}-*"):
            parsed = split_versioned_name(p.name)
            if p.is_dir() and parsed is not None and parsed[0] == RUNTIME_DIR_PREFIX:
                versions.append(parsed[1])
    if not versions:
        return Err(
            AssemblyError(
                kind="undetectable_runtime_version",
                message=f"could not detect the runtime version at {root}",
                hint=f"expected a {RUNTIME_DIR_PREFIX}-<version> directory",
                path=root,
            )
        )
    return Ok(max(versions, key=version_key))


def apply_configuration(
    release: Release,
    config: ProjectConfig,
    index: ComponentIndex,
    *,
    reporter: Reporter,
    on_cycle: CyclePolicy = "warn",
) -> Result[Release, AssemblyError]:
    """Resolve runtime inclusion, the cookie and the component closure.

    When the config or the profile asks for an upgrade, the upgrade source is
    selected as well.
    """
    profile = release.profile
    runtime_root: Path | None = None

    match profile.include_runtime:
        case Path() as root:
            detected = detect_runtime_version(root)
            if isinstance(detected, Err):
                return detected
            runtime_root = root
            profile = replace(profile, runtime_version=detected.value, include_system_libs=True)
        case True:
            profile = replace(
                profile,
                runtime_version=profile.runtime_version or config.runtime.version,
                include_system_libs=True,
            )
        case False:
            profile = replace(
                profile,
                runtime_version=profile.runtime_version or config.runtime.version,
                include_system_libs=False,
            )

    cookie = normalize_cookie(profile.cookie)
    if isinstance(cookie, Err):
        return cookie
    profile = replace(profile, cookie=cookie.value)

    resolved = resolve(
        release.name,
        release.requested,
        index,
        reporter=reporter,
        on_cycle=on_cycle,
        runtime_root=runtime_root,
        system_lib_dir=config.runtime.lib_dir,
    )
    if isinstance(resolved, Err):
        return resolved

    release = replace(release, profile=profile, components=resolved.value)

    if config.is_upgrade or profile.is_upgrade:
        source = config.upgrade_from or profile.upgrade_from or Latest.LATEST
        return select_upgrade_source(release, source, reporter=reporter)
    return Ok(release)


def _without_upgrade(release: Release) -> Release:
    return release.with_profile(replace(release.profile, is_upgrade=False, upgrade_from=None))


def _upgrading_from(release: Release, version: str) -> Release:
    return release.with_profile(replace(release.profile, is_upgrade=True, upgrade_from=version))


def select_upgrade_source(
    release: Release, upgrade_from: UpgradeSource, *, reporter: Reporter
) -> Result[Release, AssemblyError]:
    """Decide which prior release the upgrade starts from.

    ``LATEST`` picks the newest release on disk that is strictly older than the
    one being built; finding none turns the build into a plain release with a
    warning.
    """
    current = release.version

    match upgrade_from:
        case Latest():
            current_key = version_key(current)
            older = [
                v
                for v in list_release_versions(release.output_dir)
                if version_key(v) < current_key
            ]
            if not older:
                reporter.warn(
                    "An upgrade was requested, but there are no releases to upgrade from, "
                    "no upgrade will be performed."
                )
                return Ok(_without_upgrade(release))
            return Ok(_upgrading_from(release, older[0]))

        case str() if upgrade_from == current:
            return Err(
                AssemblyError(
                    kind="bad_upgrade_spec",
                    message=f"upgrade source is the current version ({current})",
                    hint="pass --upfrom with an older version",
                )
            )

        case str():
            path = release.release_path(upgrade_from)
            if not path.is_dir():
                return Err(
                    AssemblyError(
                        kind="bad_upgrade_spec",
                        message=f"upgrade source {upgrade_from} not found",
                        hint="build that version first, or pick one that exists",
                        path=path,
                    )
                )
            reporter.debug(f"Upgrading {release.name} from {upgrade_from} to {current}")
            return Ok(_upgrading_from(release, upgrade_from))

        case _:
            raise AssertionError(f"unexpected upgrade source: {upgrade_from!r}")

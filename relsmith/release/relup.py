"""Upgrade plan composition.

Reads the old and new release descriptors, diffs them, makes sure every
changed component has an appup, then asks the relup generator for the
release-wide plan and writes it to ``releases/<vsn>/relup``.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from relsmith.core.errors import AssemblyError
from relsmith.core.result import Err, Ok, Result
from relsmith.output.reporter import Reporter
from relsmith.platform.files import write_json

from .component import MODULES_DIR
from .descriptor import read_descriptor
from .diff import VersionDiff, diff_components
from .linker import DefaultRelupGenerator, Relup, RelupGenerator, RelupRequest
from .model import CONSOLIDATED_DIR, Release
from .synthesizer import AppupOutcome, synthesize_appups

RELUP_NAME = "relup"


@dataclass(frozen=True, slots=True)
class RelupResult:
    relup: Relup
    path: Path
    diff: VersionDiff
    appups: tuple[AppupOutcome, ...]


def upgrade_search_paths(diff: VersionDiff, lib_path: Path) -> tuple[Path, ...]:
    """Code paths for the relup generator.

    Added components at their new version, changed ones new then old, removed
    ones at their old version, then the unaffected ones.
    """
    dirs: list[Path] = []
    dirs.extend(lib_path / f"{name}-{vsn}" for name, vsn in diff.added)
    for name, old, new in diff.changed:
        dirs.append(lib_path / f"{name}-{new}")
        dirs.append(lib_path / f"{name}-{old}")
    dirs.extend(lib_path / f"{name}-{vsn}" for name, vsn in diff.removed)
    dirs.extend(lib_path / f"{name}-{vsn}" for name, vsn in diff.unaffected)

    paths: list[Path] = []
    for d in dirs:
        paths.append(d / MODULES_DIR)
        paths.append(d / CONSOLIDATED_DIR)
    return tuple(paths)


def _format_diagnostics(diagnostics: tuple[str, ...]) -> str:
    return "\n".join(f"    {line}" for line in diagnostics)


def compose_relup(
    release: Release,
    *,
    reporter: Reporter,
    generator: RelupGenerator | None = None,
) -> Result[RelupResult, AssemblyError]:
    """Generate and persist the relup for an upgrade build.

    The release must already have an upgrade source selected and its new
    descriptor written.
    """
    old_version = release.upgrade_from
    if not release.is_upgrade or not isinstance(old_version, str):
        return Err(
            AssemblyError(
                kind="bad_upgrade_spec",
                message=f"{release.name} {release.version} has no upgrade source selected",
            )
        )

    new = read_descriptor(release.descriptor_path)
    if isinstance(new, Err):
        return new
    old = read_descriptor(release.release_path(old_version) / f"{release.name}.rel")
    if isinstance(old, Err):
        return old

    diff = diff_components(old.value.name_versions(), new.value.name_versions())
    reporter.debug(
        f"Upgrade {old_version} -> {release.version}: "
        f"{len(diff.added)} added, {len(diff.changed)} changed, {len(diff.removed)} removed"
    )

    profile = release.profile
    appups = synthesize_appups(
        diff,
        lib_path=release.lib_path,
        appups_dir=profile.appups_dir,
        transforms=profile.appup_transforms,
        reporter=reporter,
        jobs=profile.jobs,
    )
    if isinstance(appups, Err):
        return appups

    request = RelupRequest(
        new=new.value,
        old=old.value,
        diff=diff,
        appups=tuple(o.appup for o in appups.value),
        search_paths=upgrade_search_paths(diff, release.lib_path),
    )
    outcome = (generator or DefaultRelupGenerator()).generate(request)

    if outcome.status == "error" or outcome.value is None:
        return Err(
            AssemblyError(
                kind="relup_failed",
                message=(
                    f"failed to generate relup for {release.name} {old_version} -> "
                    f"{release.version}:\n{_format_diagnostics(outcome.diagnostics)}"
                ),
            )
        )
    if outcome.status == "warnings":
        reporter.warn(
            f"relup for {release.name} generated with warnings:\n"
            f"{_format_diagnostics(outcome.diagnostics)}"
        )

    path = release.version_path / RELUP_NAME
    written = write_json(path, outcome.value.to_payload())
    if isinstance(written, Err):
        return written
    reporter.debug(f"Wrote {path}")
    return Ok(RelupResult(relup=outcome.value, path=path, diff=diff, appups=appups.value))

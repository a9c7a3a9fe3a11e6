"""Locate, validate or generate the appup of every changed component."""

from __future__ import annotations

import shutil
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from relsmith.core.errors import AssemblyError, filesystem_error
from relsmith.core.result import Err, Ok, Result, collect
from relsmith.output.reporter import Reporter
from relsmith.platform.files import backup_file

from .appup import APPUP_SUFFIX, Appup, locate_appup, make_appup, read_appup, write_appup
from .diff import VersionDiff
from .profile import TransformRef


class AppupState(Enum):
    NO_APPUP = "no_appup"
    PROVIDED = "provided"
    GENERATED = "generated"


@dataclass(frozen=True, slots=True)
class AppupOutcome:
    name: str
    old_version: str
    new_version: str
    state: AppupState
    appup: Appup
    path: Path


@dataclass(frozen=True, slots=True)
class _Job:
    name: str
    old_version: str
    new_version: str
    old_dir: Path
    new_dir: Path
    appups_dir: Path | None
    transforms: tuple[TransformRef, ...]

    @property
    def target(self) -> Path:
        return self.new_dir / f"{self.name}{APPUP_SUFFIX}"


def appup_target(lib_path: Path, name: str, version: str) -> Path:
    return lib_path / f"{name}-{version}" / f"{name}{APPUP_SUFFIX}"


def _provide(job: _Job) -> Result[None, AssemblyError]:
    """Copy a user supplied appup over the target, if there is one."""
    source = locate_appup(job.appups_dir, job.name, job.old_version, job.new_version)
    if source is None:
        return Ok(None)
    try:
        job.target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, job.target)
    except OSError as e:
        return Err(filesystem_error("copy", source, e))
    return Ok(None)


def _synthesize(job: _Job) -> Result[tuple[AppupOutcome, list[str]], AssemblyError]:
    warnings: list[str] = []

    provided = _provide(job)
    if isinstance(provided, Err):
        return provided

    if job.target.is_file():
        existing = read_appup(job.target)
        if isinstance(existing, Ok) and existing.value.applies_to(
            job.old_version, job.new_version
        ):
            outcome = AppupOutcome(
                name=job.name,
                old_version=job.old_version,
                new_version=job.new_version,
                state=AppupState.PROVIDED,
                appup=existing.value,
                path=job.target,
            )
            return Ok((outcome, warnings))

        backup = backup_file(job.target)
        if isinstance(backup, Err):
            return backup
        warnings.append(
            f"appup for {job.name} does not cover {job.old_version} -> {job.new_version}; "
            f"it was superseded by a generated one (kept as {backup.value.name})"
        )

    generated = make_appup(
        job.name,
        job.old_version,
        job.new_version,
        job.old_dir,
        job.new_dir,
        job.transforms,
    )
    if isinstance(generated, Err):
        return generated

    written = write_appup(job.target, generated.value)
    if isinstance(written, Err):
        return written

    outcome = AppupOutcome(
        name=job.name,
        old_version=job.old_version,
        new_version=job.new_version,
        state=AppupState.GENERATED,
        appup=generated.value,
        path=job.target,
    )
    return Ok((outcome, warnings))


def synthesize_appups(
    diff: VersionDiff,
    *,
    lib_path: Path,
    appups_dir: Path | None = None,
    transforms: Sequence[TransformRef] = (),
    reporter: Reporter,
    jobs: int = 4,
) -> Result[tuple[AppupOutcome, ...], AssemblyError]:
    """Produce one appup per changed component.

    Old and new component builds are both expected under ``lib_path`` as
    ``<name>-<version>``. Work runs on a thread pool; results are taken in name
    order and the first error aborts the whole upgrade. Files already written
    by other workers are left in place.
    """
    work = [
        _Job(
            name=name,
            old_version=old,
            new_version=new,
            old_dir=lib_path / f"{name}-{old}",
            new_dir=lib_path / f"{name}-{new}",
            appups_dir=appups_dir,
            transforms=tuple(transforms),
        )
        for name, old, new in sorted(diff.changed)
    ]
    if not work:
        return Ok(())

    with ThreadPoolExecutor(max_workers=max(1, jobs)) as pool:
        results = list(pool.map(_synthesize, work))

    collected = collect(results)
    if isinstance(collected, Err):
        return collected

    outcomes: list[AppupOutcome] = []
    for outcome, warnings in collected.value:
        for message in warnings:
            reporter.warn(message)
        reporter.debug(f"appup {outcome.name} {outcome.state.value}: {outcome.path}")
        outcomes.append(outcome)
    return Ok(tuple(outcomes))

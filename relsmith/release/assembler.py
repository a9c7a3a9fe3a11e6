"""Release assembly pipeline.

    pre_assemble: select environment and release, merge the profile,
                  configure and resolve, prepare the output directory
    assemble:     stage components, write descriptors, link boot scripts,
                  record the RELEASES index, and for upgrade builds
                  compose the relup

Every step returns ``Ok | Err``; the first error stops the pipeline. Files
already written are left in place.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from pathlib import Path

from relsmith.core.errors import AssemblyError, filesystem_error
from relsmith.core.result import Err, Ok, Result, collect
from relsmith.output.reporter import Reporter
from relsmith.platform.files import atomic_write_text, stage_directory, write_json

from .appup import APPUP_SUFFIX
from .component import MANIFEST_NAME, MODULES_DIR, Component, ComponentIndex
from .config import ProjectConfig
from .configure import apply_configuration, apply_environment, select_environment, select_release
from .descriptor import ReleaseDescriptor, write_descriptor
from .linker import BootLinker, DefaultBootLinker, RelupGenerator
from .model import CONSOLIDATED_DIR, Release
from .relup import compose_relup
from .resolver import CyclePolicy
from .script import BootScript, extend_script, write_boot, write_script_files

START_CLEAN = "start_clean"
START_DATA = "start.data"
RELEASES_NAME = "RELEASES"
RELEASES_SCHEMA = 1


@dataclass(frozen=True, slots=True)
class AssemblyResult:
    release: Release
    warnings: tuple[str, ...]
    files: tuple[Path, ...]


def pre_assemble(
    config: ProjectConfig,
    index: ComponentIndex,
    *,
    reporter: Reporter,
    on_cycle: CyclePolicy = "warn",
) -> Result[Release, AssemblyError]:
    environment = select_environment(config)
    if isinstance(environment, Err):
        return environment
    selected = select_release(config)
    if isinstance(selected, Err):
        return selected

    release = apply_environment(selected.value, environment.value)
    reporter.info(
        f"Building release {release.name}:{release.version} "
        f"using environment {environment.value.name}"
    )

    configured = apply_configuration(release, config, index, reporter=reporter, on_cycle=on_cycle)
    if isinstance(configured, Err):
        return configured
    release = configured.value

    if release.is_upgrade and release.profile.include_runtime is False:
        return Err(
            AssemblyError(
                kind="runtime_missing_for_upgrades",
                message="upgrade releases must include the runtime",
                hint="set include_runtime = true for this environment",
            )
        )

    try:
        release.output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        return Err(filesystem_error("mkdir", release.output_dir, e))
    return Ok(release)


def _is_system_lib(component: Component, config: ProjectConfig) -> bool:
    return component.path.absolute().is_relative_to(config.runtime.lib_dir.absolute())


def stage_components(
    release: Release, config: ProjectConfig, *, reporter: Reporter
) -> Result[tuple[Path, ...], AssemblyError]:
    """Copy (or in dev mode symlink) every component into ``lib/``."""
    profile = release.profile
    staged: list[tuple[Component, Path]] = []
    for c in release.components:
        if not profile.include_system_libs and _is_system_lib(c, config):
            reporter.debug(f"Skipping system library {c.versioned_name}")
            continue
        staged.append((c, release.component_lib_path(c.name, c.version)))

    def stage(item: tuple[Component, Path]) -> Result[None, AssemblyError]:
        c, dest = item
        entries = (MANIFEST_NAME, MODULES_DIR, CONSOLIDATED_DIR, "priv", f"{c.name}{APPUP_SUFFIX}")
        if profile.include_source:
            entries += ("src",)
        return stage_directory(c.path, dest, entries=entries, symlink=profile.dev_mode)

    with ThreadPoolExecutor(max_workers=max(1, profile.jobs)) as pool:
        done = collect(pool.map(stage, staged))

    if isinstance(done, Err):
        return done
    return Ok(tuple(dest for _, dest in staged))


def _write_text(path: Path, content: str) -> Result[None, AssemblyError]:
    try:
        atomic_write_text(path, content)
    except OSError as e:
        return Err(filesystem_error("write", path, e))
    return Ok(None)


def write_releases_index(
    release: Release, descriptor: ReleaseDescriptor
) -> Result[Path, AssemblyError]:
    """Write ``releases/RELEASES``, the index the release handler reads.

    The release just built is recorded as the only, permanent one. Component
    paths are relative to the release root.
    """
    path = release.output_dir.absolute() / "releases" / RELEASES_NAME
    entry = {
        "name": descriptor.name,
        "version": descriptor.version,
        "runtime": descriptor.runtime_version,
        "status": "permanent",
        "components": [
            {"name": e.name, "version": e.version, "path": f"lib/{e.name}-{e.version}"}
            for e in descriptor.entries
        ],
    }
    written = write_json(path, {"schema": RELEASES_SCHEMA, "releases": [entry]})
    if isinstance(written, Err):
        return written
    return Ok(path)


def link_boot_script(
    descriptor: ReleaseDescriptor,
    search_paths: list[Path],
    linker: BootLinker,
    *,
    reporter: Reporter,
) -> Result[BootScript, AssemblyError]:
    outcome = linker.link(descriptor, search_paths)
    if outcome.status == "error" or outcome.value is None:
        details = "\n".join(f"    {d}" for d in outcome.diagnostics)
        return Err(
            AssemblyError(
                kind="boot_script_failed",
                message=f"failed to link boot script for {descriptor.name}:\n{details}",
            )
        )
    for d in outcome.diagnostics:
        reporter.warn(f"boot script {descriptor.name}: {d}")
    return Ok(outcome.value)


def make_start_clean(
    release: Release,
    search_paths: list[Path],
    linker: BootLinker,
    *,
    reporter: Reporter,
) -> Result[tuple[Path, ...], AssemblyError]:
    """Link the clean-start script and install it as ``bin/start_clean.boot``.

    The intermediate ``start_clean.rel`` and ``start_clean.script`` are removed;
    the release directory keeps its own copy of the boot file.
    """
    clean = replace(release.clean_start().to_descriptor(), name=START_CLEAN)
    rel_path = release.version_path / f"{START_CLEAN}.rel"
    written = write_descriptor(rel_path, clean)
    if isinstance(written, Err):
        return written

    linked = link_boot_script(clean, search_paths, linker, reporter=reporter)
    if isinstance(linked, Err):
        return linked
    boot = write_script_files(release.version_path, linked.value)
    if isinstance(boot, Err):
        return boot
    bin_boot = release.bin_path / f"{START_CLEAN}.boot"
    written = write_boot(bin_boot, linked.value)
    if isinstance(written, Err):
        return written

    for leftover in (rel_path, release.version_path / f"{START_CLEAN}.script"):
        try:
            leftover.unlink()
        except OSError as e:
            return Err(filesystem_error("remove", leftover, e))
    return Ok((boot.value, bin_boot))


def assemble(
    config: ProjectConfig,
    index: ComponentIndex,
    *,
    reporter: Reporter,
    on_cycle: CyclePolicy = "warn",
    boot_linker: BootLinker | None = None,
    relup_generator: RelupGenerator | None = None,
) -> Result[AssemblyResult, AssemblyError]:
    """Build the release selected by config into its output directory."""
    prepared = pre_assemble(config, index, reporter=reporter, on_cycle=on_cycle)
    if isinstance(prepared, Err):
        return prepared
    release = prepared.value
    linker = boot_linker or DefaultBootLinker()
    files: list[Path] = []

    staged = stage_components(release, config, reporter=reporter)
    if isinstance(staged, Err):
        return staged
    reporter.debug(f"Staged {len(staged.value)} components into {release.lib_path}")

    descriptor = release.to_descriptor()
    written = write_descriptor(release.descriptor_path, descriptor)
    if isinstance(written, Err):
        return written
    files.append(release.descriptor_path)

    start_data = release.output_dir.absolute() / "releases" / START_DATA
    written = _write_text(start_data, f"{descriptor.runtime_version} {release.version}\n")
    if isinstance(written, Err):
        return written
    files.append(start_data)

    search_paths = release.code_paths()
    linked = link_boot_script(descriptor, search_paths, linker, reporter=reporter)
    if isinstance(linked, Err):
        return linked
    script = extend_script(linked.value, release.profile)
    if isinstance(script, Err):
        return script
    boot = write_script_files(release.version_path, script.value)
    if isinstance(boot, Err):
        return boot
    files.append(boot.value)

    releases_index = write_releases_index(release, descriptor)
    if isinstance(releases_index, Err):
        return releases_index
    files.append(releases_index.value)

    clean_boots = make_start_clean(release, search_paths, linker, reporter=reporter)
    if isinstance(clean_boots, Err):
        return clean_boots
    files.extend(clean_boots.value)

    if release.is_upgrade:
        relup = compose_relup(release, reporter=reporter, generator=relup_generator)
        if isinstance(relup, Err):
            return relup
        files.append(relup.value.path)
        files.extend(o.path for o in relup.value.appups)

    reporter.success(f"Release {release.name}:{release.version} assembled in {release.output_dir}")
    return Ok(AssemblyResult(release=release, warnings=reporter.warnings, files=tuple(files)))

"""Boot script linker and relup generator.

Both are pluggable collaborators described by a Protocol. The defaults below
work from the release descriptors and the module directories on the search
path; callers may pass their own implementations to ``assemble``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Protocol

from relsmith.core.structured import as_obj_list, as_str_dict, get_int, get_str

from .appup import Appup, Directive
from .component import MODULES_DIR, StartType
from .descriptor import ReleaseDescriptor
from .diff import VersionDiff
from .script import CONTROLLER_PROCESS, START_BOOT, BootScript, Instruction

RELUP_SCHEMA = 1
CONTROLLER_MODULE = "relsmith.runtime.controller"

type OutcomeStatus = Literal["ok", "warnings", "error"]


@dataclass(frozen=True, slots=True)
class LinkOutcome[T]:
    """What a collaborator produced: a value, and diagnostics when not ``ok``."""

    status: OutcomeStatus
    value: T | None = None
    diagnostics: tuple[str, ...] = ()

    @classmethod
    def of(cls, value: T, diagnostics: Sequence[str] = ()) -> LinkOutcome[T]:
        if diagnostics:
            return cls(status="warnings", value=value, diagnostics=tuple(diagnostics))
        return cls(status="ok", value=value)

    @classmethod
    def failed(cls, diagnostics: Sequence[str]) -> LinkOutcome[T]:
        return cls(status="error", diagnostics=tuple(diagnostics))


# -- relup -------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RelupEntry:
    version: str
    instructions: tuple[Directive, ...]
    description: str = ""


@dataclass(frozen=True, slots=True)
class Relup:
    """Release-wide upgrade plan."""

    version: str
    up: tuple[RelupEntry, ...]
    down: tuple[RelupEntry, ...]

    def to_payload(self) -> dict[str, object]:
        return {
            "schema": RELUP_SCHEMA,
            "version": self.version,
            "up": [
                {
                    "from": e.version,
                    "description": e.description,
                    "instructions": [d.to_payload() for d in e.instructions],
                }
                for e in self.up
            ],
            "down": [
                {
                    "to": e.version,
                    "description": e.description,
                    "instructions": [d.to_payload() for d in e.instructions],
                }
                for e in self.down
            ],
        }


def _parse_entries(obj: object, key: str) -> tuple[RelupEntry, ...] | None:
    items = as_obj_list(obj)
    if items is None:
        return None
    entries: list[RelupEntry] = []
    for item in items:
        table = as_str_dict(item)
        version = get_str(table, key) if table else None
        raw = as_obj_list(table.get("instructions")) if table else None
        if table is None or version is None or raw is None:
            return None
        directives = [Directive.from_payload(d) for d in raw]
        if any(d is None for d in directives):
            return None
        entries.append(
            RelupEntry(
                version=version,
                instructions=tuple(d for d in directives if d is not None),
                description=get_str(table, "description") or "",
            )
        )
    return tuple(entries)


def parse_relup(obj: object) -> Relup | None:
    data = as_str_dict(obj)
    if data is None or get_int(data, "schema") != RELUP_SCHEMA:
        return None
    version = get_str(data, "version")
    up = _parse_entries(data.get("up"), "from")
    down = _parse_entries(data.get("down"), "to")
    if version is None or up is None or down is None:
        return None
    return Relup(version=version, up=up, down=down)


@dataclass(frozen=True, slots=True)
class RelupRequest:
    new: ReleaseDescriptor
    old: ReleaseDescriptor
    diff: VersionDiff
    appups: tuple[Appup, ...]
    search_paths: tuple[Path, ...]


class BootLinker(Protocol):
    def link(
        self, descriptor: ReleaseDescriptor, search_paths: Sequence[Path]
    ) -> LinkOutcome[BootScript]: ...


class RelupGenerator(Protocol):
    def generate(self, request: RelupRequest) -> LinkOutcome[Relup]: ...


def _component_modules(name: str, version: str, search_paths: Sequence[Path]) -> Path | None:
    """First ``<name>-<version>/modules`` directory on the search path."""
    wanted = f"{name}-{version}"
    for p in search_paths:
        if p.name == MODULES_DIR and p.parent.name == wanted and p.is_dir():
            return p
    return None


def _has_module(module: str, search_paths: Sequence[Path]) -> bool:
    return any(p.is_dir() and any(p.glob(f"{module}.*")) for p in search_paths)


class DefaultBootLinker:
    """Links a boot script from the components listed in a release descriptor.

    Every listed component must have its module directory on the search path.
    Components are loaded or booted in descriptor order; ``none`` components
    are only put on the code path.
    """

    def link(
        self, descriptor: ReleaseDescriptor, search_paths: Sequence[Path]
    ) -> LinkOutcome[BootScript]:
        paths: list[Instruction] = []
        starts: list[Instruction] = []
        missing: list[str] = []

        for entry in descriptor.entries:
            modules = _component_modules(entry.name, entry.version, search_paths)
            if modules is None:
                missing.append(
                    f"{entry.name}-{entry.version}: no module directory on the search path"
                )
                continue
            paths.append(Instruction("path", entry.name, (str(modules),)))

            match entry.start_type:
                case StartType.NONE:
                    continue
                case StartType.LOAD:
                    starts.append(Instruction("apply", "component.load", (entry.name,)))
                case None:
                    starts.append(
                        Instruction("apply", START_BOOT, (entry.name, str(StartType.PERMANENT)))
                    )
                case start_type:
                    starts.append(Instruction("apply", START_BOOT, (entry.name, str(start_type))))

        if missing:
            return LinkOutcome.failed(missing)

        instructions = (
            Instruction("progress", "preloaded"),
            *paths,
            Instruction("kernel_process", CONTROLLER_PROCESS, (CONTROLLER_MODULE, "start")),
            Instruction("progress", "kernel_started"),
            *starts,
            Instruction("progress", "started"),
        )
        return LinkOutcome.of(
            BootScript(name=descriptor.name, version=descriptor.version, instructions=instructions)
        )


def _module_targets(directives: Sequence[Directive]) -> list[str]:
    return [d.target for d in directives if d.op in ("add_module", "load_module")]


class DefaultRelupGenerator:
    """Builds a single-step relup from the per-component appups.

    Upgrade order: appup directives of changed components in the new
    release's (dependency) order, then added components, then removed ones.
    The downgrade plan mirrors it.
    """

    def generate(self, request: RelupRequest) -> LinkOutcome[Relup]:
        by_name = {a.name: a for a in request.appups}
        changed = {name for name, _, _ in request.diff.changed}
        added = {name for name, _ in request.diff.added}
        removed = {name for name, _ in request.diff.removed}

        errors = [f"no appup for changed component {n}" for n in sorted(changed - by_name.keys())]
        if errors:
            return LinkOutcome.failed(errors)

        new_order = [e.name for e in request.new.entries]
        old_order = [e.name for e in request.old.entries]

        up: list[Directive] = []
        down: list[Directive] = []
        for name in new_order:
            if name in changed:
                up.extend(by_name[name].up)
        for name in reversed(new_order):
            if name in changed:
                down.extend(by_name[name].down)
        up.extend(Directive("add_application", n) for n in new_order if n in added)
        up.extend(Directive("remove_application", n) for n in old_order if n in removed)
        down.extend(Directive("add_application", n) for n in old_order if n in removed)
        down.extend(Directive("remove_application", n) for n in new_order if n in added)

        warnings = [
            f"module {m} not found on the search path"
            for m in _module_targets(up) + _module_targets(down)
            if not _has_module(m, request.search_paths)
        ]

        relup = Relup(
            version=request.new.version,
            up=(RelupEntry(version=request.old.version, instructions=tuple(up)),),
            down=(RelupEntry(version=request.old.version, instructions=tuple(down)),),
        )
        return LinkOutcome.of(relup, warnings)

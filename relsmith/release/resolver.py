"""Dependency resolution.

Computes the closure of components required by a release: every requested
component plus everything reachable through dependency and included edges,
each name exactly once, dependencies ordered before their dependents.

Requests are folded left to right over an immutable ``Resolution``
accumulator because later requests may override the start type of earlier
ones. Expansion of a single request is an iterative depth-first walk with an
explicit stack and visited set, so cycles terminate; what happens to a detected
cycle is decided by the ``on_cycle`` policy.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from relsmith.core.errors import AssemblyError
from relsmith.core.result import Err, Ok, Result
from relsmith.output.reporter import Reporter

from .component import Component, ComponentIndex, StartType, parse_start_type
from .model import ComponentRequest
from .versions import split_versioned_name, version_key

type CyclePolicy = Literal["warn", "error"]


@dataclass(frozen=True, slots=True)
class Resolution:
    """Accumulator of the resolver fold."""

    components: tuple[Component, ...] = ()
    cycles: tuple[tuple[str, ...], ...] = ()

    def names(self) -> frozenset[str]:
        return frozenset(c.name for c in self.components)

    def has(self, name: str) -> bool:
        return any(c.name == name for c in self.components)

    def override(self, name: str, start_type: StartType) -> Resolution:
        return Resolution(
            components=tuple(
                c.with_start_type(start_type) if c.name == name else c for c in self.components
            ),
            cycles=self.cycles,
        )

    def extend(
        self, components: tuple[Component, ...], cycles: tuple[tuple[str, ...], ...]
    ) -> Resolution:
        return Resolution(components=self.components + components, cycles=self.cycles + cycles)


def _missing(name: str, required_by: str | None = None) -> Err[AssemblyError]:
    hint = f"required by {required_by}" if required_by else None
    return Err(
        AssemblyError(
            kind="missing_application",
            message=f"could not find component {name}",
            hint=hint,
        )
    )


def _request_name(request: ComponentRequest) -> str:
    match request:
        case Component():
            return request.name
        case (name, _):
            return name
        case str():
            return request
        case _:
            raise AssertionError(f"unexpected component request: {request!r}")


def expand(
    acc: Resolution, root: Component, index: ComponentIndex
) -> Result[Resolution, AssemblyError]:
    """Add root and everything reachable from it that is not already resolved."""
    visited = set(acc.names())
    if root.name in visited:
        return Ok(acc)

    order: list[Component] = []
    cycles: list[tuple[str, ...]] = []
    current = {c.name: c for c in acc.components}
    current[root.name] = root
    # edge start types for components resolved without one
    typed: dict[str, StartType] = {}
    path: list[str] = [root.name]
    on_path: set[str] = {root.name}
    stack: list[tuple[Component, Iterator[tuple[str, StartType | None]]]] = [
        (root, iter(root.edges()))
    ]
    visited.add(root.name)

    while stack:
        node, edges = stack[-1]
        child: Component | None = None
        for dep_name, dep_type in edges:
            if dep_name in visited:
                if dep_name in on_path:
                    cycles.append((*path[path.index(dep_name) :], dep_name))
                seen = current.get(dep_name)
                if dep_type is not None and seen is not None and seen.start_type is None:
                    typed.setdefault(dep_name, dep_type)
                continue
            found = index.get(dep_name)
            if found is None:
                return _missing(dep_name, required_by=node.name)
            child = found if dep_type is None else found.with_start_type(dep_type)
            break

        if child is None:
            stack.pop()
            on_path.discard(path.pop())
            order.append(node)
            continue

        visited.add(child.name)
        current[child.name] = child
        path.append(child.name)
        on_path.add(child.name)
        stack.append((child, iter(child.edges())))

    resolved = acc.extend(tuple(order), tuple(cycles))
    for name, start_type in typed.items():
        resolved = resolved.override(name, start_type)
    return Ok(resolved)


def resolve_request(
    acc: Resolution, request: ComponentRequest, index: ComponentIndex
) -> Result[Resolution, AssemblyError]:
    """One step of the fold: ``(accumulator, request) -> accumulator``."""
    match request:
        case Component():
            return expand(acc, request, index)
        case (name, raw_type):
            start_type = parse_start_type(raw_type)
            if start_type is None:
                return Err(
                    AssemblyError(
                        kind="invalid_start_type",
                        message=f"invalid start type for {name}: {raw_type!r}",
                        hint=", ".join(str(t) for t in StartType),
                    )
                )
            if acc.has(name):
                return Ok(acc.override(name, start_type))
            found = index.get(name)
            if found is None:
                return _missing(name)
            return expand(acc, found.with_start_type(start_type), index)
        case str():
            if acc.has(request):
                return Ok(acc)
            found = index.get(request)
            if found is None:
                return _missing(request)
            return expand(acc, found, index)
        case _:
            raise AssertionError(f"unexpected component request: {request!r}")


def _is_under(path: Path, root: Path) -> bool:
    return path.absolute().is_relative_to(root.absolute())


def relocate_runtime_libs(
    components: tuple[Component, ...],
    *,
    runtime_root: Path,
    system_lib_dir: Path,
) -> Result[tuple[Component, ...], AssemblyError]:
    """Point components from the host runtime tree at the bundled runtime's copies."""
    lib_dir = (runtime_root / "lib").absolute()
    relocated: list[Component] = []
    for c in components:
        if not _is_under(c.path, system_lib_dir):
            relocated.append(c)
            continue

        candidates: list[tuple[str, Path]] = []
        if lib_dir.is_dir():
            for p in lib_dir.glob(f"{c.name}-*"):
                parsed = split_versioned_name(p.name)
                if parsed is not None and parsed[0] == c.name and p.is_dir():
                    candidates.append((parsed[1], p))
        if not candidates:
            return Err(
                AssemblyError(
                    kind="missing_required_library",
                    message=f"{c.name} is required but was not found in {lib_dir}",
                    hint="the runtime bundled with the release must provide it",
                    path=lib_dir,
                )
            )
        version, path = max(candidates, key=lambda vp: version_key(vp[0]))
        relocated.append(c.relocated(path, version))
    return Ok(tuple(relocated))


def _report(components: tuple[Component, ...], reporter: Reporter) -> None:
    reporter.debug("Discovered components:")
    for c in components:
        deps = ", ".join(
            name if st is None else f"{name} ({st})" for name, st in c.applications.items()
        )
        reporter.debug(f"  > {c.versioned_name} from {c.path}")
        reporter.debug(f"    applications: {deps or 'none'}")
        reporter.debug(f"    includes: {', '.join(c.included) or 'none'}")


def resolve(
    release_name: str,
    requested: Sequence[ComponentRequest],
    index: ComponentIndex,
    *,
    reporter: Reporter,
    on_cycle: CyclePolicy = "warn",
    runtime_root: Path | None = None,
    system_lib_dir: Path | None = None,
) -> Result[tuple[Component, ...], AssemblyError]:
    """Resolve the full component closure of a release.

    Args:
        release_name: The release's own component, added if not requested.
        requested: Names, ``(name, start_type)`` pairs, or Component values.
        index: Installed components.
        reporter: Receives cycle warnings and the debug listing.
        on_cycle: ``"warn"`` keeps the truncated closure, ``"error"`` fails.
        runtime_root: Bundled runtime directory; when set, components under
            ``system_lib_dir`` are relocated into ``<runtime_root>/lib``.
        system_lib_dir: Host runtime library tree.

    Returns:
        Ok(components) or Err with the first failure; no partial result.
    """
    requests = list(requested)
    if release_name not in {_request_name(r) for r in requests}:
        requests.append(release_name)

    acc = Resolution()
    for request in requests:
        step = resolve_request(acc, request, index)
        if isinstance(step, Err):
            return step
        acc = step.value

    for cycle in acc.cycles:
        chain = " -> ".join(cycle)
        if on_cycle == "error":
            return Err(
                AssemblyError(
                    kind="dependency_cycle",
                    message=f"dependency cycle: {chain}",
                )
            )
        reporter.warn(f"dependency cycle ignored: {chain}")

    components = acc.components
    if runtime_root is not None and system_lib_dir is not None:
        relocated = relocate_runtime_libs(
            components, runtime_root=runtime_root, system_lib_dir=system_lib_dir
        )
        if isinstance(relocated, Err):
            return relocated
        components = relocated.value

    _report(components, reporter)
    return Ok(components)

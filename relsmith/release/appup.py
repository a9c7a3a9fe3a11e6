"""Per-component upgrade instruction sets ("appups").

An appup describes how to move one running component from an old version to a
new one (``up``) and back (``down``):

    {
      "schema": 1,
      "component": "shop",
      "version": "0.2.0",
      "up":   [{"from": "0.1.0", "instructions": [["load_module", "shop_cart"]]}],
      "down": [{"to":   "0.1.0", "instructions": [["load_module", "shop_cart"]]}]
    }

Either version may be a pattern, written ``{"pattern": "^0\\\\.1\\\\."}``, so one
appup can cover a range of versions.
"""

from __future__ import annotations

import hashlib
import importlib
import re
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Protocol, runtime_checkable

from relsmith.core.errors import AssemblyError
from relsmith.core.result import Err, Ok, Result
from relsmith.core.structured import as_obj_list, as_str_dict, get_int, get_str
from relsmith.platform.files import read_json, write_json

from .component import MODULES_DIR

APPUP_SCHEMA = 1
APPUP_SUFFIX = ".appup"

DirectiveOp = Literal[
    "add_module",
    "delete_module",
    "load_module",
    "update",
    "apply",
    "add_application",
    "remove_application",
    "restart_application",
    "point_of_no_return",
]
_DIRECTIVE_OPS: frozenset[str] = frozenset(DirectiveOp.__args__)


@dataclass(frozen=True, slots=True)
class Directive:
    """One low-level upgrade instruction."""

    op: DirectiveOp
    target: str = ""
    args: tuple[str, ...] = ()

    def to_payload(self) -> list[str]:
        if not self.target:
            return [self.op]
        return [self.op, self.target, *self.args]

    @classmethod
    def from_payload(cls, obj: object) -> Directive | None:
        parts = as_obj_list(obj)
        if not parts or not all(isinstance(p, str) for p in parts):
            return None
        op = str(parts[0])
        if op not in _DIRECTIVE_OPS:
            return None
        target = str(parts[1]) if len(parts) > 1 else ""
        args = tuple(str(p) for p in parts[2:])
        return cls(op=op, target=target, args=args)  # type: ignore[arg-type]


@dataclass(frozen=True, slots=True)
class VersionRegex:
    """A version pattern matched with ``re.search``."""

    pattern: str

    def matches(self, version: str) -> bool:
        try:
            return re.search(self.pattern, version) is not None
        except re.error:
            return False


type VersionPattern = str | VersionRegex


def _pattern_payload(p: VersionPattern) -> object:
    if isinstance(p, VersionRegex):
        return {"pattern": p.pattern}
    return p


def _parse_pattern(obj: object) -> VersionPattern | None:
    if isinstance(obj, str):
        return obj
    table = as_str_dict(obj)
    if table is None:
        return None
    pattern = get_str(table, "pattern")
    return VersionRegex(pattern) if pattern is not None else None


@dataclass(frozen=True, slots=True)
class Appup:
    name: str
    old: VersionPattern
    new: VersionPattern
    up: tuple[Directive, ...] = ()
    down: tuple[Directive, ...] = ()

    def applies_to(self, old_version: str, new_version: str) -> bool:
        """True when this appup covers the transition old_version -> new_version.

        Literal versions must both be equal; patterns must both match. A mix of
        a literal and a pattern never applies.
        """
        match (self.old, self.new):
            case (VersionRegex() as old, VersionRegex() as new):
                return old.matches(old_version) and new.matches(new_version)
            case (str() as old, str() as new):
                return old == old_version and new == new_version
            case _:
                return False

    def to_payload(self) -> dict[str, object]:
        return {
            "schema": APPUP_SCHEMA,
            "component": self.name,
            "version": _pattern_payload(self.new),
            "up": [
                {
                    "from": _pattern_payload(self.old),
                    "instructions": [d.to_payload() for d in self.up],
                }
            ],
            "down": [
                {
                    "to": _pattern_payload(self.old),
                    "instructions": [d.to_payload() for d in self.down],
                }
            ],
        }


def _parse_section(
    obj: object, key: str
) -> tuple[VersionPattern, tuple[Directive, ...]] | None:
    """Parse an up/down list that must hold exactly one entry."""
    entries = as_obj_list(obj)
    if entries is None or len(entries) != 1:
        return None
    entry = as_str_dict(entries[0])
    if entry is None:
        return None
    pattern = _parse_pattern(entry.get(key))
    raw = as_obj_list(entry.get("instructions"))
    if pattern is None or raw is None:
        return None
    directives: list[Directive] = []
    for item in raw:
        d = Directive.from_payload(item)
        if d is None:
            return None
        directives.append(d)
    return (pattern, tuple(directives))


def parse_appup(obj: object, *, path: Path) -> Result[Appup, AssemblyError]:
    """Parse an appup document.

    Only single-transition appups are accepted: one up entry and one down
    entry, both naming the same old version pattern.
    """

    def invalid(message: str) -> Err[AssemblyError]:
        return Err(AssemblyError(kind="malformed_descriptor", message=message, path=path))

    data = as_str_dict(obj)
    if data is None:
        return invalid("appup root must be a JSON object")
    if get_int(data, "schema") != APPUP_SCHEMA:
        return invalid(f"unsupported appup schema: {data.get('schema')!r}")

    name = get_str(data, "component")
    new = _parse_pattern(data.get("version"))
    up = _parse_section(data.get("up"), "from")
    down = _parse_section(data.get("down"), "to")
    if name is None or new is None or up is None or down is None:
        return invalid("appup must name one component, one version, one up and one down entry")
    if up[0] != down[0]:
        return invalid("appup up and down entries name different versions")

    return Ok(Appup(name=name, old=up[0], new=new, up=up[1], down=down[1]))


def read_appup(path: Path) -> Result[Appup, AssemblyError]:
    raw = read_json(path)
    if isinstance(raw, Err):
        return raw
    return parse_appup(raw.value, path=path)


def write_appup(path: Path, appup: Appup) -> Result[None, AssemblyError]:
    return write_json(path, appup.to_payload())


def locate_appup(appups_dir: Path | None, name: str, old: str, new: str) -> Path | None:
    """Find a user supplied appup at ``<appups_dir>/<name>/<old>_to_<new>.appup``."""
    if appups_dir is None:
        return None
    candidate = appups_dir / name / f"{old}_to_{new}{APPUP_SUFFIX}"
    return candidate if candidate.is_file() else None


# -- transforms --------------------------------------------------------------


@runtime_checkable
class AppupTransform(Protocol):
    """Rewrites generated directives; transforms run in configuration order."""

    def up(
        self, component: str, old: str, new: str, directives: tuple[Directive, ...]
    ) -> tuple[Directive, ...]: ...

    def down(
        self, component: str, old: str, new: str, directives: tuple[Directive, ...]
    ) -> tuple[Directive, ...]: ...


def load_transform(ref: str | AppupTransform) -> Result[AppupTransform, AssemblyError]:
    """Resolve a ``"package.module:attribute"`` reference to a transform.

    A class is instantiated without arguments.
    """
    if not isinstance(ref, str):
        return Ok(ref)

    module_name, sep, attr = ref.partition(":")
    if not sep or not module_name or not attr:
        return Err(
            AssemblyError(
                kind="invalid_transform",
                message=f"invalid appup transform reference: {ref}",
                hint="expected package.module:attribute",
            )
        )
    try:
        obj: object = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as e:
        return Err(
            AssemblyError(
                kind="invalid_transform",
                message=f"cannot load appup transform {ref}: {e}",
            )
        )
    if isinstance(obj, type):
        obj = obj()
    if not isinstance(obj, AppupTransform):
        return Err(
            AssemblyError(
                kind="invalid_transform",
                message=f"{ref} does not define up() and down()",
            )
        )
    return Ok(obj)


# -- generation --------------------------------------------------------------


def _sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def read_module_table(component_dir: Path) -> dict[str, str]:
    """Map module name -> content hash for ``<component_dir>/modules``.

    Raises:
        OSError: The module directory is missing or unreadable.
    """
    modules_dir = component_dir / MODULES_DIR
    if not modules_dir.is_dir():
        raise FileNotFoundError(f"no module table at {modules_dir}")
    return {p.stem: _sha256_file(p) for p in sorted(modules_dir.iterdir()) if p.is_file()}


def _generation_failed(name: str, reason: str) -> Err[AssemblyError]:
    return Err(
        AssemblyError(
            kind="appup_generation_failed",
            message=f"failed to generate appup for {name}: {reason}",
        )
    )


def make_appup(
    name: str,
    old_version: str,
    new_version: str,
    old_dir: Path,
    new_dir: Path,
    transforms: Sequence[str | AppupTransform] = (),
) -> Result[Appup, AssemblyError]:
    """Generate an appup by diffing the module tables of two component builds."""
    try:
        old_modules = read_module_table(old_dir)
        new_modules = read_module_table(new_dir)
    except OSError as e:
        return _generation_failed(name, str(e))

    added = sorted(new_modules.keys() - old_modules.keys())
    deleted = sorted(old_modules.keys() - new_modules.keys())
    changed = sorted(
        m for m in new_modules.keys() & old_modules.keys() if new_modules[m] != old_modules[m]
    )

    up: tuple[Directive, ...] = (
        *(Directive("add_module", m) for m in added),
        *(Directive("load_module", m) for m in changed),
        *(Directive("delete_module", m) for m in deleted),
    )
    down: tuple[Directive, ...] = (
        *(Directive("add_module", m) for m in deleted),
        *(Directive("load_module", m) for m in changed),
        *(Directive("delete_module", m) for m in added),
    )

    for ref in transforms:
        loaded = load_transform(ref)
        if isinstance(loaded, Err):
            return _generation_failed(name, loaded.error.message)
        t = loaded.value
        try:
            up = tuple(t.up(name, old_version, new_version, up))
            down = tuple(t.down(name, old_version, new_version, down))
        except Exception as e:  # noqa: BLE001
            return _generation_failed(name, f"transform {ref!r}: {e}")
        stray = next((d for d in (*up, *down) if not isinstance(d, Directive)), None)
        if stray is not None:
            return _generation_failed(name, f"transform {ref!r} returned {stray!r}")

    return Ok(Appup(name=name, old=old_version, new=new_version, up=up, down=down))

"""Boot scripts.

A boot script is the ordered list of instructions a node runs on a fresh
start. ``<name>.script`` holds the JSON form, ``<name>.boot`` the msgpack
encoding of the same payload:

    {
      "schema": 1,
      "script": {"name": "shop", "version": "0.2.0"},
      "instructions": [
        ["progress", "preloaded"],
        ["kernel_process", "component_controller", "relsmith.runtime.controller", "start"],
        ["apply", "component.start_boot", "runtime", "permanent"]
      ]
    }

Two instructions are anchors that custom hooks are spliced around: the kernel
process starting the component controller, and the boot of the runtime
component.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from pathlib import Path

import msgpack

from relsmith.core.errors import AssemblyError, filesystem_error
from relsmith.core.result import Err, Ok, Result
from relsmith.core.structured import as_obj_list, as_str_dict, get_int, get_str, get_table
from relsmith.platform.files import atomic_write_bytes, read_json, write_json

from .profile import Profile

SCRIPT_SCHEMA = 1
CONTROLLER_PROCESS = "component_controller"
START_BOOT = "component.start_boot"
CONFIG_PROVIDER_INIT = "config_provider.init"


@dataclass(frozen=True, slots=True)
class Instruction:
    op: str
    target: str = ""
    args: tuple[str, ...] = ()

    def to_payload(self) -> list[str]:
        if not self.target:
            return [self.op]
        return [self.op, self.target, *self.args]

    @classmethod
    def from_payload(cls, obj: object) -> Instruction | None:
        parts = as_obj_list(obj)
        if not parts or not all(isinstance(p, str) for p in parts):
            return None
        target = str(parts[1]) if len(parts) > 1 else ""
        return cls(op=str(parts[0]), target=target, args=tuple(str(p) for p in parts[2:]))


@dataclass(frozen=True, slots=True)
class BootScript:
    name: str
    version: str
    instructions: tuple[Instruction, ...]

    def to_payload(self) -> dict[str, object]:
        return {
            "schema": SCRIPT_SCHEMA,
            "script": {"name": self.name, "version": self.version},
            "instructions": [i.to_payload() for i in self.instructions],
        }


def parse_script(obj: object, *, path: Path) -> Result[BootScript, AssemblyError]:
    def malformed(message: str) -> Err[AssemblyError]:
        return Err(AssemblyError(kind="malformed_descriptor", message=message, path=path))

    data = as_str_dict(obj)
    if data is None:
        return malformed("boot script root must be an object")
    if get_int(data, "schema") != SCRIPT_SCHEMA:
        return malformed(f"unsupported boot script schema: {data.get('schema')!r}")

    header = get_table(data, "script") or {}
    name = get_str(header, "name")
    version = get_str(header, "version")
    items = as_obj_list(data.get("instructions"))
    if name is None or version is None or items is None:
        return malformed("boot script needs a name, a version and instructions[]")

    instructions: list[Instruction] = []
    for item in items:
        instruction = Instruction.from_payload(item)
        if instruction is None:
            return malformed(f"malformed instruction: {item!r}")
        instructions.append(instruction)
    return Ok(BootScript(name=name, version=version, instructions=tuple(instructions)))


def encode_boot(script: BootScript) -> bytes:
    return msgpack.packb(script.to_payload(), use_bin_type=True)


def decode_boot(data: bytes, *, path: Path) -> Result[BootScript, AssemblyError]:
    try:
        obj: object = msgpack.unpackb(data, raw=False)
    except (ValueError, msgpack.UnpackException) as e:
        return Err(
            AssemblyError(
                kind="malformed_descriptor",
                message=f"invalid boot file: {e}",
                path=path,
            )
        )
    return parse_script(obj, path=path)


def read_script(path: Path) -> Result[BootScript, AssemblyError]:
    raw = read_json(path)
    if isinstance(raw, Err):
        return raw
    return parse_script(raw.value, path=path)


def read_boot(path: Path) -> Result[BootScript, AssemblyError]:
    try:
        data = path.read_bytes()
    except OSError as e:
        return Err(filesystem_error("read", path, e))
    return decode_boot(data, path=path)


def write_boot(path: Path, script: BootScript) -> Result[None, AssemblyError]:
    try:
        atomic_write_bytes(path, encode_boot(script))
    except OSError as e:
        return Err(filesystem_error("write", path, e))
    return Ok(None)


def write_script_files(directory: Path, script: BootScript) -> Result[Path, AssemblyError]:
    """Write ``<name>.script`` and ``<name>.boot`` into directory; return the .boot path."""
    written = write_json(directory / f"{script.name}.script", script.to_payload())
    if isinstance(written, Err):
        return written
    boot_path = directory / f"{script.name}.boot"
    booted = write_boot(boot_path, script)
    if isinstance(booted, Err):
        return booted
    return Ok(boot_path)


# -- hook injection ----------------------------------------------------------


def _is_controller_start(i: Instruction) -> bool:
    return i.op == "kernel_process" and i.target == CONTROLLER_PROCESS


def _is_runtime_boot(runtime_component: str) -> Callable[[Instruction], bool]:
    def matches(i: Instruction) -> bool:
        return i.op == "apply" and i.target == START_BOOT and i.args[:1] == (runtime_component,)

    return matches


def _anchor_not_found(script: BootScript, what: str) -> Err[AssemblyError]:
    return Err(
        AssemblyError(
            kind="anchor_not_found",
            message=f"boot script for {script.name} has no instruction that {what}",
            hint="the boot linker output changed shape; hooks cannot be placed",
        )
    )


def extend_script(script: BootScript, profile: Profile) -> Result[BootScript, AssemblyError]:
    """Splice the profile's hooks into a linked boot script.

    Kernel processes go immediately before the component controller start;
    configuration provider init goes immediately after the runtime component
    boots. Relative order of every other instruction is kept.
    """
    instructions = list(script.instructions)

    controller = next((n for n, i in enumerate(instructions) if _is_controller_start(i)), None)
    if controller is None:
        return _anchor_not_found(script, "starts the component controller")
    kernel_procs = [
        Instruction("kernel_process", p.name, (p.module, p.function, *p.args))
        for p in profile.kernel_processes
    ]
    instructions[controller:controller] = kernel_procs

    is_runtime_boot = _is_runtime_boot(profile.runtime_component)
    runtime = next((n for n, i in enumerate(instructions) if is_runtime_boot(i)), None)
    if runtime is None:
        return _anchor_not_found(script, f"boots {profile.runtime_component}")
    instructions.insert(
        runtime + 1, Instruction("apply", CONFIG_PROVIDER_INIT, profile.config_providers)
    )

    return Ok(replace(script, instructions=tuple(instructions)))

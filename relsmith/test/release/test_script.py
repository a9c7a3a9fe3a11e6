"""Tests for relsmith.release.script module."""

from __future__ import annotations

from pathlib import Path

import pytest

from relsmith.core.result import Err, Ok
from relsmith.release.profile import KernelProcess, Profile
from relsmith.release.script import (
    BootScript,
    Instruction,
    decode_boot,
    encode_boot,
    extend_script,
    read_boot,
    read_script,
    write_script_files,
)

CONTROLLER = Instruction("kernel_process", "component_controller", ("ctl", "start"))
RUNTIME_BOOT = Instruction("apply", "component.start_boot", ("runtime", "permanent"))


def _script(*instructions: Instruction) -> BootScript:
    if not instructions:
        instructions = (
            Instruction("progress", "preloaded"),
            Instruction("path", "kernel", ("/lib/kernel-9.0/modules",)),
            CONTROLLER,
            Instruction("apply", "component.start_boot", ("kernel", "permanent")),
            RUNTIME_BOOT,
            Instruction("apply", "component.start_boot", ("shop", "permanent")),
            Instruction("progress", "started"),
        )
    return BootScript(name="shop", version="0.2.0", instructions=instructions)


class TestExtendScript:
    def test_hooks_spliced_at_anchors(self) -> None:
        profile = Profile(
            kernel_processes=(KernelProcess("pidfile", "pid"), KernelProcess("metrics", "m")),
            config_providers=("shop.config:TomlProvider",),
        )
        result = extend_script(_script(), profile)
        assert isinstance(result, Ok)
        instructions = list(result.value.instructions)

        controller = instructions.index(CONTROLLER)
        assert instructions[controller - 2 : controller] == [
            Instruction("kernel_process", "pidfile", ("pid", "start")),
            Instruction("kernel_process", "metrics", ("m", "start")),
        ]
        runtime = instructions.index(RUNTIME_BOOT)
        assert instructions[runtime + 1] == Instruction(
            "apply", "config_provider.init", ("shop.config:TomlProvider",)
        )

    def test_relative_order_of_other_instructions_kept(self) -> None:
        original = _script()
        result = extend_script(original, Profile())
        assert isinstance(result, Ok)
        kept = [i for i in result.value.instructions if i in original.instructions]
        assert kept == list(original.instructions)
        assert len(result.value.instructions) == len(original.instructions) + 2

    def test_custom_runtime_component(self) -> None:
        boot = Instruction("apply", "component.start_boot", ("core", "permanent"))
        result = extend_script(_script(CONTROLLER, boot), Profile(runtime_component="core"))
        assert isinstance(result, Ok)
        assert result.value.instructions[-1].target == "config_provider.init"

    @pytest.mark.parametrize(
        "instructions",
        [
            (RUNTIME_BOOT,),
            (CONTROLLER,),
            (CONTROLLER, Instruction("apply", "component.load", ("runtime",))),
        ],
    )
    def test_anchor_not_found(self, instructions: tuple[Instruction, ...]) -> None:
        result = extend_script(_script(*instructions), Profile())
        assert isinstance(result, Err)
        assert result.error.kind == "anchor_not_found"
        assert result.error.category == "generation"


class TestFiles:
    def test_script_and_boot_files(self, tmp_path: Path) -> None:
        script = _script()
        result = write_script_files(tmp_path, script)
        assert result == Ok(tmp_path / "shop.boot")
        assert read_script(tmp_path / "shop.script") == Ok(script)
        assert read_boot(tmp_path / "shop.boot") == Ok(script)

    def test_boot_is_msgpack_of_script_payload(self) -> None:
        script = _script()
        assert decode_boot(encode_boot(script), path=Path("x.boot")) == Ok(script)

    def test_garbage_boot_file(self, tmp_path: Path) -> None:
        path = tmp_path / "shop.boot"
        path.write_bytes(b"\xc1\xc1\xc1")
        result = read_boot(path)
        assert isinstance(result, Err)
        assert result.error.kind == "malformed_descriptor"

    def test_missing_boot_file(self, tmp_path: Path) -> None:
        result = read_boot(tmp_path / "none.boot")
        assert isinstance(result, Err)
        assert result.error.kind == "io_failed"

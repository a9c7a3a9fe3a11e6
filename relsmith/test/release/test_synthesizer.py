"""Tests for relsmith.release.synthesizer module."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from relsmith.core.result import Err, Ok
from relsmith.output.console import MockConsole
from relsmith.output.reporter import Reporter
from relsmith.release.appup import Appup, Directive, read_appup, write_appup
from relsmith.release.diff import VersionDiff
from relsmith.release.synthesizer import AppupState, appup_target, synthesize_appups

type MakeComponent = Callable[..., Path]


def _lib(tmp_path: Path, make_component: MakeComponent) -> Path:
    lib = tmp_path / "lib"
    make_component("shop", "0.1.0", root=lib, modules={"shop": "a", "shop_cart": "a"})
    make_component("shop", "0.2.0", root=lib, modules={"shop": "a", "shop_cart": "b"})
    make_component("logger", "1.0", root=lib, modules={"logger": "a"})
    make_component("logger", "1.1", root=lib, modules={"logger": "b", "logger_fmt": "a"})
    return lib


CHANGED = VersionDiff(changed=(("shop", "0.1.0", "0.2.0"), ("logger", "1.0", "1.1")))


def test_generates_missing_appups_in_name_order(
    tmp_path: Path, make_component: MakeComponent
) -> None:
    lib = _lib(tmp_path, make_component)
    result = synthesize_appups(CHANGED, lib_path=lib, reporter=Reporter.silent(), jobs=2)
    assert isinstance(result, Ok)
    assert [o.name for o in result.value] == ["logger", "shop"]
    assert all(o.state is AppupState.GENERATED for o in result.value)

    shop = result.value[1]
    assert shop.path == appup_target(lib, "shop", "0.2.0")
    assert shop.appup.up == (Directive("load_module", "shop_cart"),)
    assert read_appup(shop.path) == Ok(shop.appup)


def test_valid_shipped_appup_is_kept(tmp_path: Path, make_component: MakeComponent) -> None:
    lib = _lib(tmp_path, make_component)
    shipped = Appup(
        name="shop", old="0.1.0", new="0.2.0", up=(Directive("apply", "shop.migrate"),)
    )
    target = appup_target(lib, "shop", "0.2.0")
    write_appup(target, shipped)

    diff = VersionDiff(changed=(("shop", "0.1.0", "0.2.0"),))
    result = synthesize_appups(diff, lib_path=lib, reporter=Reporter.silent())
    assert isinstance(result, Ok)
    (outcome,) = result.value
    assert outcome.state is AppupState.PROVIDED
    assert outcome.appup == shipped
    assert read_appup(target) == Ok(shipped)


def test_user_appup_is_copied_from_appups_dir(
    tmp_path: Path, make_component: MakeComponent
) -> None:
    lib = _lib(tmp_path, make_component)
    appups = tmp_path / "rel" / "appups"
    user = Appup(name="shop", old="0.1.0", new="0.2.0", down=(Directive("apply", "shop.undo"),))
    write_appup(appups / "shop" / "0.1.0_to_0.2.0.appup", user)

    diff = VersionDiff(changed=(("shop", "0.1.0", "0.2.0"),))
    result = synthesize_appups(diff, lib_path=lib, appups_dir=appups, reporter=Reporter.silent())
    assert isinstance(result, Ok)
    assert result.value[0].state is AppupState.PROVIDED
    assert read_appup(appup_target(lib, "shop", "0.2.0")) == Ok(user)


def test_invalid_appup_is_backed_up_and_superseded(
    tmp_path: Path, make_component: MakeComponent
) -> None:
    lib = _lib(tmp_path, make_component)
    target = appup_target(lib, "shop", "0.2.0")
    write_appup(target, Appup(name="shop", old="0.0.9", new="0.2.0"))

    console = MockConsole()
    diff = VersionDiff(changed=(("shop", "0.1.0", "0.2.0"),))
    result = synthesize_appups(diff, lib_path=lib, reporter=Reporter(console=console))
    assert isinstance(result, Ok)
    assert result.value[0].state is AppupState.GENERATED
    assert target.with_name("shop.appup.bak").is_file()
    assert console.find("superseded")


def test_unparsable_appup_is_superseded(tmp_path: Path, make_component: MakeComponent) -> None:
    lib = _lib(tmp_path, make_component)
    target = appup_target(lib, "shop", "0.2.0")
    target.write_text("not json", encoding="utf-8")

    reporter = Reporter.silent()
    diff = VersionDiff(changed=(("shop", "0.1.0", "0.2.0"),))
    result = synthesize_appups(diff, lib_path=lib, reporter=reporter)
    assert isinstance(result, Ok)
    assert result.value[0].state is AppupState.GENERATED
    assert len(reporter.warnings) == 1


def test_one_failure_aborts(tmp_path: Path, make_component: MakeComponent) -> None:
    lib = _lib(tmp_path, make_component)
    diff = VersionDiff(changed=(("logger", "1.0", "1.1"), ("shop", "0.0.1", "0.2.0")))
    result = synthesize_appups(diff, lib_path=lib, reporter=Reporter.silent())
    assert isinstance(result, Err)
    assert result.error.kind == "appup_generation_failed"


def test_transforms_are_applied(tmp_path: Path, make_component: MakeComponent) -> None:
    class Marker:
        def up(self, component, old, new, directives):  # type: ignore[no-untyped-def]
            return (*directives, Directive("apply", f"{component}.marker"))

        def down(self, component, old, new, directives):  # type: ignore[no-untyped-def]
            return directives

    lib = _lib(tmp_path, make_component)
    result = synthesize_appups(
        CHANGED, lib_path=lib, transforms=(Marker(),), reporter=Reporter.silent()
    )
    assert isinstance(result, Ok)
    assert result.value[0].appup.up[-1] == Directive("apply", "logger.marker")


def test_nothing_changed(tmp_path: Path, make_component: MakeComponent) -> None:
    result = synthesize_appups(VersionDiff(), lib_path=tmp_path, reporter=Reporter.silent())
    assert result == Ok(())


def test_raising_transform_is_an_error(tmp_path: Path, make_component: MakeComponent) -> None:
    class Exploding:
        def up(self, component, old, new, directives):  # type: ignore[no-untyped-def]
            raise ValueError("transform exploded")

        def down(self, component, old, new, directives):  # type: ignore[no-untyped-def]
            return directives

    lib = _lib(tmp_path, make_component)
    result = synthesize_appups(
        CHANGED, lib_path=lib, transforms=(Exploding(),), reporter=Reporter.silent()
    )
    assert isinstance(result, Err)
    assert result.error.kind == "appup_generation_failed"
    assert "logger" in result.error.message

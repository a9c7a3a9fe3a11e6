"""Tests for relsmith.core.errors module."""

from pathlib import Path
from typing import get_args

from relsmith.core.errors import AssemblyError, ErrorCode, ErrorKind, filesystem_error


class TestErrorCode:
    def test_values_are_stable(self) -> None:
        assert int(ErrorCode.OK) == 0
        assert int(ErrorCode.USER_ERROR) == 1
        assert int(ErrorCode.ENV_ERROR) == 2
        assert int(ErrorCode.BUILD_ERROR) == 3
        assert int(ErrorCode.IO_ERROR) == 5

    def test_str(self) -> None:
        assert str(ErrorCode.USER_ERROR) == "user error"
        assert ErrorCode.OK.is_success
        assert not ErrorCode.IO_ERROR.is_success


class TestAssemblyError:
    def test_every_kind_has_a_category(self) -> None:
        for kind in get_args(ErrorKind):
            error = AssemblyError(kind=kind, message="x")
            assert error.category in ("configuration", "resolution", "generation", "filesystem")

    def test_categories(self) -> None:
        assert AssemblyError(kind="invalid_start_type", message="").category == "configuration"
        assert AssemblyError(kind="invalid_cookie", message="").category == "configuration"
        assert AssemblyError(kind="bad_upgrade_spec", message="").category == "configuration"
        assert AssemblyError(kind="missing_application", message="").category == "resolution"
        assert AssemblyError(kind="malformed_descriptor", message="").category == "resolution"
        assert AssemblyError(kind="appup_generation_failed", message="").category == "generation"
        assert AssemblyError(kind="anchor_not_found", message="").category == "generation"
        assert AssemblyError(kind="io_failed", message="").category == "filesystem"

    def test_exit_codes(self) -> None:
        assert AssemblyError(kind="invalid_cookie", message="").exit_code == ErrorCode.USER_ERROR
        missing = AssemblyError(kind="missing_application", message="")
        assert missing.exit_code == ErrorCode.ENV_ERROR
        assert AssemblyError(kind="relup_failed", message="").exit_code == ErrorCode.BUILD_ERROR
        assert AssemblyError(kind="io_failed", message="").exit_code == ErrorCode.IO_ERROR

    def test_pretty(self) -> None:
        assert AssemblyError(kind="missing_release", message="nope").pretty() == "nope"
        error = AssemblyError(kind="missing_release", message="nope", hint="define one")
        assert error.pretty() == "nope (hint: define one)"


class TestFilesystemError:
    def test_carries_operation_and_path(self) -> None:
        path = Path("/tmp/x")
        error = filesystem_error("write", path, PermissionError(13, "Permission denied"))
        assert error.kind == "io_failed"
        assert error.operation == "write"
        assert error.path == path
        assert "Permission denied" in error.message
        assert str(path) in error.message

"""Error taxonomy and exit codes.

Errors are plain tagged values carried inside ``Err``. The ``kind`` tag is the
stable identifier; the ``category`` is derived from it and decides the process
exit code when a command fails.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Literal

__all__ = [
    "AssemblyError",
    "ErrorCategory",
    "ErrorCode",
    "ErrorKind",
    "filesystem_error",
]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    These values are used as process exit codes and should remain stable.
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    IO_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK


ErrorCategory = Literal["configuration", "resolution", "generation", "filesystem"]

ErrorKind = Literal[
    # configuration
    "invalid_start_type",
    "invalid_cookie",
    "bad_upgrade_spec",
    "undetectable_runtime_version",
    "runtime_missing_for_upgrades",
    "missing_environment",
    "missing_release",
    "invalid_transform",
    # resolution
    "missing_application",
    "missing_required_library",
    "dependency_cycle",
    "missing_descriptor",
    "malformed_descriptor",
    # generation
    "appup_generation_failed",
    "relup_failed",
    "boot_script_failed",
    "anchor_not_found",
    # filesystem
    "io_failed",
]

_CATEGORIES: dict[str, ErrorCategory] = {
    "invalid_start_type": "configuration",
    "invalid_cookie": "configuration",
    "bad_upgrade_spec": "configuration",
    "undetectable_runtime_version": "configuration",
    "runtime_missing_for_upgrades": "configuration",
    "missing_environment": "configuration",
    "missing_release": "configuration",
    "invalid_transform": "configuration",
    "missing_application": "resolution",
    "missing_required_library": "resolution",
    "dependency_cycle": "resolution",
    "missing_descriptor": "resolution",
    "malformed_descriptor": "resolution",
    "appup_generation_failed": "generation",
    "relup_failed": "generation",
    "boot_script_failed": "generation",
    "anchor_not_found": "generation",
    "io_failed": "filesystem",
}

_EXIT_CODES: dict[ErrorCategory, ErrorCode] = {
    "configuration": ErrorCode.USER_ERROR,
    "resolution": ErrorCode.ENV_ERROR,
    "generation": ErrorCode.BUILD_ERROR,
    "filesystem": ErrorCode.IO_ERROR,
}


@dataclass(frozen=True, slots=True)
class AssemblyError:
    """Canonical error payload for every assembly stage.

    Attributes:
        kind: Stable error tag.
        message: Human readable description.
        hint: Optional follow-up for the user.
        path: File or directory involved, when there is one.
        operation: Filesystem operation that failed (filesystem errors only).
    """

    kind: ErrorKind
    message: str
    hint: str | None = None
    path: Path | None = None
    operation: str | None = None

    @property
    def category(self) -> ErrorCategory:
        return _CATEGORIES[self.kind]

    @property
    def exit_code(self) -> ErrorCode:
        return _EXIT_CODES[self.category]

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message


def filesystem_error(operation: str, path: Path, exc: OSError) -> AssemblyError:
    """Wrap an OSError with the operation and path that caused it."""
    reason = exc.strerror or str(exc)
    return AssemblyError(
        kind="io_failed",
        message=f"{operation} failed for {path}: {reason}",
        path=path,
        operation=operation,
    )

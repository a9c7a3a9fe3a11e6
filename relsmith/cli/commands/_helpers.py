"""Shared helpers for CLI commands."""

from __future__ import annotations

import typer

from relsmith.core.errors import AssemblyError, ErrorCode
from relsmith.core.result import Err, Result
from relsmith.output.console import ConsoleProtocol, Style


def unwrap_or_exit[T, E](result: Result[T, E], console: ConsoleProtocol) -> T:
    """Return the Ok value, or print the error and exit.

    This helper reduces boilerplate for the common pattern:
        match result:
            case Err(e):
                console.error(e.message)
                raise typer.Exit(code=int(e.exit_code))
            case Ok(value):
                ...

    Assembly errors exit with the code of their category; any other error
    (config loading) is a user error.
    """
    if isinstance(result, Err):
        error = result.error
        message: str = getattr(error, "message", str(error))
        hint: str | None = getattr(error, "hint", None)
        console.error(message)
        if hint:
            console.print(f"hint: {hint}", Style.DIM)
        code = error.exit_code if isinstance(error, AssemblyError) else ErrorCode.USER_ERROR
        raise typer.Exit(code=int(code))
    return result.value

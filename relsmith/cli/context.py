from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from relsmith.core.errors import ErrorCode
from relsmith.core.result import Err
from relsmith.output.console import ConsoleProtocol, RichConsole
from relsmith.output.reporter import Reporter
from relsmith.release.config import ProjectConfig, load_project_config


@dataclass(frozen=True, slots=True)
class CLIContext:
    config: ProjectConfig
    console: ConsoleProtocol
    reporter: Reporter


def build_context(
    config_path: Path, *, verbose: bool = False, console: ConsoleProtocol | None = None
) -> CLIContext:
    console = console or RichConsole()
    loaded = load_project_config(config_path)
    if isinstance(loaded, Err):
        console.error(loaded.error.message)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    return CLIContext(
        config=loaded.value,
        console=console,
        reporter=Reporter(console=console, verbose=verbose),
    )

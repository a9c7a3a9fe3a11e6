"""Build command - assemble a release, optionally with an upgrade plan."""

from __future__ import annotations

from pathlib import Path

import typer

from relsmith.cli.commands._helpers import unwrap_or_exit
from relsmith.cli.context import build_context
from relsmith.core.config import DEFAULT_CONFIG_PATH
from relsmith.output.console import Style
from relsmith.release.assembler import assemble
from relsmith.release.component import ComponentIndex
from relsmith.release.config import parse_upgrade_source


def build(
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Project config file"),
    env: str | None = typer.Option(None, "--env", help="Environment to build with"),
    release: str | None = typer.Option(None, "--release", help="Release to build"),
    upgrade: bool = typer.Option(False, "--upgrade", help="Generate an upgrade plan"),
    upfrom: str | None = typer.Option(
        None,
        "--upfrom",
        help="Version to upgrade from (default: latest older release)",
        show_default=False,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print debug output"),
) -> None:
    """Assemble a release."""
    ctx = build_context(config, verbose=verbose)

    project = ctx.config.select(
        release=release,
        environment=env,
        is_upgrade=True if (upgrade or upfrom) else None,
        upgrade_from=parse_upgrade_source(upfrom) if upfrom else None,
    )

    index = unwrap_or_exit(
        ComponentIndex.scan((*project.lib_dirs, project.runtime.lib_dir)), ctx.console
    )
    result = unwrap_or_exit(assemble(project, index, reporter=ctx.reporter), ctx.console)

    for path in result.files:
        ctx.console.print(str(path), Style.DIM)
    if result.warnings:
        ctx.console.warning(f"{len(result.warnings)} warning(s)")

"""Versions command - list the releases already built."""

from __future__ import annotations

from pathlib import Path

import typer

from relsmith.cli.commands._helpers import unwrap_or_exit
from relsmith.cli.context import build_context
from relsmith.core.config import DEFAULT_CONFIG_PATH
from relsmith.output.console import Style
from relsmith.release.configure import apply_environment, select_environment, select_release
from relsmith.release.versions import list_release_versions


def versions(
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Project config file"),
    env: str | None = typer.Option(None, "--env", help="Environment"),
    release: str | None = typer.Option(None, "--release", help="Release name"),
) -> None:
    """List built versions of a release, newest first."""
    ctx = build_context(config)
    project = ctx.config.select(release=release, environment=env)

    environment = unwrap_or_exit(select_environment(project), ctx.console)
    selected = unwrap_or_exit(select_release(project), ctx.console)

    rel = apply_environment(selected, environment)
    found = list_release_versions(rel.output_dir)
    if not found:
        ctx.console.print(f"no releases of {rel.name} in {rel.output_dir}", Style.DIM)
        return
    for vsn in found:
        ctx.console.print(vsn)

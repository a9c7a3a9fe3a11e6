"""Diff command - compare two release descriptors."""

from __future__ import annotations

from pathlib import Path

import typer

from relsmith.cli.commands._helpers import unwrap_or_exit
from relsmith.output.console import RichConsole, Style
from relsmith.release.descriptor import read_descriptor
from relsmith.release.diff import diff_components


def diff(
    old: Path = typer.Argument(..., help="Old release descriptor (.rel)"),
    new: Path = typer.Argument(..., help="New release descriptor (.rel)"),
) -> None:
    """Show which components an upgrade adds, changes or removes."""
    console = RichConsole()
    old_rel = unwrap_or_exit(read_descriptor(old), console)
    new_rel = unwrap_or_exit(read_descriptor(new), console)

    d = diff_components(old_rel.name_versions(), new_rel.name_versions())
    console.header(f"{old_rel.version} -> {new_rel.version}")
    for name, vsn in d.added:
        console.print(f"+ {name} {vsn}", Style.SUCCESS)
    for name, old_vsn, new_vsn in d.changed:
        console.print(f"~ {name} {old_vsn} -> {new_vsn}", Style.WARNING)
    for name, vsn in d.removed:
        console.print(f"- {name} {vsn}", Style.ERROR)
    if d.is_empty:
        console.print("no changes", Style.DIM)

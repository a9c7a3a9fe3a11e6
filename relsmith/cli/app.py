from __future__ import annotations

import typer

from relsmith import __version__
from relsmith.cli.commands.build_cmd import build
from relsmith.cli.commands.diff_cmd import diff
from relsmith.cli.commands.versions_cmd import versions


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands
app.command()(build)
app.command()(diff)
app.command()(versions)


@app.callback(invoke_without_command=True)
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
) -> None:
    if version:
        typer.echo(__version__)
        raise typer.Exit(code=0)


def main() -> None:
    app()

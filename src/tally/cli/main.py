"""tally CLI entry point."""

import typer

from tally import __version__
from tally.cli.browse_cmd import conversations, run, runs, show

app = typer.Typer(
    name="tally",
    help="Browse stored agent conversations and evaluation runs",
    no_args_is_help=True,
)

# Register subcommands
app.command()(conversations)
app.command()(runs)
app.command()(show)
app.command()(run)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"tally {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Browse stored agent conversations and evaluation runs."""

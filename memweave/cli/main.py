"""
memweave CLI - Command Line Interface

Main entry point for the `memweave` command.
"""

import typer
from rich.console import Console

from memweave.__version__ import __version__
from memweave.cli.commands.context import app as context_app

# Initialize Typer app
app = typer.Typer(
    name="memweave",
    help="Budgeted context windows from agent memory",
    add_completion=False,
)

# Add subcommands
app.add_typer(context_app, name="context")

console = Console()


@app.command()
def version():
    """Show memweave version."""
    console.print(f"[bold green]memweave[/bold green] version [cyan]{__version__}[/cyan]")


if __name__ == "__main__":
    app()

"""Main Typer application — imports and registers all CLI commands.

Entry point: ``userrelay`` (configured via pyproject.toml project.scripts).
"""

from __future__ import annotations

import typer

from userrelay.cli.commands.inspect_cmd import inspect_cmd
from userrelay.cli.commands.run import run_cmd
from userrelay.cli.commands.setup_pubsub import setup_pubsub_cmd

app = typer.Typer(
    name="userrelay",
    help="userrelay: relays user change-data-capture events to public consumers.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="run", help="Run the relay worker against Pub/Sub.")(run_cmd)
app.command(name="inspect", help="Decode and sanitize a raw change-log payload.")(inspect_cmd)
app.command(name="setup-pubsub", help="Create Pub/Sub topics and subscriptions.")(
    setup_pubsub_cmd
)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()

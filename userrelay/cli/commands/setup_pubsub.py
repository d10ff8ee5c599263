"""``userrelay setup-pubsub`` — provision Pub/Sub topics and subscriptions.

Usage::

    userrelay setup-pubsub "my-project,cdc.users:worker.cdc.users.sub,shared.users.UserEvents:audit.sub"
"""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from userrelay.bridge import provisioning

console = Console()


def setup_pubsub_cmd(
    topology: str = typer.Argument(
        ...,
        help="PROJECT,TOPIC1:SUB11:SUB12,TOPIC2:SUB21 — topics and their subscriptions.",
    ),
) -> None:
    """Create every topic and subscription named in TOPOLOGY."""
    try:
        parsed = provisioning.parse_topology(topology)
    except ValueError as exc:
        console.print(f"[red]Invalid topology:[/red] {exc}")
        raise typer.Exit(code=2)

    pairs = provisioning.provision(parsed)

    table = Table(title=f"Pub/Sub topology for {parsed.project_id}")
    table.add_column("Topic", style="cyan")
    table.add_column("Subscription", style="green")
    for topic_path, subscription_path in pairs:
        table.add_row(topic_path, subscription_path)
    console.print(table)

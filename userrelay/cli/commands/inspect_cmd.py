"""``userrelay inspect`` — decode and sanitize a raw payload offline.

Runs a single change-log payload through the decoder and the informer and
shows what would be published, without touching the broker.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.json import JSON
from rich.panel import Panel

from userrelay.core.decoder import DecodeError, build_decoder
from userrelay.core.informer import Informer
from userrelay.core.publisher import serialize_change

console = Console()


def inspect_cmd(
    payload_file: Path = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True, help="Raw change-log payload (JSON)."
    ),
    variant: str = typer.Option(
        "relational", "--variant", help="Envelope variant: relational or document."
    ),
    entity: str = typer.Option(
        "users", "--entity", help="Table or collection whose changes are relayed."
    ),
    message_id: str = typer.Option(
        "inspect-1", "--message-id", help="Message id to assign to the change."
    ),
) -> None:
    """Show the outbound event a raw payload would produce."""
    try:
        decoder = build_decoder(variant, entity)
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=2)

    try:
        change = decoder.decode(payload_file.read_bytes(), message_id)
    except DecodeError as exc:
        console.print(Panel(str(exc), title="Decode error", border_style="red"))
        raise typer.Exit(code=1)

    if change is None:
        console.print(
            f"[yellow]Ignored:[/yellow] message does not belong to {entity!r} "
            "and would be acknowledged without publishing."
        )
        return

    sanitized = Informer().sanitize(change)
    if sanitized is None:
        console.print(
            "[yellow]Suppressed:[/yellow] no public fields changed; "
            "the message would be acknowledged without publishing."
        )
        return

    body = serialize_change(sanitized).decode("utf-8")
    console.print(
        Panel(JSON(body), title=f"Outbound event {message_id}", border_style="green")
    )

"""``userrelay run`` — start the relay worker.

Consumes the CDC subscription on a worker thread and republishes
sanitized user events until SIGINT or SIGTERM is received.
"""

from __future__ import annotations

import logging
import signal
import threading

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from userrelay.bridge.transport import PubSubTransport
from userrelay.config import RelayConfig
from userrelay.core.relay import build_relay

console = Console()
logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )


def run_cmd(
    variant: str = typer.Option(
        None, "--variant", help="Envelope variant: relational or document."
    ),
    entity: str = typer.Option(
        None, "--entity", help="Table or collection whose changes are relayed."
    ),
    project: str = typer.Option(None, "--project", help="Pub/Sub project id."),
    subscription: str = typer.Option(
        None, "--subscription", help="Inbound CDC subscription id."
    ),
    topic: str = typer.Option(None, "--topic", help="Outbound user-events topic id."),
) -> None:
    """Run the relay worker until interrupted.

    Options override the corresponding USERRELAY_* settings.
    """
    overrides = {
        "envelope_variant": variant,
        "target_entity": entity,
        "project_id": project,
        "subscription_id": subscription,
        "topic_id": topic,
    }
    try:
        settings = RelayConfig(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as exc:
        console.print(f"[red]Invalid configuration:[/red] {exc}")
        raise typer.Exit(code=2)

    _configure_logging(settings.log_level)

    transport = PubSubTransport.from_config(settings)
    relay = build_relay(transport, settings.envelope_variant, settings.target_entity)

    stop = threading.Event()
    failures: list[BaseException] = []

    def _request_stop(signum: int, _frame: object) -> None:
        logger.info("Received %s, stopping relay.", signal.Signals(signum).name)
        stop.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, _request_stop)

    def _consume() -> None:
        try:
            relay.consume(transport, stop)
        except Exception as exc:
            logger.exception("Relay consume loop failed")
            failures.append(exc)
            stop.set()

    logger.info(
        "Relaying %s changes of %r from %s to %s",
        settings.envelope_variant.value,
        settings.target_entity,
        transport.subscription_path,
        transport.topic_path,
    )
    worker = threading.Thread(target=_consume, name="relay-consumer", daemon=True)
    worker.start()
    while worker.is_alive():
        worker.join(timeout=settings.shutdown_poll_seconds)

    transport.close()
    if failures:
        raise typer.Exit(code=1)

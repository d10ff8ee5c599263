"""userrelay CLI — Typer-based command-line interface.

Provides the ``userrelay`` command with subcommands for running the relay
worker, inspecting raw change-log payloads offline, and provisioning the
Pub/Sub topology.

All output uses Rich for formatted terminal display.
"""

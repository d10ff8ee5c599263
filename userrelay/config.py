"""Relay configuration — env-driven.

Centralized config using pydantic-settings.  Reads from a .env file and
USERRELAY_* environment variables.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

from userrelay.models.envelopes import EnvelopeVariant


class RelayConfig(BaseSettings):
    """Relay worker configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export USERRELAY_ENVELOPE_VARIANT=document
        export USERRELAY_PROJECT_ID=my-project
        export USERRELAY_LOG_LEVEL=DEBUG

    Or via .env file::

        USERRELAY_ENVIRONMENT=production
        USERRELAY_SUBSCRIPTION_ID=worker.cdc.users.sub

    The Pub/Sub client libraries honour ``PUBSUB_EMULATOR_HOST`` on their
    own; it needs no setting here.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="USERRELAY_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Change-log source
    envelope_variant: EnvelopeVariant = EnvelopeVariant.RELATIONAL
    target_entity: str = "users"  # table or collection name

    # Pub/Sub
    project_id: str = "userrelay"
    subscription_id: str = "worker.cdc.users.sub"
    topic_id: str = "shared.users.UserEvents"
    publish_timeout_seconds: float = 30.0
    max_outstanding_messages: int = 100
    shutdown_poll_seconds: float = 0.5

    @property
    def is_production(self) -> bool:
        """Whether running in production mode."""
        return self.environment == "production"


# Module-level singleton — import as `from userrelay.config import config`
config = RelayConfig()

"""Configuration via environment variables.

Each settings group reads its own ``COURIER_*`` prefix, e.g.
``COURIER_BROKER_HOST`` or ``COURIER_MAIL_SMTP_HOST``. Components never read
the environment themselves; they take plain constructor arguments, and the
worker entry point wires these settings into them.
"""

from __future__ import annotations

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BrokerSettings(BaseSettings):
    """AMQP broker connection settings."""

    model_config = SettingsConfigDict(env_prefix="COURIER_BROKER_")

    host: str = "localhost"
    port: int = Field(default=5672, ge=1, le=65535)
    username: str = "guest"
    password: str = "guest"
    virtual_host: str = "/"
    reconnect_interval: float = Field(default=10.0, gt=0)
    connect_timeout: float | None = None


class MailSettings(BaseSettings):
    """Outbound SMTP and mail queue settings."""

    model_config = SettingsConfigDict(env_prefix="COURIER_MAIL_")

    smtp_host: str = "localhost"
    smtp_port: int = Field(default=587, ge=1, le=65535)
    smtp_username: str | None = None
    smtp_password: str | None = None
    use_tls: bool = True
    timeout: float = 10.0
    from_email: str = "noreply@localhost"
    from_name: str = ""
    queue_name: str = Field(default="mail", min_length=1)


class DispatchSettings(BaseSettings):
    """Consumer loop, retry and dead-letter settings."""

    model_config = SettingsConfigDict(env_prefix="COURIER_DISPATCH_")

    prefetch_count: int = Field(default=1, ge=1)
    max_attempts: int = Field(default=5, ge=1)
    retry_base_delay: float = Field(default=1.0, ge=0)
    retry_max_delay: float = Field(default=30.0, ge=0)
    restart_delay: float = Field(default=5.0, ge=0)
    dead_letter_suffix: str = ".dead-letter"
    log_level: str = "INFO"


class Settings(BaseModel):
    """All worker configuration."""

    broker: BrokerSettings = Field(default_factory=BrokerSettings)
    mail: MailSettings = Field(default_factory=MailSettings)
    dispatch: DispatchSettings = Field(default_factory=DispatchSettings)


def load_settings() -> Settings:
    """Read every settings group from the environment."""
    return Settings()

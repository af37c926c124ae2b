"""Process settings — env-driven, read once at startup.

Reads ``DROMEDARY_*`` environment variables and an optional ``.env`` file.
Credentials are never part of a route configuration file; they arrive here
and are handed to components through the ``ComponentContext``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from dromedary.models.context import ComponentContext, EmailSender


class DromedarySettings(BaseSettings):
    """Runtime settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export DROMEDARY_LOG_LEVEL=DEBUG
        export DROMEDARY_SECRET_KEY=0x5f3c...
        export DROMEDARY_MAX_IN_FLIGHT=4

    Or via .env file::

        DROMEDARY_SMTP_HOST=smtp.example.com
        DROMEDARY_SMTP_USER=robot
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="DROMEDARY_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Runtime
    log_level: str = "INFO"
    config_path: Path | None = None

    # Credentials, exposed to components as context keys
    secret_key: str = ""  # keys["default"]
    status_key: str = ""  # keys["status"]

    # Route mailboxes
    mailbox_size: int = 1000  # 0 = unbounded
    max_in_flight: int = 16

    # Outbound mail
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from: str = "dromedary@localhost"
    smtp_starttls: bool = True

    @property
    def smtp_enabled(self) -> bool:
        return bool(self.smtp_host)

    def context_keys(self) -> dict[str, str]:
        keys: dict[str, str] = {}
        if self.secret_key:
            keys["default"] = self.secret_key
        if self.status_key:
            keys["status"] = self.status_key
        return keys


def build_context(
    settings: DromedarySettings,
    *,
    logger: logging.Logger | None = None,
    email_sender: EmailSender | None = None,
) -> ComponentContext:
    """Create the process-wide ``ComponentContext`` from *settings*.

    When no *email_sender* is given and SMTP is configured, an SMTP sender
    is installed.
    """
    if email_sender is None and settings.smtp_enabled:
        from dromedary.components.email import EmailOptions, smtp_sender

        email_sender = smtp_sender(
            EmailOptions(
                smtp_host=settings.smtp_host,
                smtp_port=settings.smtp_port,
                smtp_user=settings.smtp_user,
                smtp_password=settings.smtp_password,
                default_from=settings.smtp_from,
                starttls=settings.smtp_starttls,
            )
        )
    return ComponentContext(
        logger=logger or logging.getLogger("dromedary.components"),
        keys=settings.context_keys(),
        email_sender=email_sender,
    )


# Module-level singleton, import as `from dromedary.config import settings`
settings = DromedarySettings()

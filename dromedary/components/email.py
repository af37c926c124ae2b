"""Email component — a producer turning payloads into email messages.

The endpoint path names a channel (``email:ops``); query parameters supply
defaults: ``to`` (repeatable), ``subject``, ``template`` and ``from``.
Fields present on a mapping payload take precedence over the query.

Delivery goes through ``context.email_sender`` when one is configured.
Without a sender the message is logged and kept in a pending buffer;
``flush()`` retrieves and clears it.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage as MIMEMessage
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from dromedary.components._formatting import (
    as_list,
    coalesce,
    payload_field,
    render_payload,
)
from dromedary.core.components import Component
from dromedary.models.context import ComponentContext, EmailSender
from dromedary.models.endpoints import EndpointAddress

logger = logging.getLogger(__name__)


class EmailOptions(BaseModel):
    """SMTP connection settings and the default sender address."""

    model_config = ConfigDict(frozen=True)

    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    default_from: str = "dromedary@localhost"
    starttls: bool = True
    timeout: float = 30.0


class EmailMessage(BaseModel):
    """An outgoing message ready for delivery."""

    model_config = ConfigDict(frozen=True)

    to: list[str]
    subject: str
    body: str
    sender: str
    channel: str = "default"
    headers: dict[str, str] = Field(default_factory=dict)


class EmailProducer:
    """Builds ``EmailMessage`` objects and hands them to the configured sender."""

    def __init__(
        self,
        endpoint: EndpointAddress,
        context: ComponentContext,
        options: EmailOptions,
    ) -> None:
        self.channel = endpoint.path or "default"
        self._endpoint = endpoint
        self._options = options
        self._sender: EmailSender | None = context.email_sender
        self._log = context.child_logger("email")
        self._pending: list[EmailMessage] = []

    def build_message(self, payload: Any) -> EmailMessage:
        """Resolve recipients, subject, body and sender for *payload*."""
        endpoint = self._endpoint
        to = as_list(coalesce(payload_field(payload, "to"), endpoint.get_all("to")))
        subject = coalesce(
            payload_field(payload, "subject"),
            endpoint.get_first("subject"),
            endpoint.get_first("template"),
        ) or f"Dromedary notification ({self.channel})"
        if payload is None:
            body = "No payload provided"
        else:
            body = coalesce(
                payload_field(payload, "body"), payload_field(payload, "content")
            ) or render_payload(payload)
        sender = coalesce(
            payload_field(payload, "from"),
            endpoint.get_first("from"),
            self._options.default_from,
        )
        return EmailMessage(
            to=to,
            subject=str(subject),
            body=str(body),
            sender=str(sender),
            channel=self.channel,
            headers={"X-Dromedary-Channel": self.channel},
        )

    async def send(self, payload: Any) -> None:
        message = self.build_message(payload)
        if self._sender is not None:
            await self._sender(message, {"channel": self.channel, "options": self._options})
            return
        self._log.info(
            "[email:%s -> %s] subject: %s | body: %s",
            self.channel,
            ", ".join(message.to) or "unspecified",
            message.subject,
            message.body,
        )
        self._pending.append(message)

    def flush(self) -> list[EmailMessage]:
        """Return and clear all pending messages."""
        messages = list(self._pending)
        self._pending.clear()
        return messages

    @property
    def pending_count(self) -> int:
        return len(self._pending)


class EmailComponent(Component):
    """Outbound mail sink registered under the ``email`` scheme."""

    def __init__(self, options: EmailOptions | None = None) -> None:
        self.options = options or EmailOptions()

    def create_producer(
        self, endpoint: EndpointAddress, context: ComponentContext
    ) -> EmailProducer:
        return EmailProducer(endpoint, context, self.options)


# ---------------------------------------------------------------------------
# SMTP delivery
# ---------------------------------------------------------------------------


def to_mime(message: EmailMessage) -> MIMEMessage:
    """Convert an ``EmailMessage`` into a stdlib MIME message."""
    mime = MIMEMessage()
    mime["From"] = message.sender
    mime["To"] = ", ".join(message.to)
    mime["Subject"] = message.subject
    for name, value in message.headers.items():
        mime[name] = value
    mime.set_content(message.body)
    return mime


def smtp_sender(options: EmailOptions) -> EmailSender:
    """Return an async sender delivering through SMTP in a worker thread."""

    def deliver(message: EmailMessage) -> None:
        if not message.to:
            raise ValueError(f"email on channel {message.channel!r} has no recipients")
        with smtplib.SMTP(options.smtp_host, options.smtp_port, timeout=options.timeout) as server:
            if options.starttls:
                server.starttls()
            if options.smtp_user:
                server.login(options.smtp_user, options.smtp_password)
            server.send_message(to_mime(message))
        logger.debug("Sent email on channel %s to %s", message.channel, message.to)

    async def send(message: EmailMessage, _options: Any = None) -> None:
        await asyncio.to_thread(deliver, message)

    return send

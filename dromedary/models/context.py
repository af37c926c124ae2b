"""Process-wide component context handed to every component factory."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

EmailSender = Callable[[Any, Mapping[str, Any]], Awaitable[None]]


class ComponentContext(BaseModel):
    """Read-only configuration bag shared by all components.

    Created once at startup and never mutated during routing.

    Attributes
    ----------
    logger:
        Logger components should write to.
    keys:
        Credential material keyed by role (``"default"``, ``"status"``...).
    email_sender:
        Optional async callable ``(message, options)`` used by the email
        component instead of logging.
    resources:
        Shared adapter instances keyed by name (clients, pools, schedulers).
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    logger: logging.Logger = Field(
        default_factory=lambda: logging.getLogger("dromedary.components")
    )
    keys: dict[str, str | bytes] = Field(default_factory=dict)
    email_sender: EmailSender | None = None
    resources: dict[str, Any] = Field(default_factory=dict)

    def key(self, role: str = "default") -> str | bytes | None:
        """Return the credential for *role*, or ``None``."""
        return self.keys.get(role)

    def child_logger(self, name: str) -> logging.Logger:
        """A logger nested under the context logger, e.g. ``...components.email``."""
        return self.logger.getChild(name)

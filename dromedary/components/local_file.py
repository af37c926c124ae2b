"""Local file component — writes each payload to a JSON file.

Layout: {base_path}/{endpoint path}/{timestamp}-{id}.json

Payloads are serialized to canonical JSON so identical payloads produce
identical bytes.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from dromedary.core.canonical import canonical_json_bytes
from dromedary.core.components import Component
from dromedary.models.context import ComponentContext
from dromedary.models.endpoints import EndpointAddress
from dromedary.models.payload import to_payload


class LocalFileProducer:
    """Writes payloads under a single directory."""

    def __init__(self, directory: Path, log: logging.Logger) -> None:
        self.directory = directory
        self._log = log

    async def send(self, payload: Any) -> None:
        await asyncio.to_thread(self.write, payload)

    def write(self, payload: Any) -> Path:
        """Write *payload* and return the created file."""
        self.directory.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        target = self.directory / f"{stamp}-{uuid.uuid4().hex[:12]}.json"
        target.write_bytes(canonical_json_bytes(to_payload(payload)))
        self._log.debug("LocalFileProducer: wrote %s", target)
        return target

    def list_events(self) -> list[Path]:
        """List written files, oldest first."""
        if not self.directory.exists():
            return []
        return sorted(self.directory.glob("*.json"))

    def read_event(self, path: Path) -> Any:
        """Read and parse a single written file."""
        return json.loads(path.read_bytes())


class LocalFileComponent(Component):
    """File sink registered under e.g. the ``file`` scheme.

    Parameters
    ----------
    base_path:
        Root directory for written payloads.  Defaults to ``.dromedary/events``.
    """

    def __init__(self, base_path: Path | str | None = None) -> None:
        self.base_path = Path(base_path) if base_path else Path(".dromedary/events")

    def create_producer(
        self, endpoint: EndpointAddress, context: ComponentContext
    ) -> LocalFileProducer:
        relative = Path(endpoint.path.strip("/") or "default")
        if relative.is_absolute() or ".." in relative.parts:
            raise ValueError(f"file endpoint path must stay under {self.base_path}: {endpoint.path!r}")
        return LocalFileProducer(self.base_path / relative, context.child_logger("file"))

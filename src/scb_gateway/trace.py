"""Per-call diagnostic trace.

A ``Trace`` is created for every lookup call and passed explicitly through
the encoder, socket client, decoder, and dispatcher. Its entries are
returned to the caller as the envelope's ``logs`` list. Each entry is also
emitted as a structlog debug event so operators see the same steps in the
server log.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from .logging import get_logger

logger = get_logger(__name__)


class Trace:
    """Ordered list of diagnostic strings for a single call.

    Args:
        call_id: Identifier bound to every log event. Generated if omitted.

    Attributes:
        call_id: The call identifier.
        entries: Diagnostic strings in the order they were added.
    """

    def __init__(self, call_id: str | None = None) -> None:
        self.call_id = call_id or uuid.uuid4().hex[:12]
        self.entries: list[str] = []

    def add(self, message: str, **fields: object) -> None:
        """Append a diagnostic line and log it.

        Args:
            message: Human-readable line stored in the trace.
            **fields: Extra structured fields for the log event only.
        """
        self.entries.append(message)
        logger.debug("trace", call_id=self.call_id, message=message, **fields)

    def stamp(self, message: str) -> None:
        """Append a line prefixed with the current UTC time in ISO format."""
        now = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
        self.add(f"[{now}] {message}")

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def __repr__(self) -> str:
        return f"Trace(call_id={self.call_id!r}, entries={len(self.entries)})"

# docsign/services/events.py
"""
Post-commit events emitted by the signing core.

Handlers (audit recorder, rejected archiver) run after the primary state is
committed. A failing handler is retried, then logged and kept in
EventDispatcher.failures; it never fails the operation that emitted the
event.
"""
from __future__ import annotations

import logging
import uuid
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    user_id: Optional[int] = None
    external_email: Optional[str] = None
    ip_address: str = "unknown"
    user_agent: Optional[str] = None


@dataclass(frozen=True)
class SignatureEvent:
    """An auditable action on a document or one of its signatures."""
    action: str
    document_id: uuid.UUID
    actor: Actor
    signature_type: Optional[str] = None
    x: Optional[float] = None
    y: Optional[float] = None
    page: Optional[int] = None
    status: Optional[str] = None
    detail: Optional[str] = None


@dataclass(frozen=True)
class DocumentArchiveRequested:
    """Every signature of the document is rejected; keep a copy of the original."""
    document_id: uuid.UUID
    storage_key: str
    original_name: str


@dataclass
class HandlerFailure:
    event: Any
    handler: str
    error: str


Handler = Callable[[Any], None]


@dataclass
class EventDispatcher:
    """
    In-process dispatcher. `publish` runs every handler synchronously, in the
    caller's thread, right after the primary commit; a request therefore sees
    its own audit rows. Decoupling comes from the failure boundary: a handler
    exception is retried `attempts` times, then logged and appended to
    `failures`, and `publish` returns normally.
    """
    attempts: int = 1
    max_failures: int = 100
    _handlers: dict = field(default_factory=dict)
    failures: deque = field(init=False)

    def __post_init__(self) -> None:
        self.failures = deque(maxlen=self.max_failures)

    def subscribe(self, event_type: type, handler: Handler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)

    def publish(self, event: Any) -> None:
        for handler in self._handlers.get(type(event), []):
            self._run(handler, event)

    def _run(self, handler: Handler, event: Any) -> None:
        name = getattr(handler, "__qualname__", repr(handler))
        last_exc: Exception | None = None

        for attempt in range(1, max(1, self.attempts) + 1):
            try:
                handler(event)
                return
            except Exception as exc:
                last_exc = exc
                logger.warning("Event handler %s failed (attempt %d/%d): %s", name, attempt, self.attempts, exc)

        logger.error("Event handler %s gave up on %s: %s", name, type(event).__name__, last_exc)
        self.failures.append(HandlerFailure(event=event, handler=name, error=str(last_exc)))

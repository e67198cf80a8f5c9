from __future__ import annotations

import threading
from dataclasses import replace
from typing import List, Optional, Protocol, Sequence

from ..core.constants import DEFAULT_AUDIT_LIMIT
from .model import AuditEvent


class AuditRepository(Protocol):
    def append(self, event: AuditEvent) -> None:
        raise NotImplementedError

    def list_events(self, *, user_id: Optional[int] = None, limit: int = DEFAULT_AUDIT_LIMIT) -> Sequence[AuditEvent]:
        """Newest first."""

        raise NotImplementedError


class InMemoryAuditRepository(AuditRepository):
    def __init__(self):
        self._events: List[AuditEvent] = []
        self._lock = threading.Lock()

    def append(self, event: AuditEvent) -> None:
        with self._lock:
            self._events.append(replace(event, event_id=len(self._events) + 1))

    def list_events(self, *, user_id: Optional[int] = None, limit: int = DEFAULT_AUDIT_LIMIT) -> Sequence[AuditEvent]:
        with self._lock:
            items = list(self._events)
        if user_id is not None:
            items = [e for e in items if e.user_id == int(user_id)]
        items.reverse()
        return items[:limit]

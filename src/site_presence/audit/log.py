"""Append-only audit trail of attendance transitions.

Off the consistency-critical path: entries are recorded after the ledger
transition commits, optionally from a background writer thread, and a
failing sink is logged rather than raised.

Threading:
- Request threads call record() (never blocks; drops on a full queue).
- One writer thread drains the queue into the sink when asynchronous.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Optional, Sequence

from ..core.constants import AUDIT_QUEUE_SIZE, DEFAULT_AUDIT_LIMIT
from .model import AuditEvent
from .repository import AuditRepository

logger = logging.getLogger(__name__)


class AuditLog:
    def __init__(self, sink: AuditRepository, *, asynchronous: bool = False, queue_size: int = AUDIT_QUEUE_SIZE):
        self._sink = sink
        self._asynchronous = asynchronous
        self._queue: "queue.Queue[AuditEvent]" = queue.Queue(maxsize=queue_size)
        self._stop_event = threading.Event()
        self._writer_thread: Optional[threading.Thread] = None

        if asynchronous:
            self._writer_thread = threading.Thread(target=self._write_loop, name="AuditWriterThread", daemon=True)
            self._writer_thread.start()

    def record(self, event: AuditEvent) -> None:
        if not self._asynchronous:
            self._write(event)
            return
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            logger.error("Audit queue full, dropping %s event for user %s", event.action.value, event.user_id)

    def events(self, *, user_id: Optional[int] = None, limit: int = DEFAULT_AUDIT_LIMIT) -> Sequence[AuditEvent]:
        return self._sink.list_events(user_id=user_id, limit=limit)

    def flush(self) -> None:
        """Block until every queued event has been handed to the sink."""
        if self._asynchronous:
            self._queue.join()

    def close(self) -> None:
        if self._writer_thread is None:
            return
        self.flush()
        self._stop_event.set()
        self._writer_thread.join(timeout=5.0)
        self._writer_thread = None
        self._asynchronous = False

    def _write(self, event: AuditEvent) -> None:
        try:
            self._sink.append(event)
        except Exception:
            logger.exception("Failed to write audit event %s for user %s", event.action.value, event.user_id)

    def _write_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                event = self._queue.get(timeout=0.1)
            except queue.Empty:
                continue
            try:
                self._write(event)
            finally:
                self._queue.task_done()

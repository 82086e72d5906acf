"""Correlation table for decisions supplied from outside the process.

A bot that waits on a human (or any out-of-band client) registers a request
and blocks on the returned future. The request is settled exactly once:
by a matching :meth:`PendingDecisions.resolve` call, or with its default
when the timer fires, its session is aborted or the table is cleared.
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

MIN_TIMEOUT = 0.01


@dataclass
class PendingRequest:
    request_id: str
    seat: int
    phase: str
    session_id: Optional[str]
    default: Any
    created_at: float
    context: Dict[str, Any] = field(default_factory=dict)
    future: Future = field(default_factory=Future, repr=False)
    timer: Optional[threading.Timer] = field(default=None, repr=False)

    def describe(self) -> Dict[str, Any]:
        return {
            "request_id": self.request_id,
            "seat": self.seat,
            "phase": self.phase,
            "session_id": self.session_id,
            "created_at": self.created_at,
            "context": dict(self.context),
        }


class PendingDecisions:
    def __init__(self) -> None:
        self._entries: Dict[str, PendingRequest] = {}
        self._lock = threading.Lock()
        self._ids = itertools.count(1)

    def register(
        self,
        seat: int,
        phase: str,
        *,
        session_id: Optional[str] = None,
        timeout: float = 30.0,
        default: Any = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> Tuple[str, Future]:
        """Open a request and return ``(request_id, future)``."""
        if seat not in (0, 1, 2):
            raise ValueError(f"Seat must be 0, 1 or 2, got {seat}.")
        with self._lock:
            request_id = f"req-{next(self._ids)}"
            entry = PendingRequest(
                request_id=request_id,
                seat=seat,
                phase=phase,
                session_id=session_id,
                default=default,
                created_at=time.monotonic(),
                context=dict(context or {}),
            )
            timer = threading.Timer(max(MIN_TIMEOUT, timeout), self._expire, args=(request_id,))
            timer.daemon = True
            entry.timer = timer
            self._entries[request_id] = entry
        timer.start()
        return request_id, entry.future

    def resolve(self, request_id: str, payload: Any) -> bool:
        """Settle ``request_id`` with ``payload``; False if unknown or already settled."""
        return self._settle(request_id, payload, use_default=False)

    def resolve_for_seat(
        self,
        seat: int,
        payload: Any,
        *,
        session_id: Optional[str] = None,
        phase: Optional[str] = None,
    ) -> bool:
        """Settle the newest open request for ``seat`` matching the optional filters."""
        with self._lock:
            candidates = [
                entry
                for entry in self._entries.values()
                if entry.seat == seat
                and (session_id is None or entry.session_id in (None, session_id))
                and (phase is None or entry.phase == phase)
            ]
        if not candidates:
            return False
        newest = max(candidates, key=lambda entry: entry.created_at)
        return self.resolve(newest.request_id, payload)

    def abort_session(self, session_id: str) -> int:
        with self._lock:
            ids = [entry.request_id for entry in self._entries.values() if entry.session_id == session_id]
        return sum(1 for request_id in ids if self._settle(request_id, None, use_default=True))

    def clear(self) -> int:
        with self._lock:
            ids = list(self._entries)
        return sum(1 for request_id in ids if self._settle(request_id, None, use_default=True))

    def pending(self, session_id: Optional[str] = None) -> List[PendingRequest]:
        with self._lock:
            entries = list(self._entries.values())
        if session_id is not None:
            entries = [entry for entry in entries if entry.session_id == session_id]
        return sorted(entries, key=lambda entry: entry.created_at)

    def get(self, request_id: str) -> Optional[PendingRequest]:
        with self._lock:
            return self._entries.get(request_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _expire(self, request_id: str) -> None:
        if self._settle(request_id, None, use_default=True):
            logger.info("Pending decision %s expired; default applied", request_id)

    def _settle(self, request_id: str, payload: Any, *, use_default: bool) -> bool:
        with self._lock:
            entry = self._entries.pop(request_id, None)
        if entry is None:
            return False
        if entry.timer is not None:
            entry.timer.cancel()
        value = entry.default if use_default else payload
        # Popping under the lock is the single-resolution point.
        entry.future.set_result(value)
        return True

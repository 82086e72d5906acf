"""Typed event stream shared by round engines and the tournament."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class EventKind(Enum):
    DEAL = "deal"
    BID = "bid"
    PLAY = "play"
    PASS = "pass"
    TRICK_RESET = "trick-reset"
    FINISH = "finish"
    SCORE = "score"
    ROUND_START = "round-start"
    ROUND_END = "round-end"
    ELIMINATED = "eliminated"


@dataclass(frozen=True)
class Event:
    """One observable step.

    ``round`` and ``group`` are tournament coordinates (``None`` outside a
    tournament); ``seat`` is the acting seat for in-game events.
    """

    kind: EventKind
    seat: Optional[int] = None
    round: Optional[int] = None
    group: Optional[int] = None
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "seat": self.seat,
            "round": self.round,
            "group": self.group,
            **self.payload,
        }


EventCallback = Callable[[Event], None]


class EventBus:
    """Fan events out to subscribers, optionally keeping an in-memory history.

    Emission is serialised with a lock so that concurrently running series
    can share one bus.
    """

    def __init__(self, *, keep_history: bool = False, max_history: Optional[int] = None) -> None:
        self._subscribers: List[EventCallback] = []
        self._history: List[Event] = []
        self._keep_history = keep_history
        self._max_history = max_history
        self._lock = threading.RLock()

    def subscribe(self, callback: EventCallback) -> None:
        with self._lock:
            if callback not in self._subscribers:
                self._subscribers.append(callback)

    def unsubscribe(self, callback: EventCallback) -> bool:
        with self._lock:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                return False
            return True

    def emit(self, event: Event) -> None:
        with self._lock:
            if self._keep_history:
                self._history.append(event)
                if self._max_history is not None and len(self._history) > self._max_history:
                    del self._history[0]
            subscribers = list(self._subscribers)
            for callback in subscribers:
                try:
                    callback(event)
                except Exception:
                    # An observer must never break the game that emitted the event.
                    logger.exception("Event subscriber %r failed on %s", callback, event.kind.value)

    def history(self, kind: Optional[EventKind] = None) -> List[Event]:
        with self._lock:
            if kind is None:
                return list(self._history)
            return [event for event in self._history if event.kind is kind]

    def clear_history(self) -> None:
        with self._lock:
            self._history.clear()

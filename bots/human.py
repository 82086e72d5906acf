"""Bot that relays each decision to an external client."""

from __future__ import annotations

import logging
from typing import Any, Optional

from engine.pending import PendingDecisions
from engine.service import PlayerView

from .base import BotStrategy

logger = logging.getLogger(__name__)


class HumanRelayBot(BotStrategy):
    """Publish decisions to a :class:`PendingDecisions` table and wait.

    When nobody answers within ``timeout`` the request settles with a pass,
    which the engine turns into the forced lead when passing is illegal.
    Keep ``timeout`` below the round dispatcher's own timeout.
    """

    name = "Human"

    def __init__(
        self,
        table: PendingDecisions,
        *,
        session_id: Optional[str] = None,
        timeout: float = 30.0,
    ) -> None:
        self.table = table
        self.session_id = session_id
        self.timeout = timeout
        self.seat: Optional[int] = None

    def on_round_start(self, seat: int, seed: Optional[int]) -> None:
        self.seat = seat

    def decide_bid(self, view: PlayerView) -> Any:
        return self._ask(view, "bid", {"action": "pass"})

    def decide_play(self, view: PlayerView) -> Any:
        return self._ask(view, "play", {"move": "pass"})

    def _ask(self, view: PlayerView, phase: str, default: Any) -> Any:
        request_id, future = self.table.register(
            view.seat,
            phase,
            session_id=self.session_id,
            timeout=self.timeout,
            default=default,
            context=view.to_dict(),
        )
        logger.debug("Waiting on %s decision %s for seat %d", phase, request_id, view.seat)
        return future.result()

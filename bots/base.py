"""Common bot strategy interfaces."""

from __future__ import annotations

from typing import Any, Optional

from engine.service import PlayerView


class BotStrategy:
    """Base class for bot policies.

    Bots never touch engine state: every hook receives a read-only
    :class:`PlayerView` and returns a decision payload which the engine
    validates. Anything it cannot accept is replaced by the fallback move.
    """

    name: str = "BaseBot"

    def on_round_start(self, seat: int, seed: Optional[int]) -> None:
        """Optional hook invoked before each deal."""
        return None

    def decide_bid(self, view: PlayerView) -> Any:
        """Return ``{"action": "pass" | "call" | "rob" | "no-rob", ...}``."""
        return {"action": "pass"}

    def decide_play(self, view: PlayerView) -> Any:
        """Return ``{"move": "pass"}`` or ``{"move": "play", "cards": [...]}``."""
        legal = view.legal_moves()
        if not legal:
            return {"move": "pass"}
        return {"move": "play", "cards": list(legal[0].cards)}

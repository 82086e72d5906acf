"""Random legal-move baseline bot."""

from __future__ import annotations

import random
from typing import Any, Optional

from engine.service import PlayerView

from .base import BotStrategy


class RandomBot(BotStrategy):
    name = "Random"

    def __init__(self, seed: Optional[int] = None) -> None:
        self._seed = seed
        self._rng = random.Random(seed)

    def on_round_start(self, seat: int, seed: Optional[int]) -> None:
        # Fixed-seed bots stay reproducible; unseeded ones follow the round seed.
        if self._seed is None and seed is not None:
            self._rng = random.Random(seed * 3 + seat)

    def decide_bid(self, view: PlayerView) -> Any:
        if view.rules.bidding.mode == "rob":
            return {"action": self._rng.choice(["rob", "no-rob"])}
        options = ["pass"] + list(range(1, view.rules.bidding.max_call + 1))
        choice = self._rng.choice(options)
        if choice == "pass":
            return {"action": "pass"}
        return {"action": "call", "value": choice}

    def decide_play(self, view: PlayerView) -> Any:
        legal = view.legal_moves()
        if not legal:
            return {"move": "pass"}
        if view.can_pass and self._rng.random() < 0.1:
            return {"move": "pass"}
        return {"move": "play", "cards": list(self._rng.choice(legal).cards)}

"""Simple three-seat bot arena for Dou Dizhu."""

from __future__ import annotations

import argparse
from typing import Callable, Dict, Iterable, Optional, Sequence

from engine.dispatch import DecisionDispatcher
from engine.game import GameSession
from engine.rules_schema import RuleSet

from .base import BotStrategy
from .baseline_greedy import GreedyMaxBot, GreedyMinBot
from .random_bot import RandomBot

BOT_REGISTRY: Dict[str, Callable[[], BotStrategy]] = {
    "random": RandomBot,
    "greedy-min": GreedyMinBot,
    "greedy-max": GreedyMaxBot,
}


def make_bot(name: str) -> BotStrategy:
    try:
        factory = BOT_REGISTRY[name]
    except KeyError as exc:
        raise ValueError(f"Unknown bot '{name}'. Choose from {sorted(BOT_REGISTRY)}.") from exc
    return factory()


def run_match(
    bots: Sequence[BotStrategy],
    *,
    n_rounds: int = 10,
    seed: Optional[int] = None,
    rules: Optional[RuleSet] = None,
    dispatcher: Optional[DecisionDispatcher] = None,
) -> dict:
    """Play ``n_rounds`` deals, rotating the first bidder every round."""
    if len(bots) != 3:
        raise ValueError("A match needs exactly three bots.")
    session = GameSession(seed=seed, rules=rules or RuleSet())
    history = []
    for idx in range(n_rounds):
        engine = session.start_round(first_seat=idx % 3)
        engine.run(bots, dispatcher)
        result = session.finish_round()
        history.append(
            {
                "landlord": result.landlord,
                "winner_side": result.winner_side,
                "deltas": result.deltas,
                "multiplier": result.multiplier,
                "spring": result.spring,
            }
        )
    return {"scores": list(session.scores), "history": history}


def main(argv: Iterable[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Run a three-bot match.")
    parser.add_argument("--bots", nargs=3, default=["greedy-min", "greedy-max", "random"], choices=BOT_REGISTRY.keys())
    parser.add_argument("--n", type=int, default=10, help="Number of rounds to play.")
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--mode", choices=["call-score", "rob"], default="call-score")
    args = parser.parse_args(argv)

    bots = [make_bot(name) for name in args.bots]
    rules = RuleSet(bidding={"mode": args.mode})
    results = run_match(bots, n_rounds=args.n, seed=args.seed, rules=rules)

    summary = ", ".join(f"{name}={score}" for name, score in zip(args.bots, results["scores"]))
    print(f"[arena] scores after {args.n} rounds: {summary}")
    landlord_wins = sum(1 for entry in results["history"] if entry["winner_side"] == "landlord")
    print(f"[arena] landlord win rate: {landlord_wins}/{len(results['history'])}")


if __name__ == "__main__":
    main()

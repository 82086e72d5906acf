#!/usr/bin/env python3
"""
Elimination tournament between built-in bots.

Participants are given as ``id=bot`` pairs (for example ``alice=greedy-min``);
each survivor group plays ``--games`` rounds per series until three remain.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Iterable, List, Optional

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from bots.bot_arena import BOT_REGISTRY
from engine.events import Event, EventBus, EventKind
from league.tournament import (
    DEFAULT_SEED,
    Participant,
    TournamentConfigError,
    TournamentOptions,
    TournamentResult,
    run_elimination,
)


def parse_participant(spec: str) -> Participant:
    pid, sep, bot = spec.partition("=")
    if not sep:
        bot = pid
    if bot not in BOT_REGISTRY:
        raise argparse.ArgumentTypeError(f"Unknown bot '{bot}' in '{spec}'. Choose from {sorted(BOT_REGISTRY)}.")
    return Participant(id=pid, label=f"{pid} ({bot})", bot_factory=BOT_REGISTRY[bot])


def print_progress(event: Event) -> None:
    if event.kind is EventKind.ROUND_START:
        label = "final" if event.payload.get("final") else f"round {event.round}"
        print(f"[tournament] {label}: {len(event.payload.get('survivors', []))} survivors")
    elif event.kind is EventKind.ELIMINATED:
        print(f"[tournament] round {event.round}: {event.payload['player']} eliminated ({event.payload['reason']})")


def print_standings(result: TournamentResult) -> None:
    print("[tournament] final standings")
    for place, snap in enumerate(result.standings, start=1):
        eliminated = "-" if snap.eliminated_round is None else f"r{snap.eliminated_round}"
        print(
            f"  {place:>2}. {snap.label:<28} ladder={snap.ladder:8.2f} mu={snap.rating.mu:8.2f} "
            f"sigma={snap.rating.sigma:7.2f} games={snap.stats.games:<4} wins={snap.stats.wins:<4} out={eliminated}"
        )


def parse_args(argv: Optional[Iterable[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a seeded elimination tournament.")
    parser.add_argument("participants", nargs="+", type=parse_participant, help="id=bot entries.")
    parser.add_argument("--games", type=int, default=100, help="Games per group series.")
    parser.add_argument("--seed", type=int, default=DEFAULT_SEED)
    parser.add_argument("--mode", choices=["call-score", "rob"], default="call-score")
    parser.add_argument("--workers", type=int, default=1, help="Concurrent group series.")
    parser.add_argument("--timeout", type=float, default=5.0, help="Seconds per bot decision.")
    parser.add_argument("--json", type=str, default=None, help="Write the full result to this path.")
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(list(argv) if argv is not None else None)


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    participants: List[Participant] = args.participants
    bus = EventBus()
    bus.subscribe(print_progress)
    try:
        options = TournamentOptions.model_validate(
            {
                "games_per_round": args.games,
                "seed": args.seed,
                "rules": {"bidding": {"mode": args.mode}},
                "decision_timeout": args.timeout,
                "max_workers": args.workers,
            }
        )
        result = run_elimination(participants, options, bus=bus)
    except (TournamentConfigError, ValueError) as exc:
        print(f"[tournament] configuration error: {exc}", file=sys.stderr)
        return 2

    print_standings(result)
    if args.json:
        path = Path(args.json)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(result.to_dict(), indent=2))
        print(f"[tournament] wrote {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Core engine package for the Dou Dizhu arena."""

__all__ = [
    "cards",
    "deck",
    "combos",
    "bidding",
    "decisions",
    "dispatch",
    "events",
    "pending",
    "state",
    "scoring",
    "game",
    "rules_schema",
    "service",
]

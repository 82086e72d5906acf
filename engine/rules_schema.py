"""Validation schema for Dou Dizhu rules configuration."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .deck import DECK_SIZE

# Every play removes at least one card and is followed by at most two passes.
MIN_TURNS = 3 * DECK_SIZE


class ComboConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    four_with_two: Literal["both", "singles", "pairs"] = Field(
        "both",
        description="Which four-of-a-kind-with-two shapes are legal.",
    )
    wings_allow_high_cards: bool = Field(
        False,
        description="Whether airplane and four-with-two wings may contain rank 2 or jokers.",
    )

    def allows_four_with_singles(self) -> bool:
        return self.four_with_two in ("both", "singles")

    def allows_four_with_pairs(self) -> bool:
        return self.four_with_two in ("both", "pairs")


class BiddingConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: Literal["call-score", "rob"] = Field("call-score", description="Call a score or call/rob the landlord.")
    max_call: int = Field(3, ge=1, description="Highest call in call-score mode; calling it ends the auction.")
    rob_doubles_stake: bool = Field(True, description="Each successful rob doubles the stake.")
    max_redeals: int = Field(3, ge=0, description="Re-deals after an all-pass auction before forcing a landlord.")


class ScoringConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_stake: int = Field(1, gt=0, description="Multiplied with the auction outcome to give the stake.")
    bomb_multiplier: int = Field(2, ge=1)
    rocket_multiplier: int = Field(2, ge=1)
    spring_multiplier: int = Field(2, ge=1, description="Landlord wins before either farmer plays.")
    anti_spring_multiplier: int = Field(2, ge=1, description="Farmers win after the landlord's opening lead only.")


class RuleSet(BaseModel):
    model_config = ConfigDict(frozen=True)

    combos: ComboConfig = Field(default_factory=ComboConfig)
    bidding: BiddingConfig = Field(default_factory=BiddingConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    max_turns: int = Field(1000, gt=0, description="Turn ceiling; exceeding it is an engine defect.")

    @field_validator("max_turns")
    @classmethod
    def ensure_room_for_a_round(cls, value: int) -> int:
        if value < MIN_TURNS:
            raise ValueError(f"max_turns must allow a complete round (>= {MIN_TURNS}).")
        return value


DEFAULT_RULES = RuleSet()

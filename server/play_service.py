"""REST service that runs bot tournaments and relays human decisions."""

from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from bots.bot_arena import BOT_REGISTRY
from bots.human import HumanRelayBot
from engine.pending import PendingDecisions
from engine.rules_schema import RuleSet
from league.rating import RatingConfig
from league.tournament import Participant, TournamentConfigError, TournamentOptions, run_elimination

HUMAN_BOT = "human"


class ParticipantRequest(BaseModel):
    id: str
    label: Optional[str] = None
    bot: str = "greedy-min"


class TournamentRequest(BaseModel):
    participants: List[ParticipantRequest]
    games_per_round: int = Field(100, gt=0)
    seed: Optional[int] = None
    rules: RuleSet = Field(default_factory=RuleSet)
    rating: RatingConfig = Field(default_factory=RatingConfig)
    human_timeout: float = Field(60.0, gt=0)


class DecisionRequest(BaseModel):
    payload: Dict[str, Any]


pending = PendingDecisions()

app = FastAPI(title="Dou Dizhu Arena Service")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def build_participant(entry: ParticipantRequest, session_id: str, human_timeout: float) -> Participant:
    if entry.bot == HUMAN_BOT:
        def factory() -> HumanRelayBot:
            return HumanRelayBot(pending, session_id=session_id, timeout=human_timeout)

        return Participant(id=entry.id, label=entry.label, bot_factory=factory)
    if entry.bot not in BOT_REGISTRY:
        raise HTTPException(status_code=400, detail=f"Unknown bot '{entry.bot}'")
    return Participant(id=entry.id, label=entry.label, bot_factory=BOT_REGISTRY[entry.bot])


@app.get("/bots")
def list_bots() -> Dict[str, List[str]]:
    return {"bots": sorted(BOT_REGISTRY) + [HUMAN_BOT]}


@app.post("/tournaments")
def create_tournament(request: TournamentRequest) -> Dict[str, object]:
    session_id = uuid.uuid4().hex
    participants = [build_participant(entry, session_id, request.human_timeout) for entry in request.participants]
    has_humans = any(entry.bot == HUMAN_BOT for entry in request.participants)
    options: Dict[str, Any] = {
        "games_per_round": request.games_per_round,
        "rules": request.rules,
        "rating": request.rating,
        # Humans answer through the pending table, which carries its own timeout.
        "decision_timeout": None if has_humans else 5.0,
    }
    if request.seed is not None:
        options["seed"] = request.seed
    try:
        result = run_elimination(participants, TournamentOptions.model_validate(options))
    except TournamentConfigError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    finally:
        pending.abort_session(session_id)
    return {"session_id": session_id, "result": result.to_dict()}


@app.get("/decisions")
def list_decisions(session_id: Optional[str] = None) -> Dict[str, object]:
    return {"pending": [entry.describe() for entry in pending.pending(session_id)]}


@app.post("/decisions/{request_id}")
def resolve_decision(request_id: str, request: DecisionRequest) -> Dict[str, object]:
    if not pending.resolve(request_id, request.payload):
        raise HTTPException(status_code=404, detail="Decision not found or already settled")
    return {"request_id": request_id, "resolved": True}


@app.post("/sessions/{session_id}/seats/{seat}/decision")
def resolve_seat_decision(session_id: str, seat: int, request: DecisionRequest, phase: Optional[str] = None) -> Dict[str, object]:
    if not pending.resolve_for_seat(seat, request.payload, session_id=session_id, phase=phase):
        raise HTTPException(status_code=404, detail="No pending decision for this seat")
    return {"seat": seat, "resolved": True}


@app.delete("/sessions/{session_id}")
def abort_session(session_id: str) -> Dict[str, object]:
    return {"session_id": session_id, "aborted": pending.abort_session(session_id)}

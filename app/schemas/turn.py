from typing import Optional

from pydantic import BaseModel

from app.models.game import Side, Winner
from app.models.move import PlayedBy


class TurnResultResponse(BaseModel):
    game_id: str
    turn_number: int
    side: Side
    position: Optional[str]
    candidate_id: Optional[str]
    played_by: PlayedBy
    flipped: list[str]
    fallback: bool
    passed_turns: list[int]
    next_turn: int
    finished: bool
    winner: Optional[Winner]

    model_config = {"from_attributes": True}


class AdvanceResponse(BaseModel):
    resolved: bool
    result: Optional[TurnResultResponse] = None


class FinishCheckResponse(BaseModel):
    game_id: str
    finished: bool
    winner: Optional[Winner]

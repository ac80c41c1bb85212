from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from app.models.game import GameStatus, GameType, Side, Winner
from app.models.move import PlayedBy


class GameCreate(BaseModel):
    ai_side: Side
    game_type: GameType = GameType.othello


class GameResponse(BaseModel):
    id: str
    game_type: GameType
    status: GameStatus
    ai_side: Side
    current_turn: int
    side_to_move: Side
    board_state: list[list[int]]
    score: dict[str, int]
    winner: Optional[Winner]
    created_at: datetime
    updated_at: datetime
    finished_at: Optional[datetime]


class GameListResponse(BaseModel):
    games: list[GameResponse]
    next_cursor: Optional[str] = None


class LegalMovesResponse(BaseModel):
    game_id: str
    turn_number: int
    side: Side
    positions: list[str]


class MoveResponse(BaseModel):
    turn_number: int
    side: Side
    position: Optional[str]
    played_by: PlayedBy
    candidate_id: Optional[str]
    flipped: list[str]
    created_at: datetime

    model_config = {"from_attributes": True}

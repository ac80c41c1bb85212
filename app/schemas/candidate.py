from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from app.models.candidate import CandidateAuthor, CandidateStatus


class CandidateCreate(BaseModel):
    position: str
    description: str = Field(default="", max_length=200)

    @field_validator("position")
    @classmethod
    def normalize_position(cls, v: str) -> str:
        v = v.strip().upper()
        if len(v) != 2:
            raise ValueError("position must look like 'D3'")
        return v


class AICandidatesRequest(BaseModel):
    count: Optional[int] = Field(default=None, ge=1, le=10)


class CandidateResponse(BaseModel):
    id: str
    game_id: str
    turn_number: int
    position: str
    description: str
    resulting_board: list[list[int]]
    created_by: CandidateAuthor
    user_id: Optional[str]
    vote_count: int
    status: CandidateStatus
    voting_deadline: datetime
    created_at: datetime

    model_config = {"from_attributes": True}

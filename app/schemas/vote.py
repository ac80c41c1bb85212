from datetime import datetime

from pydantic import BaseModel


class VoteCreate(BaseModel):
    candidate_id: str


class VoteResponse(BaseModel):
    id: str
    game_id: str
    turn_number: int
    user_id: str
    candidate_id: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

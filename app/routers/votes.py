from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_current_user_id
from app.exceptions import VoteBoardError
from app.routers.errors import to_http_exception
from app.schemas.vote import VoteCreate, VoteResponse
from app.services.game_service import get_game
from app.services.vote_ledger import cast_or_change_vote, get_user_vote

router = APIRouter(prefix="/games", tags=["votes"])


async def _current_turn_or_404(db: AsyncSession, game_id: str) -> int:
    game = await get_game(db, game_id)
    if game is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Game not found")
    return game.current_turn


@router.post("/{game_id}/votes", response_model=VoteResponse)
async def cast_vote(
    game_id: str,
    body: VoteCreate,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Vote for a candidate of the current turn; voting again moves your vote."""
    turn_number = await _current_turn_or_404(db, game_id)
    try:
        vote = await cast_or_change_vote(
            db,
            game_id,
            turn_number=turn_number,
            user_id=user_id,
            candidate_id=body.candidate_id,
        )
    except VoteBoardError as e:
        raise to_http_exception(e)
    return vote


@router.get("/{game_id}/votes/me", response_model=VoteResponse)
async def get_my_vote(
    game_id: str,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    turn_number = await _current_turn_or_404(db, game_id)
    vote = await get_user_vote(db, game_id, turn_number, user_id)
    if vote is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="No vote for the current turn"
        )
    return vote

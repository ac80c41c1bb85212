from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_current_user_id
from app.exceptions import VoteBoardError
from app.routers.errors import to_http_exception
from app.schemas.candidate import AICandidatesRequest, CandidateCreate, CandidateResponse
from app.services.game_service import get_game
from app.services.vote_ledger import list_candidates, propose_ai_candidates, propose_candidate

router = APIRouter(prefix="/games", tags=["candidates"])


@router.get("/{game_id}/candidates", response_model=list[CandidateResponse])
async def get_candidates(
    game_id: str,
    turn: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
):
    """Candidates of the current turn (or of ``turn`` when given), most votes first."""
    game = await get_game(db, game_id)
    if game is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Game not found")
    turn_number = game.current_turn if turn is None else turn
    return await list_candidates(db, game_id, turn_number)


@router.post(
    "/{game_id}/candidates",
    response_model=CandidateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_candidate(
    game_id: str,
    body: CandidateCreate,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        candidate = await propose_candidate(
            db,
            game_id,
            position=body.position,
            user_id=user_id,
            description=body.description,
        )
    except VoteBoardError as e:
        raise to_http_exception(e)
    return candidate


@router.post(
    "/{game_id}/candidates/ai",
    response_model=list[CandidateResponse],
    status_code=status.HTTP_201_CREATED,
)
async def seed_ai_candidates(
    game_id: str,
    body: Optional[AICandidatesRequest] = None,
    db: AsyncSession = Depends(get_db),
):
    count = body.count if body is not None else None
    try:
        return await propose_ai_candidates(db, game_id, count=count)
    except VoteBoardError as e:
        raise to_http_exception(e)

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.exceptions import VoteBoardError
from app.models.game import Game, GameStatus
from app.routers.errors import to_http_exception
from app.schemas.game import (
    GameCreate,
    GameListResponse,
    GameResponse,
    LegalMovesResponse,
    MoveResponse,
)
from app.schemas.turn import AdvanceResponse, FinishCheckResponse, TurnResultResponse
from app.services.board_engine import legal_moves, side_for_cell, side_to_move
from app.services.game_service import create_game, get_game, list_games, list_moves
from app.services.turn_coordinator import resolve_turn
from app.services.victory_service import check_and_finish_game, get_scores

router = APIRouter(prefix="/games", tags=["games"])


def _game_response(game: Game) -> GameResponse:
    return GameResponse(
        id=game.id,
        game_type=game.game_type,
        status=game.status,
        ai_side=game.ai_side,
        current_turn=game.current_turn,
        side_to_move=side_for_cell(side_to_move(game.current_turn)),
        board_state=game.board_state,
        score=get_scores(game),
        winner=game.winner,
        created_at=game.created_at,
        updated_at=game.updated_at,
        finished_at=game.finished_at,
    )


async def _get_game_or_404(db: AsyncSession, game_id: str) -> Game:
    game = await get_game(db, game_id)
    if game is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Game not found")
    return game


@router.post("", response_model=GameResponse, status_code=status.HTTP_201_CREATED)
async def create_new_game(body: GameCreate, db: AsyncSession = Depends(get_db)):
    game = await create_game(db, ai_side=body.ai_side, game_type=body.game_type)
    return _game_response(game)


@router.get("", response_model=GameListResponse)
async def list_games_endpoint(
    game_status: GameStatus = Query(GameStatus.active, alias="status"),
    limit: Optional[int] = None,
    cursor: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    try:
        page = await list_games(db, status=game_status, limit=limit, cursor=cursor)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return GameListResponse(
        games=[_game_response(game) for game in page.games],
        next_cursor=page.next_cursor,
    )


@router.get("/{game_id}", response_model=GameResponse)
async def get_game_info(game_id: str, db: AsyncSession = Depends(get_db)):
    game = await _get_game_or_404(db, game_id)
    return _game_response(game)


@router.get("/{game_id}/legal-moves", response_model=LegalMovesResponse)
async def get_legal_moves(game_id: str, db: AsyncSession = Depends(get_db)):
    game = await _get_game_or_404(db, game_id)
    color = side_to_move(game.current_turn)
    positions = []
    if game.status == GameStatus.active:
        positions = [p.to_notation() for p in legal_moves(game.board_state, color)]
    return LegalMovesResponse(
        game_id=game.id,
        turn_number=game.current_turn,
        side=side_for_cell(color),
        positions=positions,
    )


@router.get("/{game_id}/moves", response_model=list[MoveResponse])
async def get_move_history(game_id: str, db: AsyncSession = Depends(get_db)):
    await _get_game_or_404(db, game_id)
    return await list_moves(db, game_id)


@router.post("/{game_id}/advance", response_model=AdvanceResponse)
async def advance_turn(
    game_id: str,
    turn: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
):
    """Close voting for the current turn and play the winning move.

    With ``turn`` set, nothing happens unless that turn is still the current one.
    """
    await _get_game_or_404(db, game_id)
    try:
        result = await resolve_turn(db, game_id, turn_number=turn)
    except VoteBoardError as e:
        raise to_http_exception(e)
    if result is None:
        return AdvanceResponse(resolved=False)
    return AdvanceResponse(resolved=True, result=TurnResultResponse.model_validate(result))


@router.post("/{game_id}/check-finish", response_model=FinishCheckResponse)
async def check_finish(game_id: str, db: AsyncSession = Depends(get_db)):
    await _get_game_or_404(db, game_id)
    await check_and_finish_game(db, game_id)
    game = await _get_game_or_404(db, game_id)
    return FinishCheckResponse(
        game_id=game.id,
        finished=game.status == GameStatus.finished,
        winner=game.winner,
    )

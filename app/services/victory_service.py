"""End-of-game detection and winner assignment.

A game is finished when the board engine says so for the side to move
(full board, one color wiped out, or nobody can move). The ACTIVE -> FINISHED
transition is a guarded UPDATE, so any number of concurrent or repeated
checks finish a game at most once and never re-evaluate a finished game.
"""

from __future__ import annotations

import logging

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.game import Game, GameStatus, Winner, utc_now
from app.services.board_engine import (
    determine_winner,
    score,
    should_end_game,
    side_to_move,
)
from app.services.game_service import get_game

logger = logging.getLogger(__name__)


def is_game_over(game: Game) -> bool:
    return should_end_game(game.board_state, side_to_move(game.current_turn))


async def check_and_finish_game(db: AsyncSession, game_id: str) -> Winner | None:
    """Finish the game if its board is terminal.

    Returns the winner written by this call, or None when nothing changed
    (unknown game, already finished, still playable, or another caller won
    the race to finish it).
    """
    game = await get_game(db, game_id)
    if game is None or game.status == GameStatus.finished:
        return None

    if not is_game_over(game):
        return None

    winner = determine_winner(game.board_state, game.ai_side)
    now = utc_now()
    result = await db.execute(
        update(Game)
        .where(Game.id == game_id, Game.status == GameStatus.active)
        .values(status=GameStatus.finished, winner=winner, finished_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        logger.info("Game %s was already finished by another caller", game_id)
        return None

    await db.commit()
    logger.info(
        "Game %s finished: winner=%s score=%s",
        game_id,
        winner.value,
        score(game.board_state),
    )
    return winner


def get_scores(game: Game) -> dict[str, int]:
    """Current disc count per color."""
    return score(game.board_state)

"""Turn resolution: close voting, adopt the winning candidate, advance the board.

One call to ``resolve_turn`` handles the game's current turn inside a single
transaction:

1. close every VOTING candidate of the turn;
2. pick the winner (most votes, earliest proposal on ties);
3. apply it to the board and mark it ADOPTED;
4. append the Move history row and advance ``current_turn`` with an UPDATE
   guarded on the turn number it started from.

If the guard matches no row another worker already resolved this turn, and the
whole unit is rolled back. After the commit the game is checked for the end.

No candidates at closing time: the automated player picks its best move and it
is adopted straight away. If the side to move has no legal move at all, the
turn is recorded as a pass. A pass is also recorded whenever the side to move
after a move is blocked while the game is not over.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import TransientPersistenceError
from app.models.candidate import Candidate, CandidateAuthor, CandidateStatus
from app.models.game import Game, GameStatus, Side, Winner, utc_now
from app.models.move import Move, PlayedBy
from app.services.ai_player import choose_move
from app.services.board_engine import (
    Board,
    Cell,
    Position,
    apply_move,
    has_legal_moves,
    should_end_game,
    side_for_cell,
    side_to_move,
)
from app.services.game_service import get_game
from app.services.victory_service import check_and_finish_game, is_game_over
from app.services.vote_ledger import (
    build_candidate,
    close_candidates,
    list_candidates,
    mark_adopted,
    select_winner,
)

logger = logging.getLogger(__name__)

FALLBACK_DESCRIPTION = "Automatic move: no candidates were proposed this turn"


@dataclass
class TurnResult:
    game_id: str
    turn_number: int
    side: Side
    position: str | None
    candidate_id: str | None
    played_by: PlayedBy
    flipped: list[str] = field(default_factory=list)
    fallback: bool = False
    passed_turns: list[int] = field(default_factory=list)
    next_turn: int = 0
    finished: bool = False
    winner: Winner | None = None


def _played_by_side(game: Game, side: Side) -> PlayedBy:
    return PlayedBy.ai if side == game.ai_side else PlayedBy.collective


def _played_by_candidate(candidate: Candidate) -> PlayedBy:
    return PlayedBy.ai if candidate.created_by == CandidateAuthor.ai else PlayedBy.collective


async def _adopt_fallback(db: AsyncSession, game: Game, color: Cell) -> Candidate | None:
    """Have the automaton play when nobody proposed anything."""
    position = choose_move(game.board_state, color)
    if position is None:
        return None
    candidate = build_candidate(
        game, position, CandidateAuthor.ai, None, FALLBACK_DESCRIPTION, utc_now()
    )
    candidate.status = CandidateStatus.adopted
    db.add(candidate)
    await db.flush()
    return candidate


def _pass_move(game: Game, turn_number: int, color: Cell) -> Move:
    side = side_for_cell(color)
    return Move(
        game_id=game.id,
        turn_number=turn_number,
        side=side,
        position=None,
        played_by=_played_by_side(game, side),
        candidate_id=None,
        flipped=[],
    )


def _next_turn_after(board: Board, turn_number: int) -> list[int]:
    """Turn numbers that must be passed before someone can play on *board*."""
    next_color = side_to_move(turn_number)
    if should_end_game(board, next_color) or has_legal_moves(board, next_color):
        return []
    return [turn_number]


async def resolve_turn(
    db: AsyncSession, game_id: str, turn_number: int | None = None
) -> TurnResult | None:
    """Close and resolve the game's current turn.

    Pass *turn_number* to make the call keyed: it then only acts while that turn
    is still current, so a repeated trigger for the same turn is a no-op.

    Returns None when there is nothing to do: unknown or finished game, a turn
    that is no longer current, or a turn resolved concurrently by someone else.
    """
    game = await get_game(db, game_id)
    if game is None or game.status == GameStatus.finished:
        return None
    if turn_number is not None and turn_number != game.current_turn:
        logger.info("Game %s turn %s was already resolved", game_id, turn_number)
        return None
    if is_game_over(game):
        await check_and_finish_game(db, game_id)
        return None

    turn_number = game.current_turn
    color = side_to_move(turn_number)
    side = side_for_cell(color)

    try:
        await close_candidates(db, game_id, turn_number)
        candidates = await list_candidates(db, game_id, turn_number)
        winner = select_winner(candidates)
        fallback = False

        if winner is not None:
            if not await mark_adopted(db, winner.id):
                raise TransientPersistenceError(
                    f"Candidate {winner.id} was adopted concurrently"
                )
        else:
            winner = await _adopt_fallback(db, game, color)
            fallback = winner is not None
            if fallback:
                logger.warning(
                    "No candidates for game %s turn %s; automaton plays %s",
                    game_id,
                    turn_number,
                    winner.position,
                )

        if winner is None:
            logger.info(
                "Game %s turn %s: %s has no legal move and passes",
                game_id,
                turn_number,
                side.value,
            )
            new_board = game.board_state
            history = [_pass_move(game, turn_number, color)]
            result = TurnResult(
                game_id=game_id,
                turn_number=turn_number,
                side=side,
                position=None,
                candidate_id=None,
                played_by=_played_by_side(game, side),
                passed_turns=[turn_number],
            )
        else:
            outcome = apply_move(game.board_state, color, Position.from_notation(winner.position))
            new_board = outcome.board
            flipped = [p.to_notation() for p in outcome.flipped]
            played_by = _played_by_candidate(winner)
            history = [
                Move(
                    game_id=game_id,
                    turn_number=turn_number,
                    side=side,
                    position=winner.position,
                    played_by=played_by,
                    candidate_id=winner.id,
                    flipped=flipped,
                )
            ]
            result = TurnResult(
                game_id=game_id,
                turn_number=turn_number,
                side=side,
                position=winner.position,
                candidate_id=winner.id,
                played_by=played_by,
                flipped=flipped,
                fallback=fallback,
            )

        next_turn = turn_number + 1
        for passed_turn in _next_turn_after(new_board, next_turn):
            history.append(_pass_move(game, passed_turn, side_to_move(passed_turn)))
            result.passed_turns.append(passed_turn)
            next_turn += 1
        result.next_turn = next_turn

        advanced = await db.execute(
            update(Game)
            .where(
                Game.id == game_id,
                Game.current_turn == turn_number,
                Game.status == GameStatus.active,
            )
            .values(board_state=new_board, current_turn=next_turn, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        if advanced.rowcount != 1:
            await db.rollback()
            logger.info("Game %s turn %s was already resolved", game_id, turn_number)
            return None

        db.add_all(history)
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise TransientPersistenceError(
            f"Turn {turn_number} of game {game_id} was resolved concurrently"
        ) from exc
    except DBAPIError as exc:
        await db.rollback()
        raise TransientPersistenceError(
            f"Turn {turn_number} of game {game_id} hit a lock conflict; try again"
        ) from exc
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Game %s turn %s resolved: %s played %s (next turn %s)",
        game_id,
        turn_number,
        side.value,
        result.position or "pass",
        next_turn,
    )

    winner_tag = await check_and_finish_game(db, game_id)
    if winner_tag is not None:
        result.finished = True
        result.winner = winner_tag
    return result

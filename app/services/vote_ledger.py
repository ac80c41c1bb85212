"""Vote ledger: candidates and votes for one (game, turn).

Candidates move one way through voting -> closed -> adopted. A user holds at
most one vote per turn (unique constraint on game/turn/user); voting again
repoints that row instead of adding one.

Tally invariant: once a transaction commits, every candidate's vote_count
equals the number of Vote rows pointing at it. Every write that touches a
tally is a guarded UPDATE (``WHERE status = 'voting'``) whose rowcount is
checked, and the whole unit commits or rolls back together. Nothing here
retries; a lost race surfaces as TransientPersistenceError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import func, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    TransientPersistenceError,
    VoteBoardError,
)
from app.models.candidate import Candidate, CandidateAuthor, CandidateStatus
from app.models.game import Game, GameStatus, utc_now
from app.models.vote import Vote
from app.services.ai_player import rank_moves
from app.services.board_engine import Position, apply_move, side_to_move
from app.services.game_service import get_game

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidateTally:
    candidate_id: str
    vote_count: int
    vote_rows: int


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def get_candidate(db: AsyncSession, candidate_id: str) -> Candidate | None:
    result = await db.execute(
        select(Candidate)
        .where(Candidate.id == candidate_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_candidates(
    db: AsyncSession, game_id: str, turn_number: int
) -> list[Candidate]:
    """Candidates for a turn, most votes first (ties: oldest first)."""
    result = await db.execute(
        select(Candidate)
        .where(Candidate.game_id == game_id, Candidate.turn_number == turn_number)
        .order_by(Candidate.vote_count.desc(), Candidate.created_at, Candidate.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_user_vote(
    db: AsyncSession, game_id: str, turn_number: int, user_id: str
) -> Vote | None:
    result = await db.execute(
        select(Vote)
        .where(
            Vote.game_id == game_id,
            Vote.turn_number == turn_number,
            Vote.user_id == user_id,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_votes(db: AsyncSession, game_id: str, turn_number: int) -> list[Vote]:
    result = await db.execute(
        select(Vote)
        .where(Vote.game_id == game_id, Vote.turn_number == turn_number)
        .order_by(Vote.created_at)
    )
    return list(result.scalars().all())


async def tally_snapshot(
    db: AsyncSession, game_id: str, turn_number: int
) -> list[CandidateTally]:
    """Stored vote_count next to the number of vote rows, per candidate."""
    vote_rows = (
        select(Vote.candidate_id, func.count(Vote.id).label("rows"))
        .where(Vote.game_id == game_id, Vote.turn_number == turn_number)
        .group_by(Vote.candidate_id)
        .subquery()
    )
    result = await db.execute(
        select(Candidate.id, Candidate.vote_count, func.coalesce(vote_rows.c.rows, 0))
        .outerjoin(vote_rows, vote_rows.c.candidate_id == Candidate.id)
        .where(Candidate.game_id == game_id, Candidate.turn_number == turn_number)
        .order_by(Candidate.created_at, Candidate.id)
    )
    return [
        CandidateTally(candidate_id=cid, vote_count=count, vote_rows=rows)
        for cid, count, rows in result.all()
    ]


# ---------------------------------------------------------------------------
# Proposals
# ---------------------------------------------------------------------------


async def _get_game_for_proposal(db: AsyncSession, game_id: str) -> Game:
    game = await get_game(db, game_id)
    if game is None:
        raise NotFoundError("Game", game_id)
    if game.status != GameStatus.active:
        raise InvalidStateError("Game is finished; no more candidates can be proposed")
    return game


async def _turn_deadline(
    db: AsyncSession, game: Game, requested: datetime | None = None
) -> datetime:
    """Reuse the deadline already set for this turn, else *requested* or a fresh window."""
    result = await db.execute(
        select(func.min(Candidate.voting_deadline)).where(
            Candidate.game_id == game.id,
            Candidate.turn_number == game.current_turn,
        )
    )
    existing = result.scalar_one_or_none()
    if existing is not None:
        return existing
    if requested is not None:
        return requested
    return utc_now() + timedelta(minutes=settings.voting_window_minutes)


async def _ensure_turn_open(db: AsyncSession, game: Game) -> None:
    turn_candidates = select(func.count(Candidate.id)).where(
        Candidate.game_id == game.id,
        Candidate.turn_number == game.current_turn,
    )
    closed = await db.execute(
        turn_candidates.where(Candidate.status != CandidateStatus.voting)
    )
    if closed.scalar_one() > 0:
        raise InvalidStateError(f"Voting for turn {game.current_turn} is already closed")
    # Compared in SQL: SQLite hands back naive datetimes
    expired = await db.execute(turn_candidates.where(Candidate.voting_deadline <= utc_now()))
    if expired.scalar_one() > 0:
        raise InvalidStateError(
            f"The voting deadline for turn {game.current_turn} has passed"
        )


async def _position_taken(db: AsyncSession, game: Game, notation: str) -> bool:
    result = await db.execute(
        select(Candidate.id).where(
            Candidate.game_id == game.id,
            Candidate.turn_number == game.current_turn,
            Candidate.position == notation,
        )
    )
    return result.first() is not None


def build_candidate(
    game: Game,
    position: Position,
    created_by: CandidateAuthor,
    user_id: str | None,
    description: str,
    deadline: datetime,
) -> Candidate:
    color = side_to_move(game.current_turn)
    # Raises InvalidMoveError for anything that is not a legal move this turn
    preview = apply_move(game.board_state, color, position)
    return Candidate(
        game_id=game.id,
        turn_number=game.current_turn,
        position=position.to_notation(),
        description=description,
        resulting_board=preview.board,
        created_by=created_by,
        user_id=user_id,
        vote_count=0,
        status=CandidateStatus.voting,
        voting_deadline=deadline,
    )


async def propose_candidate(
    db: AsyncSession,
    game_id: str,
    position: str,
    user_id: str | None,
    description: str = "",
    deadline: datetime | None = None,
    created_by: CandidateAuthor = CandidateAuthor.user,
) -> Candidate:
    """Create a VOTING candidate for the game's current turn.

    *deadline* only applies to the first candidate of a turn; later ones share it.

    Raises:
        NotFoundError: unknown game.
        InvalidStateError: game finished, or this turn's voting already closed or
            past its deadline.
        InvalidMoveError: position is not legal for the side to move.
        ConflictError: the position is already a candidate this turn.
    """
    try:
        game = await _get_game_for_proposal(db, game_id)
        await _ensure_turn_open(db, game)
        target = Position.from_notation(position)
        if await _position_taken(db, game, target.to_notation()):
            raise ConflictError(
                f"{target.to_notation()} is already a candidate for turn {game.current_turn}"
            )
        deadline = await _turn_deadline(db, game, deadline)

        candidate = build_candidate(game, target, created_by, user_id, description, deadline)
        db.add(candidate)
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError(f"{position} was proposed concurrently for this turn") from exc
    except DBAPIError as exc:
        await db.rollback()
        raise TransientPersistenceError(
            f"Could not store the proposal for {position}; try again"
        ) from exc
    except VoteBoardError:
        await db.rollback()
        raise

    await db.refresh(candidate)
    logger.info(
        "Candidate %s proposed for game %s turn %s at %s by %s",
        candidate.id,
        game_id,
        candidate.turn_number,
        candidate.position,
        user_id or "ai",
    )
    return candidate


async def propose_ai_candidates(
    db: AsyncSession,
    game_id: str,
    count: int | None = None,
    deadline: datetime | None = None,
) -> list[Candidate]:
    """Let the automaton seed its best-ranked moves that nobody has proposed yet.

    *deadline* only applies when the turn has no candidates yet; otherwise the
    turn's existing deadline is kept.
    """
    if count is None:
        count = settings.ai_candidate_count

    try:
        game = await _get_game_for_proposal(db, game_id)
        await _ensure_turn_open(db, game)
        existing = {c.position for c in await list_candidates(db, game.id, game.current_turn)}
        deadline = await _turn_deadline(db, game, deadline)

        created: list[Candidate] = []
        for ranked in rank_moves(game.board_state, side_to_move(game.current_turn)):
            if len(created) >= count:
                break
            if ranked.position.to_notation() in existing:
                continue
            candidate = build_candidate(
                game, ranked.position, CandidateAuthor.ai, None, ranked.describe(), deadline
            )
            db.add(candidate)
            created.append(candidate)
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError("A seeded position was proposed concurrently") from exc
    except DBAPIError as exc:
        await db.rollback()
        raise TransientPersistenceError(
            "Could not store the seeded candidates; try again"
        ) from exc
    except VoteBoardError:
        await db.rollback()
        raise

    for candidate in created:
        await db.refresh(candidate)
    logger.info("AI seeded %d candidate(s) for game %s", len(created), game_id)
    return created


# ---------------------------------------------------------------------------
# Voting
# ---------------------------------------------------------------------------


async def _increment_open_candidate(db: AsyncSession, candidate_id: str, now: datetime) -> bool:
    result = await db.execute(
        update(Candidate)
        .where(
            Candidate.id == candidate_id,
            Candidate.status == CandidateStatus.voting,
            Candidate.voting_deadline > now,
        )
        .values(vote_count=Candidate.vote_count + 1, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def _decrement_open_candidate(db: AsyncSession, candidate_id: str, now: datetime) -> bool:
    result = await db.execute(
        update(Candidate)
        .where(
            Candidate.id == candidate_id,
            Candidate.status == CandidateStatus.voting,
            Candidate.vote_count > 0,
        )
        .values(vote_count=Candidate.vote_count - 1, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def _rejection_for(db: AsyncSession, candidate_id: str) -> InvalidStateError:
    """Explain why a guarded increment matched no row."""
    result = await db.execute(select(Candidate.status).where(Candidate.id == candidate_id))
    status = result.scalar_one_or_none()
    if status is not None and status != CandidateStatus.voting:
        return InvalidStateError(f"Voting on candidate {candidate_id} is {status.value}")
    return InvalidStateError(f"The voting deadline for candidate {candidate_id} has passed")


async def cast_or_change_vote(
    db: AsyncSession,
    game_id: str,
    turn_number: int,
    user_id: str,
    candidate_id: str,
) -> Vote:
    """Record *user_id*'s vote for *candidate_id*, replacing any earlier vote this turn.

    First vote: insert the row and increment the target.
    Changed vote: increment the new target, decrement the old one, repoint the row.
    Same target again: no-op.
    All steps commit together or not at all. Candidate rows are always updated
    in ascending id order so two opposite vote changes cannot deadlock; lock
    contention still surfaces as TransientPersistenceError.
    """
    try:
        candidate = await get_candidate(db, candidate_id)
        if (
            candidate is None
            or candidate.game_id != game_id
            or candidate.turn_number != turn_number
        ):
            raise NotFoundError("Candidate", candidate_id)
        if candidate.status != CandidateStatus.voting:
            raise InvalidStateError(
                f"Voting on candidate {candidate_id} is {candidate.status.value}"
            )

        existing = await get_user_vote(db, game_id, turn_number, user_id)
        if existing is not None and existing.candidate_id == candidate_id:
            await db.commit()
            return existing

        now = utc_now()
        previous_id = existing.candidate_id if existing is not None else None
        for target_id in sorted(filter(None, (candidate_id, previous_id))):
            if target_id == candidate_id:
                if not await _increment_open_candidate(db, candidate_id, now):
                    raise await _rejection_for(db, candidate_id)
            elif not await _decrement_open_candidate(db, previous_id, now):
                raise TransientPersistenceError(
                    f"Could not move the vote away from candidate {previous_id}"
                )

        if existing is None:
            vote = Vote(
                game_id=game_id,
                turn_number=turn_number,
                user_id=user_id,
                candidate_id=candidate_id,
            )
            db.add(vote)
            await db.flush()
        else:
            repointed = await db.execute(
                update(Vote)
                .where(Vote.id == existing.id, Vote.candidate_id == previous_id)
                .values(candidate_id=candidate_id, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if repointed.rowcount != 1:
                raise TransientPersistenceError(
                    f"Vote of user {user_id} changed concurrently; try again"
                )
            vote = existing

        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise TransientPersistenceError(
            f"Concurrent vote by user {user_id} for turn {turn_number}; try again"
        ) from exc
    except DBAPIError as exc:
        await db.rollback()
        raise TransientPersistenceError(
            f"Vote by user {user_id} for turn {turn_number} hit a lock conflict; try again"
        ) from exc
    except VoteBoardError:
        await db.rollback()
        raise

    await db.refresh(vote)
    logger.info(
        "User %s voted for candidate %s (game %s, turn %s)",
        user_id,
        candidate_id,
        game_id,
        turn_number,
    )
    return vote


# ---------------------------------------------------------------------------
# Closing & winner selection
# ---------------------------------------------------------------------------


async def close_candidates(db: AsyncSession, game_id: str, turn_number: int) -> int:
    """Move every VOTING candidate of the turn to CLOSED in one statement. No commit."""
    result = await db.execute(
        update(Candidate)
        .where(
            Candidate.game_id == game_id,
            Candidate.turn_number == turn_number,
            Candidate.status == CandidateStatus.voting,
        )
        .values(status=CandidateStatus.closed, updated_at=utc_now())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


async def close_turn(db: AsyncSession, game_id: str, turn_number: int) -> int:
    """Close voting for a turn. Safe to call any number of times.

    Returns how many candidates this call closed (0 when already closed).
    """
    try:
        closed = await close_candidates(db, game_id, turn_number)
        await db.commit()
    except DBAPIError as exc:
        await db.rollback()
        raise TransientPersistenceError(
            f"Could not close turn {turn_number} of game {game_id}; try again"
        ) from exc
    if closed:
        logger.info("Closed %d candidate(s) for game %s turn %s", closed, game_id, turn_number)
    return closed


def select_winner(candidates: list[Candidate]) -> Candidate | None:
    """Most votes among CLOSED candidates; ties go to the earliest created, then lowest id."""
    closed = [c for c in candidates if c.status == CandidateStatus.closed]
    if not closed:
        return None
    return min(closed, key=lambda c: (-c.vote_count, c.created_at, c.id))


async def mark_adopted(db: AsyncSession, candidate_id: str) -> bool:
    """CLOSED -> ADOPTED, guarded so it can only happen once. No commit."""
    result = await db.execute(
        update(Candidate)
        .where(Candidate.id == candidate_id, Candidate.status == CandidateStatus.closed)
        .values(status=CandidateStatus.adopted, updated_at=utc_now())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1

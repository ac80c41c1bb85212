"""Scheduled closing of turns whose voting window has run out.

Meant to be run on a timer (cron, a worker loop, or the ``closer_loop`` started
by the app). Each due game is resolved on its own and, if it is still running,
the automaton seeds candidates for the next turn so the game is due again once
that window runs out. One failing game is logged and skipped so the rest of
the batch still advances.
"""

import asyncio
import logging
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.exceptions import VoteBoardError
from app.models.candidate import Candidate, CandidateStatus
from app.models.game import Game, GameStatus, utc_now
from app.services.turn_coordinator import TurnResult, resolve_turn
from app.services.vote_ledger import propose_ai_candidates

logger = logging.getLogger(__name__)


async def find_due_games(db: AsyncSession, now: datetime) -> list[tuple[str, int]]:
    """Active games with a VOTING candidate of the current turn past its deadline."""
    result = await db.execute(
        select(Game.id, Game.current_turn)
        .join(
            Candidate,
            (Candidate.game_id == Game.id) & (Candidate.turn_number == Game.current_turn),
        )
        .where(
            Game.status == GameStatus.active,
            Candidate.status == CandidateStatus.voting,
            Candidate.voting_deadline <= now,
        )
        .distinct()
        .order_by(Game.id)
    )
    return [(game_id, turn) for game_id, turn in result.all()]


async def seed_next_turn(db: AsyncSession, game_id: str, now: datetime) -> int:
    """Open the next voting window with the automaton's candidates."""
    deadline = now + timedelta(minutes=settings.voting_window_minutes)
    try:
        created = await propose_ai_candidates(db, game_id, deadline=deadline)
    except VoteBoardError:
        logger.exception("Could not seed candidates for the next turn of game %s", game_id)
        return 0
    return len(created)


async def resolve_expired_turns(
    db: AsyncSession, now: datetime | None = None
) -> list[TurnResult]:
    if now is None:
        now = utc_now()

    due = await find_due_games(db, now)
    results: list[TurnResult] = []
    for game_id, turn_number in due:
        try:
            result = await resolve_turn(db, game_id, turn_number=turn_number)
        except Exception:
            logger.exception("Failed to resolve the expired turn of game %s", game_id)
            continue
        if result is None:
            continue
        results.append(result)
        if not result.finished:
            await seed_next_turn(db, game_id, now)

    if due:
        logger.info("Resolved %d of %d expired turn(s)", len(results), len(due))
    return results


async def closer_loop(session_factory: async_sessionmaker, interval_seconds: float) -> None:
    """Resolve expired turns every *interval_seconds* until cancelled."""
    while True:
        async with session_factory() as db:
            try:
                await resolve_expired_turns(db)
            except Exception:
                logger.exception("Turn closer pass failed")
        await asyncio.sleep(interval_seconds)

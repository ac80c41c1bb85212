import base64
import binascii
import json
import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import InvalidCursorError
from app.models.game import Game, GameStatus, GameType, Side
from app.models.move import Move
from app.services.board_engine import initial_board, validate_board

logger = logging.getLogger(__name__)


@dataclass
class GamePage:
    games: list[Game]
    next_cursor: str | None = None


async def create_game(
    db: AsyncSession, ai_side: Side, game_type: GameType = GameType.othello
) -> Game:
    game = Game(
        game_type=game_type,
        status=GameStatus.active,
        ai_side=ai_side,
        current_turn=0,
        board_state=initial_board(),
        winner=None,
    )
    db.add(game)
    await db.commit()
    await db.refresh(game)
    logger.info("Game %s created (ai_side=%s)", game.id, ai_side.value)
    return game


async def get_game(db: AsyncSession, game_id: str) -> Game | None:
    result = await db.execute(
        select(Game).where(Game.id == game_id).execution_options(populate_existing=True)
    )
    game = result.scalar_one_or_none()
    if game is not None:
        validate_board(game.board_state)
    return game


async def list_moves(db: AsyncSession, game_id: str) -> list[Move]:
    result = await db.execute(
        select(Move).where(Move.game_id == game_id).order_by(Move.turn_number)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Listing with keyset pagination
# ---------------------------------------------------------------------------


def encode_cursor(game: Game) -> str:
    payload = json.dumps({"created_at": game.created_at.isoformat(), "id": game.id})
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")


def decode_cursor(cursor: str) -> tuple[datetime, str]:
    try:
        payload = json.loads(base64.urlsafe_b64decode(cursor.encode("ascii")))
        return datetime.fromisoformat(payload["created_at"]), str(payload["id"])
    except (binascii.Error, UnicodeError, ValueError, KeyError, TypeError) as exc:
        raise InvalidCursorError("Invalid pagination cursor") from exc


def clamp_limit(limit: int | None) -> int:
    if limit is None:
        return settings.default_page_size
    return min(max(limit, 1), settings.max_page_size)


async def list_games(
    db: AsyncSession,
    status: GameStatus = GameStatus.active,
    limit: int | None = None,
    cursor: str | None = None,
) -> GamePage:
    """Games with the given status, newest first.

    The cursor marks the last game of the previous page; following next_cursor
    until it is None visits every matching game exactly once.
    """
    page_size = clamp_limit(limit)
    query = select(Game).where(Game.status == status)
    if cursor:
        created_at, game_id = decode_cursor(cursor)
        query = query.where(
            or_(
                Game.created_at < created_at,
                and_(Game.created_at == created_at, Game.id < game_id),
            )
        )
    query = query.order_by(Game.created_at.desc(), Game.id.desc()).limit(page_size + 1)

    result = await db.execute(query)
    games = list(result.scalars().all())
    if len(games) > page_size:
        games = games[:page_size]
        return GamePage(games=games, next_cursor=encode_cursor(games[-1]))
    return GamePage(games=games)

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class GameType(str, enum.Enum):
    othello = "othello"


class GameStatus(str, enum.Enum):
    active = "active"
    finished = "finished"


class Side(str, enum.Enum):
    black = "black"
    white = "white"


class Winner(str, enum.Enum):
    ai = "ai"
    collective = "collective"
    draw = "draw"


class Game(Base):
    __tablename__ = "games"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    game_type: Mapped[GameType] = mapped_column(
        Enum(GameType), nullable=False, default=GameType.othello
    )
    status: Mapped[GameStatus] = mapped_column(
        Enum(GameStatus), nullable=False, default=GameStatus.active, index=True
    )
    ai_side: Mapped[Side] = mapped_column(Enum(Side), nullable=False)
    current_turn: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # 8x8 grid of cell values: 0 empty, 1 black, 2 white
    board_state: Mapped[list[list[int]]] = mapped_column(JSON, nullable=False)
    winner: Mapped[Winner | None] = mapped_column(Enum(Winner), nullable=True, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )
    finished_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )

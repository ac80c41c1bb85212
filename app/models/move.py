import enum
from datetime import datetime

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.game import Side, utc_now


class PlayedBy(str, enum.Enum):
    ai = "ai"
    collective = "collective"


class Move(Base):
    """Append-only record of what was played each turn. position is NULL for a pass."""

    __tablename__ = "moves"
    __table_args__ = (
        UniqueConstraint("game_id", "turn_number", name="uq_move_game_turn"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    game_id: Mapped[str] = mapped_column(ForeignKey("games.id"), nullable=False, index=True)
    turn_number: Mapped[int] = mapped_column(Integer, nullable=False)
    side: Mapped[Side] = mapped_column(Enum(Side), nullable=False)
    position: Mapped[str | None] = mapped_column(String(2), nullable=True)
    played_by: Mapped[PlayedBy] = mapped_column(Enum(PlayedBy), nullable=False)
    candidate_id: Mapped[str | None] = mapped_column(ForeignKey("candidates.id"), nullable=True)
    flipped: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.game import new_id, utc_now


class Vote(Base):
    """A user's current choice for one turn. Changing your mind repoints the row."""

    __tablename__ = "votes"
    __table_args__ = (
        UniqueConstraint("game_id", "turn_number", "user_id", name="uq_vote_game_turn_user"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    game_id: Mapped[str] = mapped_column(ForeignKey("games.id"), nullable=False, index=True)
    turn_number: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    candidate_id: Mapped[str] = mapped_column(
        ForeignKey("candidates.id"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

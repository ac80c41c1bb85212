"""Candidate model: one proposed move for a (game, turn), subject to voting.

Lifecycle is one-way: voting -> closed -> adopted (at most one per turn).
vote_count is a denormalised tally; it must always equal the number of Vote
rows pointing at the candidate once a transaction commits.
"""

import enum
from datetime import datetime

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.game import new_id, utc_now


class CandidateStatus(str, enum.Enum):
    voting = "voting"
    closed = "closed"
    adopted = "adopted"


class CandidateAuthor(str, enum.Enum):
    ai = "ai"
    user = "user"


class Candidate(Base):
    __tablename__ = "candidates"
    __table_args__ = (
        UniqueConstraint(
            "game_id", "turn_number", "position", name="uq_candidate_game_turn_position"
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    game_id: Mapped[str] = mapped_column(ForeignKey("games.id"), nullable=False, index=True)
    turn_number: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    # Board notation, e.g. "D3"
    position: Mapped[str] = mapped_column(String(2), nullable=False)
    description: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    resulting_board: Mapped[list[list[int]]] = mapped_column(JSON, nullable=False)
    created_by: Mapped[CandidateAuthor] = mapped_column(Enum(CandidateAuthor), nullable=False)
    user_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    vote_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[CandidateStatus] = mapped_column(
        Enum(CandidateStatus), nullable=False, default=CandidateStatus.voting
    )
    voting_deadline: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

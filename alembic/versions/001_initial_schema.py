"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "games",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("game_type", sa.Enum("othello", name="gametype"), nullable=False),
        sa.Column(
            "status",
            sa.Enum("active", "finished", name="gamestatus"),
            nullable=False,
        ),
        sa.Column("ai_side", sa.Enum("black", "white", name="side"), nullable=False),
        sa.Column("current_turn", sa.Integer(), nullable=False),
        sa.Column("board_state", sa.JSON(), nullable=False),
        sa.Column(
            "winner",
            sa.Enum("ai", "collective", "draw", name="winner"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_games_status"), "games", ["status"], unique=False)
    op.create_index(op.f("ix_games_created_at"), "games", ["created_at"], unique=False)

    op.create_table(
        "candidates",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("game_id", sa.String(length=36), nullable=False),
        sa.Column("turn_number", sa.Integer(), nullable=False),
        sa.Column("position", sa.String(length=2), nullable=False),
        sa.Column("description", sa.String(length=200), nullable=False),
        sa.Column("resulting_board", sa.JSON(), nullable=False),
        sa.Column(
            "created_by",
            sa.Enum("ai", "user", name="candidateauthor"),
            nullable=False,
        ),
        sa.Column("user_id", sa.String(length=255), nullable=True),
        sa.Column("vote_count", sa.Integer(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("voting", "closed", "adopted", name="candidatestatus"),
            nullable=False,
        ),
        sa.Column("voting_deadline", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["game_id"], ["games.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "game_id", "turn_number", "position", name="uq_candidate_game_turn_position"
        ),
    )
    op.create_index(op.f("ix_candidates_game_id"), "candidates", ["game_id"], unique=False)
    op.create_index(
        op.f("ix_candidates_turn_number"), "candidates", ["turn_number"], unique=False
    )
    op.create_index(op.f("ix_candidates_user_id"), "candidates", ["user_id"], unique=False)

    op.create_table(
        "votes",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("game_id", sa.String(length=36), nullable=False),
        sa.Column("turn_number", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("candidate_id", sa.String(length=36), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["game_id"], ["games.id"]),
        sa.ForeignKeyConstraint(["candidate_id"], ["candidates.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("game_id", "turn_number", "user_id", name="uq_vote_game_turn_user"),
    )
    op.create_index(op.f("ix_votes_game_id"), "votes", ["game_id"], unique=False)
    op.create_index(op.f("ix_votes_user_id"), "votes", ["user_id"], unique=False)
    op.create_index(op.f("ix_votes_candidate_id"), "votes", ["candidate_id"], unique=False)

    op.create_table(
        "moves",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("game_id", sa.String(length=36), nullable=False),
        sa.Column("turn_number", sa.Integer(), nullable=False),
        sa.Column("side", sa.Enum("black", "white", name="side"), nullable=False),
        sa.Column("position", sa.String(length=2), nullable=True),
        sa.Column(
            "played_by",
            sa.Enum("ai", "collective", name="playedby"),
            nullable=False,
        ),
        sa.Column("candidate_id", sa.String(length=36), nullable=True),
        sa.Column("flipped", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["game_id"], ["games.id"]),
        sa.ForeignKeyConstraint(["candidate_id"], ["candidates.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("game_id", "turn_number", name="uq_move_game_turn"),
    )
    op.create_index(op.f("ix_moves_id"), "moves", ["id"], unique=False)
    op.create_index(op.f("ix_moves_game_id"), "moves", ["game_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_moves_game_id"), table_name="moves")
    op.drop_index(op.f("ix_moves_id"), table_name="moves")
    op.drop_table("moves")

    op.drop_index(op.f("ix_votes_candidate_id"), table_name="votes")
    op.drop_index(op.f("ix_votes_user_id"), table_name="votes")
    op.drop_index(op.f("ix_votes_game_id"), table_name="votes")
    op.drop_table("votes")

    op.drop_index(op.f("ix_candidates_user_id"), table_name="candidates")
    op.drop_index(op.f("ix_candidates_turn_number"), table_name="candidates")
    op.drop_index(op.f("ix_candidates_game_id"), table_name="candidates")
    op.drop_table("candidates")

    op.drop_index(op.f("ix_games_created_at"), table_name="games")
    op.drop_index(op.f("ix_games_status"), table_name="games")
    op.drop_table("games")

    op.execute("DROP TYPE IF EXISTS playedby")
    op.execute("DROP TYPE IF EXISTS candidatestatus")
    op.execute("DROP TYPE IF EXISTS candidateauthor")
    op.execute("DROP TYPE IF EXISTS winner")
    op.execute("DROP TYPE IF EXISTS side")
    op.execute("DROP TYPE IF EXISTS gamestatus")
    op.execute("DROP TYPE IF EXISTS gametype")

"""Heuristic move selection for the automated player.

Scores each legal move with a static positional weight table (corners are
gold, the squares next to them are poison) plus a small bonus per flipped disc.
Deterministic: equal scores are ordered row-major, so the same board always
yields the same ranking.
"""

from __future__ import annotations

from dataclasses import dataclass

from app.services.board_engine import Board, Cell, Position, flips_for, legal_moves

POSITION_WEIGHTS: list[list[int]] = [
    [100, -20, 10, 5, 5, 10, -20, 100],
    [-20, -50, -2, -2, -2, -2, -50, -20],
    [10, -2, 1, 1, 1, 1, -2, 10],
    [5, -2, 1, 0, 0, 1, -2, 5],
    [5, -2, 1, 0, 0, 1, -2, 5],
    [10, -2, 1, 1, 1, 1, -2, 10],
    [-20, -50, -2, -2, -2, -2, -50, -20],
    [100, -20, 10, 5, 5, 10, -20, 100],
]

FLIP_WEIGHT = 2


@dataclass(frozen=True)
class RankedMove:
    position: Position
    score: int
    flip_count: int

    def describe(self) -> str:
        return (
            f"{self.position.to_notation()}: flips {self.flip_count} "
            f"disc(s), heuristic score {self.score}"
        )


def evaluate_move(board: Board, color: Cell, position: Position) -> RankedMove:
    flip_count = len(flips_for(board, color, position))
    weight = POSITION_WEIGHTS[position.row][position.col]
    return RankedMove(position=position, score=weight + FLIP_WEIGHT * flip_count, flip_count=flip_count)


def rank_moves(board: Board, color: Cell) -> list[RankedMove]:
    """Legal moves best-first."""
    ranked = [evaluate_move(board, color, position) for position in legal_moves(board, color)]
    return sorted(ranked, key=lambda move: (-move.score, move.position))


def choose_move(board: Board, color: Cell) -> Position | None:
    ranked = rank_moves(board, color)
    return ranked[0].position if ranked else None

"""
Othello rules engine.

Pure functions over an 8x8 board stored as ``list[list[int]]`` (row-major,
row 0 at the top). Cell values: 0 empty, 1 black, 2 white. Nothing here touches
the database; every function returns new data and leaves its inputs untouched.

Notation: column letter A-H followed by row number 1-8, so row 2 / col 3 is "D3".

A placement is legal when, in at least one of the 8 directions, walking
outward passes over one or more opposing discs and then lands on an own disc.
Every such run is flipped.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from app.exceptions import InvalidMoveError
from app.models.game import Side, Winner

BOARD_SIZE = 8
CELL_COUNT = BOARD_SIZE * BOARD_SIZE

# (row delta, col delta): N, NE, E, SE, S, SW, W, NW
DIRECTIONS: list[tuple[int, int]] = [
    (-1, 0),
    (-1, 1),
    (0, 1),
    (1, 1),
    (1, 0),
    (1, -1),
    (0, -1),
    (-1, -1),
]

Board = list[list[int]]


class Cell(enum.IntEnum):
    empty = 0
    black = 1
    white = 2


@dataclass(frozen=True, order=True)
class Position:
    row: int
    col: int

    @classmethod
    def from_notation(cls, text: str) -> Position:
        """'A1' - 'H8' (case-insensitive) get converted to (0, 0) - (7, 7)."""
        text = text.strip().upper()
        if len(text) != 2 or not text[0].isalpha() or not text[1].isdigit():
            raise InvalidMoveError(f"Invalid position notation: {text!r}")
        position = cls(row=int(text[1]) - 1, col=ord(text[0]) - ord("A"))
        if not position.is_within_bounds():
            raise InvalidMoveError(f"Position {text!r} is off the board")
        return position

    def to_notation(self) -> str:
        return f"{chr(self.col + ord('A'))}{self.row + 1}"

    def is_within_bounds(self) -> bool:
        return 0 <= self.row < BOARD_SIZE and 0 <= self.col < BOARD_SIZE


@dataclass(frozen=True)
class MoveResult:
    board: Board
    flipped: list[Position] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Colors
# ---------------------------------------------------------------------------


def cell_for_side(side: Side) -> Cell:
    return Cell.black if side == Side.black else Cell.white


def side_for_cell(color: Cell) -> Side:
    if color == Cell.black:
        return Side.black
    if color == Cell.white:
        return Side.white
    raise ValueError("An empty cell has no side")


def opponent(color: Cell) -> Cell:
    return Cell.white if color == Cell.black else Cell.black


def side_to_move(turn_number: int) -> Cell:
    """Black moves on even turns, white on odd turns."""
    return Cell.black if turn_number % 2 == 0 else Cell.white


# ---------------------------------------------------------------------------
# Board helpers
# ---------------------------------------------------------------------------


def initial_board() -> Board:
    board = [[Cell.empty.value] * BOARD_SIZE for _ in range(BOARD_SIZE)]
    board[3][3] = Cell.white.value
    board[3][4] = Cell.black.value
    board[4][3] = Cell.black.value
    board[4][4] = Cell.white.value
    return board


def copy_board(board: Board) -> Board:
    return [list(row) for row in board]


def validate_board(board: object) -> Board:
    """Raise ValueError unless *board* is an 8x8 grid of known cell values."""
    if not isinstance(board, list) or len(board) != BOARD_SIZE:
        raise ValueError("Board must have 8 rows")
    valid_values = {cell.value for cell in Cell}
    for row in board:
        if not isinstance(row, list) or len(row) != BOARD_SIZE:
            raise ValueError("Every board row must have 8 cells")
        if any(value not in valid_values for value in row):
            raise ValueError("Board cells must be 0 (empty), 1 (black) or 2 (white)")
    return board


def count_discs(board: Board, color: Cell) -> int:
    return sum(1 for row in board for value in row if value == color)


def is_board_full(board: Board) -> bool:
    return all(value != Cell.empty for row in board for value in row)


def empty_positions(board: Board) -> list[Position]:
    return [
        Position(row, col)
        for row in range(BOARD_SIZE)
        for col in range(BOARD_SIZE)
        if board[row][col] == Cell.empty
    ]


# ---------------------------------------------------------------------------
# Move generation
# ---------------------------------------------------------------------------


def _flips_in_direction(
    board: Board, position: Position, color: Cell, direction: tuple[int, int]
) -> list[Position]:
    """Opposing discs captured along one direction, or [] if the run is not closed."""
    rival = opponent(color)
    dr, dc = direction
    run: list[Position] = []
    current = Position(position.row + dr, position.col + dc)
    while current.is_within_bounds():
        value = board[current.row][current.col]
        if value == rival:
            run.append(current)
        elif value == color:
            return run
        else:
            break
        current = Position(current.row + dr, current.col + dc)
    return []


def flips_for(board: Board, color: Cell, position: Position) -> list[Position]:
    """All discs that placing *color* at *position* would flip ([] if illegal)."""
    if not position.is_within_bounds() or board[position.row][position.col] != Cell.empty:
        return []
    flipped: list[Position] = []
    for direction in DIRECTIONS:
        flipped.extend(_flips_in_direction(board, position, color, direction))
    return flipped


def is_legal_move(board: Board, color: Cell, position: Position) -> bool:
    return bool(flips_for(board, color, position))


def legal_moves(board: Board, color: Cell) -> list[Position]:
    """Legal target squares for *color*, in row-major order (may be empty)."""
    return [
        position
        for position in empty_positions(board)
        if is_legal_move(board, color, position)
    ]


def has_legal_moves(board: Board, color: Cell) -> bool:
    return any(is_legal_move(board, color, position) for position in empty_positions(board))


def apply_move(board: Board, color: Cell, position: Position) -> MoveResult:
    """Place a disc and flip every captured run. Illegal placements raise InvalidMoveError."""
    if color not in (Cell.black, Cell.white):
        raise InvalidMoveError("Only black or white can move")
    if not position.is_within_bounds():
        raise InvalidMoveError(f"Position {position} is off the board")
    if board[position.row][position.col] != Cell.empty:
        raise InvalidMoveError(f"{position.to_notation()} is already occupied")

    flipped = flips_for(board, color, position)
    if not flipped:
        raise InvalidMoveError(
            f"{position.to_notation()} is not a legal move for {color.name}"
        )

    new_board = copy_board(board)
    new_board[position.row][position.col] = color.value
    for captured in flipped:
        new_board[captured.row][captured.col] = color.value
    return MoveResult(board=new_board, flipped=flipped)


# ---------------------------------------------------------------------------
# End of game
# ---------------------------------------------------------------------------


def should_end_game(board: Board, current_player: Cell) -> bool:
    """The game ends on a full board, when one color has been wiped out,
    or when neither side can move.

    The wiped-out rule is checked on its own even though it normally implies
    that nobody can move; it is kept as a separate house rule.
    """
    if is_board_full(board):
        return True

    if count_discs(board, Cell.black) == 0 or count_discs(board, Cell.white) == 0:
        return True

    return not has_legal_moves(board, current_player) and not has_legal_moves(
        board, opponent(current_player)
    )


def determine_winner(board: Board, ai_side: Side) -> Winner:
    black = count_discs(board, Cell.black)
    white = count_discs(board, Cell.white)
    if black == white:
        return Winner.draw

    majority = Side.black if black > white else Side.white
    return Winner.ai if majority == ai_side else Winner.collective


def score(board: Board) -> dict[str, int]:
    return {
        Side.black.value: count_discs(board, Cell.black),
        Side.white.value: count_discs(board, Cell.white),
    }

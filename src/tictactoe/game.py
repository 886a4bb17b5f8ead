"""Core rules for 3x3 Tic-Tac-Toe: board, win/draw detection, and rounds."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Tuple, Union

Player = str  # "X" or "O"

EMPTY = " "
# Marks accepted as an empty cell when boards come from outside
BLANKS = (EMPTY, "", None)
DRAW = "draw"
PLAYERS: Tuple[Player, Player] = ("X", "O")
STARTING_PLAYER: Player = "X"

WINNING_LINES: Tuple[Tuple[int, int, int], ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)

CENTER = 4
CORNERS: Tuple[int, ...] = (0, 2, 6, 8)
OPPOSITE_CORNER = {0: 8, 2: 6, 6: 2, 8: 0}


def other(player: Player) -> Player:
    return "O" if player == "X" else "X"


# ---------- Board ----------


@dataclass
class Board:
    # Server-internal: 'X', 'O', or ' ' (space) for empty
    cells: List[str] = field(default_factory=lambda: [EMPTY] * 9)

    def __post_init__(self) -> None:
        if len(self.cells) != 9:
            raise ValueError("A board has exactly 9 cells")
        self.cells = [EMPTY if c in BLANKS else c for c in self.cells]
        for c in self.cells:
            if c != EMPTY and c not in PLAYERS:
                raise ValueError(f"Unknown mark {c!r}; expected 'X', 'O' or empty")

    def __getitem__(self, index: int) -> str:
        return self.cells[index]

    def __iter__(self) -> Iterator[str]:
        return iter(self.cells)

    def is_full(self) -> bool:
        return all(c != EMPTY for c in self.cells)

    def is_empty(self, idx: int) -> bool:
        return self.cells[idx] == EMPTY

    def place(self, player: Player, idx: int) -> None:
        if self.cells[idx] != EMPTY:
            raise ValueError("Cell already occupied")
        self.cells[idx] = player

    def undo(self, idx: int) -> None:
        """Revert a trial placement."""
        self.cells[idx] = EMPTY

    def clear(self) -> None:
        self.cells[:] = [EMPTY] * 9

    def move_count(self) -> int:
        return sum(1 for c in self.cells if c != EMPTY)

    def empty_cells(self) -> Iterator[int]:
        return empty_cells(self.cells)

    def has_win(self, player: Player) -> bool:
        return has_win(self.cells, player)

    def is_draw(self) -> bool:
        return is_draw(self.cells)


Cells = Union[Board, Sequence[str]]


# ---------- Evaluator & move generator ----------


def has_win(board: Cells, player: Player) -> bool:
    """True iff ``player`` holds all three cells of some winning line."""
    return any(
        board[a] == player and board[b] == player and board[c] == player
        for a, b, c in WINNING_LINES
    )


def winning_line(board: Cells, player: Player) -> Optional[Tuple[int, int, int]]:
    for line in WINNING_LINES:
        if all(board[i] == player for i in line):
            return line
    return None


def is_draw(board: Cells) -> bool:
    if any(c in BLANKS for c in board):
        return False
    return not (has_win(board, "X") or has_win(board, "O"))


def winner_of(board: Cells) -> Optional[str]:
    """Returns 'X' or 'O' for a won board, DRAW for a drawn one, else None."""
    for player in PLAYERS:
        if has_win(board, player):
            return player
    if is_draw(board):
        return DRAW
    return None


def empty_cells(board: Cells) -> Iterator[int]:
    """Yield the empty indices in ascending order.

    A fresh generator is returned on each call, so callers can iterate again
    simply by asking again.
    """
    return (i for i, c in enumerate(board) if c in BLANKS)


# ---------- Round ----------


@dataclass(frozen=True)
class MoveResult:
    accepted: bool
    terminal: bool
    winner: Optional[str] = None  # 'X', 'O', DRAW or None
    index: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "accepted": self.accepted,
            "terminal": self.terminal,
            "winner": self.winner,
            "index": self.index,
        }


@dataclass
class GameRound:
    board: Board = field(default_factory=Board)
    current_player: Player = STARTING_PLAYER
    winner: Optional[Player] = None
    drawn: bool = False
    round_number: int = 1

    @property
    def is_over(self) -> bool:
        return self.winner is not None or self.drawn

    @property
    def outcome(self) -> Optional[str]:
        if self.winner:
            return self.winner
        if self.drawn:
            return DRAW
        return None

    def available_moves(self) -> List[int]:
        if self.is_over:
            return []
        return list(self.board.empty_cells())

    def apply_move(self, index: int, player: Player) -> MoveResult:
        """Place ``player`` at ``index`` if the move is legal.

        Illegal moves (occupied cell, finished round, out-of-range index, or
        not ``player``'s turn) leave the round untouched and come back with
        ``accepted=False``.
        """
        if (
            self.is_over
            or player != self.current_player
            or not 0 <= index < 9
            or not self.board.is_empty(index)
        ):
            return MoveResult(accepted=False, terminal=self.is_over, winner=self.outcome)

        self.board.place(player, index)
        self._update_state(player)
        if not self.is_over:
            self.current_player = other(player)
        return MoveResult(
            accepted=True, terminal=self.is_over, winner=self.outcome, index=index
        )

    def reset_round(self) -> None:
        self.board.clear()
        self.current_player = STARTING_PLAYER
        self.winner = None
        self.drawn = False
        self.round_number += 1

    # ---- helpers ----

    def _update_state(self, player: Player) -> None:
        # Only the side that just moved can have completed a line
        if has_win(self.board, player):
            self.winner = player
            self.drawn = False
            return
        if self.board.is_full():
            self.winner = None
            self.drawn = True

"""Computer opponents for Tic-Tac-Toe, one strategy per difficulty tier."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union
import logging
import math
import random

from . import config
from .game import (
    CENTER,
    CORNERS,
    EMPTY,
    OPPOSITE_CORNER,
    PLAYERS,
    Board,
    GameRound,
    Player,
    empty_cells,
    has_win,
    other,
)

logger = logging.getLogger(__name__)


class Difficulty(str, Enum):
    RANDOM = "random"
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


@dataclass(frozen=True)
class StrategyConfig:
    """Probabilities that make the weaker tiers beatable."""

    easy_win_chance: float = field(default_factory=lambda: config.EASY_WIN_CHANCE)
    medium_mistake_chance: float = field(
        default_factory=lambda: config.MEDIUM_MISTAKE_CHANCE
    )

    def __post_init__(self) -> None:
        for name in ("easy_win_chance", "medium_mistake_chance"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be between 0 and 1, got {value}")


# Seconds of fake "thinking" before the computer moves
THINK_DELAYS: Dict[Difficulty, Tuple[float, float]] = {
    Difficulty.RANDOM: (0.6, 1.6),
    Difficulty.EASY: (0.4, 1.0),
    Difficulty.MEDIUM: (0.6, 1.6),
    Difficulty.HARD: (0.8, 2.0),
}


def think_delay(
    difficulty: Difficulty,
    rng: Optional[random.Random] = None,
    scale: Optional[float] = None,
) -> float:
    low, high = THINK_DELAYS[Difficulty(difficulty)]
    scale = config.THINK_DELAY_SCALE if scale is None else scale
    rng = rng or random.Random()
    return max(0.0, rng.uniform(low, high) * scale)


Strategy = Callable[[Board, Player, Player, random.Random, StrategyConfig], int]


# ---- tactical helpers ----


def _require_moves(board: Board) -> List[int]:
    moves = list(board.empty_cells())
    if not moves:
        raise RuntimeError("No valid moves available")
    return moves


def find_winning_move(board: Board, player: Player) -> Optional[int]:
    """First empty cell (by index) that completes a line for ``player``."""
    for idx in list(board.empty_cells()):
        board.place(player, idx)
        won = board.has_win(player)
        board.undo(idx)
        if won:
            return idx
    return None


def is_fork(board: Board, player: Player, idx: int) -> bool:
    """Would ``player`` at ``idx`` leave two or more cells that each win?"""
    if not board.is_empty(idx):
        return False
    board.place(player, idx)
    threats = 0
    for nxt in list(board.empty_cells()):
        board.place(player, nxt)
        if board.has_win(player):
            threats += 1
        board.undo(nxt)
    board.undo(idx)
    return threats >= 2


def find_fork_move(board: Board, player: Player) -> Optional[int]:
    for idx in list(board.empty_cells()):
        if is_fork(board, player, idx):
            return idx
    return None


def _opposite_corner(board: Board, opp: Player) -> Optional[int]:
    taken = [c for c in CORNERS if board[c] == opp]
    if len(taken) == 1 and board.is_empty(OPPOSITE_CORNER[taken[0]]):
        return OPPOSITE_CORNER[taken[0]]
    return None


def _ladder_rank(board: Board, idx: int, me: Player, opp: Player) -> int:
    """Position of ``idx`` on the heuristic ladder; higher is preferred."""
    board.place(me, idx)
    wins = board.has_win(me)
    board.undo(idx)
    if wins:
        return 8
    board.place(opp, idx)
    blocks = board.has_win(opp)
    board.undo(idx)
    if blocks:
        return 7
    if is_fork(board, me, idx):
        return 6
    if is_fork(board, opp, idx):
        return 5
    if idx == CENTER:
        return 4
    if idx == _opposite_corner(board, opp):
        return 3
    if idx in CORNERS:
        return 2
    return 1


# ---- exhaustive search ----


def _score_move(scratch: List[str], idx: int, player: Player) -> float:
    scratch[idx] = player
    try:
        if has_win(scratch, player):
            return 1.0
        if EMPTY not in scratch:
            return 0.0
        child = _negamax(tuple(scratch), other(player))
        # A result k plies below the child is k+1 plies below this node
        return -child / (1.0 + abs(child))
    finally:
        scratch[idx] = EMPTY


@lru_cache(maxsize=None)
def _negamax(cells: Tuple[str, ...], player: Player) -> float:
    """Minimax value of a non-terminal position for the side to move.

    A win reached ``d`` plies ahead scores ``1/d``, a loss ``-1/d`` and a
    draw 0, so quicker wins and slower losses are preferred. The position is
    scored from the mover's point of view (maximizing), which makes the
    opponent's minimizing step a sign flip.
    """
    scratch = list(cells)
    best = -math.inf
    for idx in empty_cells(cells):
        score = _score_move(scratch, idx, player)
        if score > best:
            best = score
        if best >= 1.0:
            break
    return best if best != -math.inf else 0.0


def move_scores(board: Union[Board, Sequence[str]], player: Player) -> Dict[int, float]:
    """Minimax score of every empty cell for ``player`` to move."""
    scratch = Board(cells=list(board)).cells
    return {idx: _score_move(scratch, idx, player) for idx in empty_cells(scratch)}


# ---- strategies ----


def random_move(
    board: Board, me: Player, opp: Player, rng: random.Random, cfg: StrategyConfig
) -> int:
    return rng.choice(_require_moves(board))


def easy_move(
    board: Board, me: Player, opp: Player, rng: random.Random, cfg: StrategyConfig
) -> int:
    """Mostly defensive; only sometimes notices its own win."""
    _require_moves(board)
    block = find_winning_move(board, opp)
    if block is not None:
        return block
    if rng.random() < cfg.easy_win_chance:
        win = find_winning_move(board, me)
        if win is not None:
            return win
    return random_move(board, me, opp, rng, cfg)


def medium_move(
    board: Board, me: Player, opp: Player, rng: random.Random, cfg: StrategyConfig
) -> int:
    """Win, block, centre; with an occasional random slip."""
    _require_moves(board)
    if rng.random() < cfg.medium_mistake_chance:
        return random_move(board, me, opp, rng, cfg)
    win = find_winning_move(board, me)
    if win is not None:
        return win
    block = find_winning_move(board, opp)
    if block is not None:
        return block
    if board.is_empty(CENTER):
        return CENTER
    return random_move(board, me, opp, rng, cfg)


def ladder_move(
    board: Board, me: Player, opp: Player, rng: random.Random, cfg: StrategyConfig
) -> int:
    """Classic rule ladder: win, block, fork, block fork, centre, corners, edges."""
    moves = _require_moves(board)
    for found in (
        find_winning_move(board, me),
        find_winning_move(board, opp),
        find_fork_move(board, me),
        find_fork_move(board, opp),
    ):
        if found is not None:
            return found
    if board.is_empty(CENTER):
        return CENTER
    opposite = _opposite_corner(board, opp)
    if opposite is not None:
        return opposite
    corners = [c for c in CORNERS if board.is_empty(c)]
    if corners:
        return rng.choice(corners)
    return rng.choice(moves)


def hard_move(
    board: Board, me: Player, opp: Player, rng: random.Random, cfg: StrategyConfig
) -> int:
    """Optimal play; the rule ladder picks among equally scored moves."""
    _require_moves(board)
    scores = move_scores(board, me)
    best = max(scores.values())
    tied = [idx for idx, score in scores.items() if score == best]
    if len(tied) == 1:
        return tied[0]
    ranks = {idx: _ladder_rank(board, idx, me, opp) for idx in tied}
    top = max(ranks.values())
    return rng.choice([idx for idx in tied if ranks[idx] == top])


STRATEGIES: Dict[Difficulty, Strategy] = {
    Difficulty.RANDOM: random_move,
    Difficulty.EASY: easy_move,
    Difficulty.MEDIUM: medium_move,
    Difficulty.HARD: hard_move,
}


def compute_opponent_move(
    board: Union[Board, Sequence[str]],
    difficulty: Union[Difficulty, str],
    self_symbol: Player,
    opponent_symbol: Player,
    rng: Optional[random.Random] = None,
    strategy_config: Optional[StrategyConfig] = None,
) -> int:
    """Pick a cell for ``self_symbol``. The caller's board is never modified."""
    if self_symbol not in PLAYERS or opponent_symbol not in PLAYERS:
        raise ValueError("Symbols must be 'X' or 'O'")
    if self_symbol == opponent_symbol:
        raise ValueError("Players need distinct symbols")

    strategy = STRATEGIES[Difficulty(difficulty)]
    scratch = Board(cells=list(board))
    return strategy(
        scratch,
        self_symbol,
        opponent_symbol,
        rng if rng is not None else random.Random(),
        strategy_config or StrategyConfig(),
    )


@dataclass
class OpponentAI:
    """Computer player bound to a symbol and a difficulty tier."""

    player: Player
    difficulty: Difficulty = Difficulty.MEDIUM
    rng: random.Random = field(default_factory=random.Random, repr=False)
    strategy_config: StrategyConfig = field(default_factory=StrategyConfig)

    def __post_init__(self) -> None:
        self.difficulty = Difficulty(self.difficulty)
        if self.player not in PLAYERS:
            raise ValueError("Symbol must be 'X' or 'O'")

    def choose(self, game_round: GameRound) -> int:
        if game_round.is_over:
            raise ValueError("Round already finished")
        if game_round.current_player != self.player:
            raise ValueError("It is not this AI player's turn")

        move = compute_opponent_move(
            game_round.board,
            self.difficulty,
            self.player,
            other(self.player),
            rng=self.rng,
            strategy_config=self.strategy_config,
        )
        logger.debug("%s (%s) plays cell %d", self.player, self.difficulty.value, move)
        return move

"""Turn controller: one session's rounds, tally, and computer opponent."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional
import logging
import random

from .ai import Difficulty, OpponentAI, StrategyConfig
from .game import DRAW, PLAYERS, GameRound, MoveResult, Player, other

logger = logging.getLogger(__name__)


class GameMode(str, Enum):
    COMPUTER = "computer"
    HUMAN = "human"


class Phase(str, Enum):
    AWAITING_HUMAN = "awaiting-human-move"
    AWAITING_OPPONENT = "awaiting-opponent-move"
    ROUND_OVER = "round-over"


@dataclass
class ScoreTally:
    player: int = 0
    opponent: int = 0
    ties: int = 0

    def record(self, outcome: str, player_symbol: Player) -> None:
        if outcome == DRAW:
            self.ties += 1
        elif outcome == player_symbol:
            self.player += 1
        else:
            self.opponent += 1

    def reset(self) -> None:
        self.player = self.opponent = self.ties = 0

    def to_dict(self) -> Dict[str, int]:
        return {"player": self.player, "opponent": self.opponent, "ties": self.ties}


@dataclass
class Match:
    """A player's session: configuration, the running round, and the tally.

    In computer mode the human owns ``human_symbol`` and the opponent the
    other one. In human mode both symbols belong to people sharing a screen
    and the tally counts ``human_symbol`` as "player".
    """

    mode: GameMode = GameMode.COMPUTER
    human_symbol: Player = "X"
    difficulty: Difficulty = Difficulty.MEDIUM
    rng: random.Random = field(default_factory=random.Random, repr=False)
    strategy_config: StrategyConfig = field(default_factory=StrategyConfig)
    game_round: GameRound = field(default_factory=GameRound)
    scores: ScoreTally = field(default_factory=ScoreTally)
    pending_difficulty: Optional[Difficulty] = None
    opponent: Optional[OpponentAI] = field(default=None, init=False)

    def __post_init__(self) -> None:
        self.mode = GameMode(self.mode)
        self.difficulty = Difficulty(self.difficulty)
        if self.human_symbol not in PLAYERS:
            raise ValueError("Symbol must be 'X' or 'O'")
        self._build_opponent()

    # ---- state ----

    @property
    def opponent_symbol(self) -> Player:
        return other(self.human_symbol)

    @property
    def phase(self) -> Phase:
        if self.game_round.is_over:
            return Phase.ROUND_OVER
        if self.is_computer_turn():
            return Phase.AWAITING_OPPONENT
        return Phase.AWAITING_HUMAN

    def is_computer_turn(self) -> bool:
        return (
            self.opponent is not None
            and not self.game_round.is_over
            and self.game_round.current_player == self.opponent.player
        )

    # ---- moves ----

    def play_human(self, index: int) -> MoveResult:
        if self.phase is not Phase.AWAITING_HUMAN:
            return self._rejected()
        return self._apply(index, self.game_round.current_player)

    def play_opponent(self) -> Optional[MoveResult]:
        """Let the computer move if it is its turn; returns None otherwise."""
        if self.phase is not Phase.AWAITING_OPPONENT or self.opponent is None:
            return None
        index = self.opponent.choose(self.game_round)
        return self._apply(index, self.opponent.player)

    # ---- rounds & settings ----

    def reset_round(self) -> None:
        if self.pending_difficulty is not None:
            self.difficulty = self.pending_difficulty
            self.pending_difficulty = None
            self._build_opponent()
        self.game_round.reset_round()

    def configure(
        self,
        mode: Optional[GameMode] = None,
        human_symbol: Optional[Player] = None,
        difficulty: Optional[Difficulty] = None,
    ) -> None:
        """Change settings between or during rounds.

        A new mode or symbol starts over: fresh tally and a new round. A new
        difficulty waits for the next round so a round never changes tier.
        """
        restart = False
        if mode is not None and GameMode(mode) is not self.mode:
            self.mode = GameMode(mode)
            restart = True
        if human_symbol is not None and human_symbol != self.human_symbol:
            if human_symbol not in PLAYERS:
                raise ValueError("Symbol must be 'X' or 'O'")
            self.human_symbol = human_symbol
            restart = True
        if difficulty is not None:
            difficulty = Difficulty(difficulty)
            self.pending_difficulty = (
                None if difficulty is self.difficulty else difficulty
            )

        if restart:
            self.scores.reset()
            self._build_opponent()
            self.reset_round()

    # ---- helpers ----

    def _build_opponent(self) -> None:
        if self.mode is GameMode.COMPUTER:
            self.opponent = OpponentAI(
                player=self.opponent_symbol,
                difficulty=self.difficulty,
                rng=self.rng,
                strategy_config=self.strategy_config,
            )
        else:
            self.opponent = None

    def _apply(self, index: int, player: Player) -> MoveResult:
        result = self.game_round.apply_move(index, player)
        if result.accepted and result.terminal and result.winner is not None:
            self.scores.record(result.winner, self.human_symbol)
            logger.info(
                "Round %d over: %s (tally %s)",
                self.game_round.round_number,
                result.winner,
                self.scores.to_dict(),
            )
        return result

    def _rejected(self) -> MoveResult:
        return MoveResult(
            accepted=False,
            terminal=self.game_round.is_over,
            winner=self.game_round.outcome,
        )

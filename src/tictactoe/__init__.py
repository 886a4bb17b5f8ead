"""Tic-Tac-Toe package exposing game rules, computer opponents, and the web application."""

from .ai import Difficulty, OpponentAI, compute_opponent_move
from .controller import GameMode, Match
from .game import Board, GameRound, has_win, is_draw
from .ui import app

__all__ = [
    "Board",
    "Difficulty",
    "GameMode",
    "GameRound",
    "Match",
    "OpponentAI",
    "app",
    "compute_opponent_move",
    "has_win",
    "is_draw",
]

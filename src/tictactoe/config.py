"""Environment-driven settings for the Tic-Tac-Toe server."""

from __future__ import annotations

import os
from typing import Optional


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    if v is not None and str(v).strip() != "":
        return str(v).strip()
    return default


def _env_float(name: str, default: float) -> float:
    raw = _env(name, "")
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from exc


def _env_probability(name: str, default: float) -> float:
    value = _env_float(name, default)
    if not 0.0 <= value <= 1.0:
        raise RuntimeError(f"{name} must be between 0 and 1, got {value}")
    return value


# ================== SERVER ==================

HOST = _env("TICTACTOE_HOST", "0.0.0.0")
PORT = int(_env("TICTACTOE_PORT", "8000"))

# ================== LOGGING ==================

LOG_LEVEL = _env("TICTACTOE_LOG_LEVEL", "INFO").upper()
LOG_FILE: Optional[str] = _env("TICTACTOE_LOG_FILE") or None

# ================== OPPONENT ==================

# Tuned by feel, not derived
EASY_WIN_CHANCE = _env_probability("TICTACTOE_EASY_WIN_CHANCE", 0.20)
MEDIUM_MISTAKE_CHANCE = _env_probability("TICTACTOE_MEDIUM_MISTAKE_CHANCE", 0.25)

# Multiplier on the computer's "thinking" pause; 0 disables it
THINK_DELAY_SCALE = _env_float("TICTACTOE_THINK_DELAY_SCALE", 1.0)

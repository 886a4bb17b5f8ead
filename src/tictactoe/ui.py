"""FastAPI application serving Tic-Tac-Toe against a human or the computer."""

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional

from fastapi import BackgroundTasks, FastAPI, HTTPException, Response
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field

from .ai import Difficulty, think_delay
from .controller import GameMode, Match
from .game import EMPTY, MoveResult, winning_line

logger = logging.getLogger(__name__)


@dataclass
class GameSession:
    """Container for one browser's match and its pending computer move."""

    match: Match
    move_log: List[Dict[str, int | str]] = field(default_factory=list)
    ai_pending: bool = False
    last_result: Optional[MoveResult] = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


SESSIONS: Dict[str, GameSession] = {}
app = FastAPI(title="Tic-Tac-Toe", description="Tic-tac-toe played in the browser")

# Overrides the per-difficulty pause when set; tests pin it to zero
AI_THINK_DELAY: Optional[float] = None


class NewGameRequest(BaseModel):
    """Request payload for starting a new session."""

    mode: GameMode = Field(default=GameMode.COMPUTER)
    symbol: Literal["X", "O"] = Field(default="X", description="The human's mark")
    difficulty: Difficulty = Field(default=Difficulty.MEDIUM)


class MoveRequest(BaseModel):
    """Request payload for submitting a move on an existing game."""

    index: int = Field(ge=0, le=8)


class SettingsRequest(BaseModel):
    """Partial settings update; omitted fields keep their value."""

    mode: Optional[GameMode] = None
    symbol: Optional[Literal["X", "O"]] = None
    difficulty: Optional[Difficulty] = None


def _create_session(request: NewGameRequest) -> tuple[str, GameSession]:
    match = Match(
        mode=request.mode,
        human_symbol=request.symbol,
        difficulty=request.difficulty,
    )
    session = GameSession(match=match)
    session_id = uuid.uuid4().hex
    SESSIONS[session_id] = session
    logger.info(
        "Session %s created (%s, human=%s, %s)",
        session_id,
        match.mode.value,
        match.human_symbol,
        match.difficulty.value,
    )
    return session_id, session


def _get_session(game_id: str) -> GameSession:
    try:
        return SESSIONS[game_id]
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Game not found") from exc


def _delay_for(difficulty: Difficulty) -> float:
    if AI_THINK_DELAY is not None:
        return AI_THINK_DELAY
    return think_delay(difficulty)


def _run_ai_turn(game_id: str, round_number: int) -> None:
    session = SESSIONS.get(game_id)
    if not session:
        return

    time.sleep(_delay_for(session.match.difficulty))

    with session.lock:
        match = session.match
        if match.game_round.round_number != round_number:
            # The round was reset while we were "thinking"; a newer task owns it
            logger.debug("Session %s: dropped move for old round %d", game_id, round_number)
            return
        try:
            player = match.opponent.player if match.opponent else None
            result = match.play_opponent()
            if result is not None and result.accepted:
                session.move_log.append({"player": player, "index": result.index})
                session.last_result = result
        finally:
            session.ai_pending = False


def _schedule_ai(
    game_id: str, session: GameSession, background_tasks: Optional[BackgroundTasks]
) -> None:
    """Queue the computer's move if it is up next. Caller holds the lock."""
    if session.ai_pending or not session.match.is_computer_turn():
        return
    session.ai_pending = True
    if background_tasks is not None:
        background_tasks.add_task(
            _run_ai_turn, game_id, session.match.game_round.round_number
        )


def _serialize_session(game_id: str, session: GameSession) -> Dict[str, object]:
    with session.lock:
        match = session.match
        game_round = match.game_round
        line = (
            winning_line(game_round.board, game_round.winner)
            if game_round.winner
            else None
        )
        state: Dict[str, object] = {
            "id": game_id,
            "mode": match.mode.value,
            "humanSymbol": match.human_symbol,
            "opponentSymbol": match.opponent_symbol,
            "difficulty": match.difficulty.value,
            "pendingDifficulty": (
                match.pending_difficulty.value if match.pending_difficulty else None
            ),
            "currentPlayer": game_round.current_player,
            "phase": match.phase.value,
            "board": [c if c != EMPTY else "" for c in game_round.board],
            "winner": game_round.outcome,
            "winningLine": list(line) if line else None,
            "drawn": game_round.drawn,
            "roundNumber": game_round.round_number,
            "scores": match.scores.to_dict(),
            "moveLog": list(session.move_log),
            "aiPending": session.ai_pending,
            "lastResult": session.last_result.to_dict() if session.last_result else None,
        }
        if session.move_log:
            state["lastMove"] = session.move_log[-1]
        return state


def _apply_player_move(
    game_id: str,
    session: GameSession,
    index: int,
    background_tasks: Optional[BackgroundTasks] = None,
) -> MoveResult:
    with session.lock:
        match = session.match
        player = match.game_round.current_player
        result = match.play_human(index)
        session.last_result = result
        if result.accepted:
            session.move_log.append({"player": player, "index": index})
            _schedule_ai(game_id, session, background_tasks)
        return result


def _start_new_round(
    game_id: str, session: GameSession, background_tasks: Optional[BackgroundTasks]
) -> None:
    """Clear move bookkeeping after the match reset its round. Caller holds the lock."""
    session.move_log.clear()
    session.last_result = None
    session.ai_pending = False
    _schedule_ai(game_id, session, background_tasks)


@app.post("/api/game")
def create_game(
    request: NewGameRequest, background_tasks: BackgroundTasks
) -> Dict[str, object]:
    game_id, session = _create_session(request)
    with session.lock:
        _schedule_ai(game_id, session, background_tasks)
    return _serialize_session(game_id, session)


@app.get("/api/game/{game_id}")
def get_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/move")
def make_move(
    game_id: str, request: MoveRequest, background_tasks: BackgroundTasks
) -> Dict[str, object]:
    session = _get_session(game_id)
    _apply_player_move(game_id, session, request.index, background_tasks)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/reset")
def reset_round(game_id: str, background_tasks: BackgroundTasks) -> Dict[str, object]:
    session = _get_session(game_id)
    with session.lock:
        session.match.reset_round()
        _start_new_round(game_id, session, background_tasks)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/settings")
def update_settings(
    game_id: str, request: SettingsRequest, background_tasks: BackgroundTasks
) -> Dict[str, object]:
    session = _get_session(game_id)
    with session.lock:
        match = session.match
        round_before = match.game_round.round_number
        match.configure(
            mode=request.mode,
            human_symbol=request.symbol,
            difficulty=request.difficulty,
        )
        if match.game_round.round_number != round_before:
            _start_new_round(game_id, session, background_tasks)
    return _serialize_session(game_id, session)


@app.delete("/api/game/{game_id}", status_code=204)
def quit_game(game_id: str) -> Response:
    _get_session(game_id)
    SESSIONS.pop(game_id, None)
    logger.info("Session %s closed", game_id)
    return Response(status_code=204)


@app.get("/", response_class=HTMLResponse)
def index() -> str:
    return HTML_PAGE


HTML_PAGE = """<!DOCTYPE html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <title>Tic-Tac-Toe</title>
    <style>
      :root {
        color-scheme: dark;
        font-family: system-ui, -apple-system, BlinkMacSystemFont, \"Segoe UI\", sans-serif;
        --x: #31c3bd;
        --o: #f2b137;
      }
      body {
        margin: 0;
        min-height: 100vh;
        display: flex;
        justify-content: center;
        align-items: center;
        background: #1a2a33;
        color: #dbe8ed;
      }
      main {
        width: min(420px, 92vw);
      }
      .controls,
      .scores {
        display: flex;
        gap: 0.5rem;
        justify-content: space-between;
        margin: 0.75rem 0;
      }
      .board {
        display: grid;
        grid-template-columns: repeat(3, 1fr);
        gap: 0.75rem;
      }
      .cell {
        aspect-ratio: 1;
        border: none;
        border-radius: 12px;
        background: #1f3641;
        font-size: 3rem;
        font-weight: 700;
        cursor: pointer;
      }
      .cell.X { color: var(--x); }
      .cell.O { color: var(--o); }
      .cell.win { background: #3b5866; }
      .scores div {
        flex: 1;
        text-align: center;
        border-radius: 10px;
        padding: 0.4rem;
        background: #a8bfc9;
        color: #1a2a33;
      }
      #status { min-height: 1.5rem; text-align: center; }
    </style>
  </head>
  <body>
    <main>
      <h1>Tic-Tac-Toe</h1>
      <div class=\"controls\">
        <select id=\"mode\">
          <option value=\"computer\">vs CPU</option>
          <option value=\"human\">vs Player</option>
        </select>
        <select id=\"symbol\">
          <option value=\"X\">Play X</option>
          <option value=\"O\">Play O</option>
        </select>
        <select id=\"difficulty\">
          <option value=\"random\">Random</option>
          <option value=\"easy\">Easy</option>
          <option value=\"medium\" selected>Medium</option>
          <option value=\"hard\">Hard</option>
        </select>
        <button id=\"new-game\">New game</button>
      </div>
      <p id=\"status\"></p>
      <div class=\"board\" id=\"board\"></div>
      <div class=\"controls\">
        <button id=\"next-round\">Next round</button>
        <button id=\"quit\">Quit</button>
      </div>
      <div class=\"scores\">
        <div>YOU <strong id=\"score-player\">0</strong></div>
        <div>TIES <strong id=\"score-ties\">0</strong></div>
        <div>OPPONENT <strong id=\"score-opponent\">0</strong></div>
      </div>
    </main>
    <script>
      const boardEl = document.getElementById('board');
      const statusEl = document.getElementById('status');
      let state = null;
      let pollTimer = null;

      for (let i = 0; i < 9; i += 1) {
        const cell = document.createElement('button');
        cell.className = 'cell';
        cell.dataset.index = i;
        cell.addEventListener('click', () => play(i));
        boardEl.appendChild(cell);
      }

      async function call(method, url, body) {
        const response = await fetch(url, {
          method,
          headers: { 'Content-Type': 'application/json' },
          body: body ? JSON.stringify(body) : undefined,
        });
        if (response.status === 204) return null;
        return response.json();
      }

      function render() {
        if (!state) return;
        const line = state.winningLine || [];
        boardEl.querySelectorAll('.cell').forEach((cell, i) => {
          const mark = state.board[i];
          cell.textContent = mark;
          cell.className = `cell ${mark}` + (line.includes(i) ? ' win' : '');
        });
        document.getElementById('score-player').textContent = state.scores.player;
        document.getElementById('score-ties').textContent = state.scores.ties;
        document.getElementById('score-opponent').textContent = state.scores.opponent;
        if (state.winner === 'draw') {
          statusEl.textContent = 'Round tied';
        } else if (state.winner) {
          statusEl.textContent = `${state.winner} takes the round`;
        } else if (state.aiPending) {
          statusEl.textContent = 'Thinking...';
        } else {
          statusEl.textContent = `${state.currentPlayer} to move`;
        }
        clearTimeout(pollTimer);
        if (state.aiPending) {
          pollTimer = setTimeout(refresh, 300);
        }
      }

      async function refresh() {
        state = await call('GET', `/api/game/${state.id}`);
        render();
      }

      async function play(index) {
        if (!state) return;
        state = await call('POST', `/api/game/${state.id}/move`, { index });
        render();
      }

      document.getElementById('new-game').addEventListener('click', async () => {
        if (state) await call('DELETE', `/api/game/${state.id}`);
        state = await call('POST', '/api/game', {
          mode: document.getElementById('mode').value,
          symbol: document.getElementById('symbol').value,
          difficulty: document.getElementById('difficulty').value,
        });
        render();
      });

      document.getElementById('difficulty').addEventListener('change', async (event) => {
        if (!state) return;
        state = await call('POST', `/api/game/${state.id}/settings`, {
          difficulty: event.target.value,
        });
        render();
      });

      document.getElementById('next-round').addEventListener('click', async () => {
        if (!state) return;
        state = await call('POST', `/api/game/${state.id}/reset`);
        render();
      });

      document.getElementById('quit').addEventListener('click', async () => {
        if (!state) return;
        await call('DELETE', `/api/game/${state.id}`);
        state = null;
        statusEl.textContent = '';
        boardEl.querySelectorAll('.cell').forEach((cell) => {
          cell.textContent = '';
          cell.className = 'cell';
        });
      });
    </script>
  </body>
</html>
"""

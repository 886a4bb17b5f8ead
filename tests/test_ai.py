"""Tests for the computer opponents."""

import random

import pytest

from tictactoe.ai import (
    Difficulty,
    OpponentAI,
    StrategyConfig,
    THINK_DELAYS,
    compute_opponent_move,
    find_fork_move,
    is_fork,
    ladder_move,
    move_scores,
    think_delay,
)
from tictactoe.game import (
    CORNERS,
    EMPTY,
    Board,
    GameRound,
    empty_cells,
    other,
    winner_of,
)


def _board(text: str) -> Board:
    return Board(cells=[EMPTY if ch == "." else ch for ch in text])


def _outcomes_against_everything(cells, to_move, hard, rng):
    """Play every possible reply against the hard tier and yield each result."""
    outcome = winner_of(cells)
    if outcome is not None:
        yield outcome
        return
    if to_move == hard:
        replies = [compute_opponent_move(cells, Difficulty.HARD, hard, other(hard), rng=rng)]
    else:
        replies = list(empty_cells(cells))
    for idx in replies:
        child = list(cells)
        child[idx] = to_move
        yield from _outcomes_against_everything(child, other(to_move), hard, rng)


def _random_positions(count, seed):
    """Non-terminal boards reached by random play."""
    rng = random.Random(seed)
    positions = []
    while len(positions) < count:
        cells = [EMPTY] * 9
        player = "X"
        for _ in range(rng.randrange(0, 8)):
            idx = rng.choice(list(empty_cells(cells)))
            cells[idx] = player
            player = other(player)
            if winner_of(cells) is not None:
                break
        if winner_of(cells) is None:
            positions.append((cells, player))
    return positions


@pytest.mark.parametrize("hard", ["X", "O"])
def test_hard_never_loses_to_any_line_of_play(hard):
    rng = random.Random(11)
    outcomes = list(_outcomes_against_everything([EMPTY] * 9, "X", hard, rng))
    assert outcomes
    assert other(hard) not in outcomes


@pytest.mark.parametrize("rival", [Difficulty.RANDOM, Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD])
def test_hard_never_loses_against_other_tiers(rival):
    rng = random.Random(5)
    for game_no in range(20):
        hard = "X" if game_no % 2 else "O"
        game = GameRound()
        while not game.is_over:
            tier = Difficulty.HARD if game.current_player == hard else rival
            me = game.current_player
            game.apply_move(compute_opponent_move(game.board, tier, me, other(me), rng=rng), me)
        assert game.outcome != other(hard)


def test_hard_against_itself_draws():
    game = GameRound()
    rng = random.Random(3)
    while not game.is_over:
        me = game.current_player
        game.apply_move(compute_opponent_move(game.board, Difficulty.HARD, me, other(me), rng=rng), me)
    assert game.drawn


@pytest.mark.parametrize("seed", range(5))
def test_hard_answers_centre_with_a_corner(seed):
    board = _board("....X....")
    move = compute_opponent_move(board, Difficulty.HARD, "O", "X", rng=random.Random(seed))
    assert move in CORNERS


@pytest.mark.parametrize("difficulty", [Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD])
def test_tiers_block_immediate_threat(difficulty):
    cells = ["X", "X", "", "O", "", "", "", "", ""]
    cfg = StrategyConfig(easy_win_chance=0.0, medium_mistake_chance=0.0)
    move = compute_opponent_move(
        cells, difficulty, "O", "X", rng=random.Random(0), strategy_config=cfg
    )
    assert move == 2


def test_hard_prefers_fork():
    # O on 0 and 4, X on 1 and 8: cells 3 and 6 each open two lines for O
    board = _board("OX..O...X")
    assert is_fork(board, "O", 3)
    assert is_fork(board, "O", 6)
    assert not is_fork(board, "O", 2)

    move = compute_opponent_move(board, Difficulty.HARD, "O", "X", rng=random.Random(1))
    assert move in (3, 6)


def test_fork_helpers_leave_board_untouched():
    board = _board("OX..O...X")
    before = list(board.cells)
    assert find_fork_move(board, "O") == 3
    assert board.cells == before


def test_ladder_follows_priority_order():
    cfg = StrategyConfig()
    rng = random.Random(0)
    # Immediate win beats block
    assert ladder_move(_board("OO.XX...."), "O", "X", rng, cfg) == 2
    # Block
    assert ladder_move(_board("XX.O....."), "O", "X", rng, cfg) == 2
    # Fork
    assert ladder_move(_board("OX..O...X"), "O", "X", rng, cfg) == 3
    # Centre on an open board
    assert ladder_move(_board("........."), "O", "X", rng, cfg) == 4
    # Corner opposite the single opponent corner
    assert ladder_move(_board("O...X...."), "X", "O", rng, cfg) == 8
    # Some corner when the centre is taken and nothing else applies
    assert ladder_move(_board("....X...."), "O", "X", rng, cfg) in CORNERS


def test_move_scores_rank_quick_wins_first():
    scores = move_scores(_board("XX.OO...."), "X")
    assert scores[2] == 1.0
    assert max(scores, key=scores.get) == 2


def test_random_tier_is_seeded():
    board = _board("X.O..X.O.")
    expected = random.Random(7).choice([1, 3, 4, 6, 8])
    assert compute_opponent_move(board, "random", "X", "O", rng=random.Random(7)) == expected


def test_easy_blocks_before_winning():
    board = _board("OO.XX....")
    cfg = StrategyConfig(easy_win_chance=1.0)
    move = compute_opponent_move(board, Difficulty.EASY, "O", "X", random.Random(0), cfg)
    assert move == 5


def test_easy_takes_win_when_lucky():
    board = _board("OO.X....X")
    cfg = StrategyConfig(easy_win_chance=1.0)
    move = compute_opponent_move(board, Difficulty.EASY, "O", "X", random.Random(0), cfg)
    assert move == 2


def test_medium_takes_centre_when_calm():
    board = _board("X........")
    cfg = StrategyConfig(medium_mistake_chance=0.0)
    move = compute_opponent_move(board, Difficulty.MEDIUM, "O", "X", random.Random(0), cfg)
    assert move == 4


def test_medium_mistake_is_random_move():
    board = _board("OO.XX....")
    cfg = StrategyConfig(medium_mistake_chance=1.0)
    replica = random.Random(4)
    replica.random()
    expected = replica.choice([2, 5, 6, 7, 8])
    move = compute_opponent_move(board, Difficulty.MEDIUM, "O", "X", random.Random(4), cfg)
    assert move == expected


@pytest.mark.parametrize("difficulty", list(Difficulty))
def test_strategies_pick_empty_cells_without_mutating(difficulty):
    rng = random.Random(9)
    for cells, player in _random_positions(40, seed=21):
        snapshot = list(cells)
        board = Board(cells=list(cells))
        move = compute_opponent_move(board, difficulty, player, other(player), rng=rng)
        assert cells[move] == EMPTY
        assert board.cells == snapshot
        assert cells == snapshot


def test_full_board_is_a_contract_violation():
    board = _board("XOXXOOOXX")
    for difficulty in Difficulty:
        with pytest.raises(RuntimeError):
            compute_opponent_move(board, difficulty, "O", "X", rng=random.Random(0))


def test_symbols_must_differ():
    with pytest.raises(ValueError):
        compute_opponent_move(Board(), Difficulty.EASY, "X", "X")


def test_strategy_config_rejects_bad_probability():
    with pytest.raises(ValueError):
        StrategyConfig(easy_win_chance=1.5)


def test_opponent_refuses_out_of_turn():
    ai = OpponentAI(player="O", difficulty=Difficulty.HARD, rng=random.Random(0))
    game = GameRound()
    with pytest.raises(ValueError):
        ai.choose(game)
    game.apply_move(4, "X")
    assert ai.choose(game) in CORNERS


def test_think_delay_ranges():
    rng = random.Random(0)
    for difficulty, (low, high) in THINK_DELAYS.items():
        delay = think_delay(difficulty, rng=rng, scale=1.0)
        assert low <= delay <= high
    assert think_delay(Difficulty.HARD, rng=rng, scale=0.0) == 0.0


def test_opponent_accepts_tier_by_name():
    ai = OpponentAI(player="O", difficulty="hard", rng=random.Random(0))
    assert ai.difficulty is Difficulty.HARD
    game = GameRound()
    game.apply_move(4, "X")
    assert ai.choose(game) in CORNERS


def test_opponent_rejects_unknown_tier():
    with pytest.raises(ValueError):
        OpponentAI(player="O", difficulty="impossible")

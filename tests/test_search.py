import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import pytest

import search
from search import full_beam_search, solve_board, replay_plan, PlanState, SearchCancelled, _expand
from board import make_board, empty_board, set_cell, is_board_empty, all_groups
from utils import EMPTY


def grid(*rows):
    return make_board([[EMPTY if ch == '.' else int(ch) for ch in row] for row in rows])


CHECKER = grid(
    "0101",
    "1010",
    "0101",
)


def test_single_block_one_move():
    board = empty_board()
    for r, c in [(8, 3), (8, 4), (9, 3), (9, 4)]:
        board = set_cell(board, r, c, 2)
    groups = all_groups(board)
    assert [len(g) for g in groups] == [4]
    result = full_beam_search(board)
    assert result.exact
    assert result.steps == 1
    assert len(result.moves) == 1
    assert result.moves[0].count == 4
    assert is_board_empty(result.board)


def test_two_isolated_tiles_two_moves():
    board = set_cell(set_cell(empty_board(), 9, 0, 0), 9, 5, 1)
    assert [len(g) for g in all_groups(board)] == [1, 1]
    result = full_beam_search(board)
    assert result.exact
    assert result.steps == 2
    assert {(m.r, m.c) for m in result.moves} == {(9, 0), (9, 5)}


def test_empty_board_needs_no_moves():
    result = full_beam_search(empty_board())
    assert result.exact
    assert result.steps == 0
    assert result.moves == ()


def test_finds_shorter_order():
    # Clearing the middle tile first lets the two 0s meet
    board = grid(
        "0",
        "1",
        "0",
    )
    result = full_beam_search(board)
    assert result.exact
    assert result.steps == 2
    assert (result.moves[0].r, result.moves[0].c) == (1, 0)


def test_exact_plan_replays_to_clear():
    result = solve_board(CHECKER)
    assert result.exact
    assert len(result.moves) == result.steps
    assert is_board_empty(replay_plan(CHECKER, result.moves))


def test_depth_budget_gives_lower_bound():
    result = full_beam_search(CHECKER, max_depth=1)
    assert not result.exact
    assert result.steps == 1
    assert len(result.moves) == 1
    assert not is_board_empty(result.board)
    assert replay_plan(CHECKER, result.moves) == result.board


def test_narrow_beam_still_returns_plan():
    result = full_beam_search(CHECKER, beam_width=1)
    assert result.exact
    assert is_board_empty(replay_plan(CHECKER, result.moves))


def test_deterministic_for_identical_input():
    assert full_beam_search(CHECKER, beam_width=3) == full_beam_search(CHECKER, beam_width=3)


def test_expand_skips_children_seen_at_same_depth():
    state = PlanState(CHECKER, (), 0)
    seen = set()
    first = _expand(state, seen)
    assert len(first) == len(all_groups(CHECKER))
    assert all(child.count == 1 and child.heuristic is not None for child in first)
    assert _expand(state, seen) == []


def test_duplicate_children_scored_once(monkeypatch):
    # Clearing either 0 and then the other reaches the same board as the reverse order
    board = grid(
        "0.0",
        "111",
    )
    scored = []
    real = search.cached_evaluate

    def counting(board, cache=None, fingerprint=None):
        scored.append(fingerprint)
        return real(board, cache=cache, fingerprint=fingerprint)

    monkeypatch.setattr(search, 'cached_evaluate', counting)
    result = full_beam_search(board)
    assert result.exact
    assert result.steps == 3
    assert len(scored) == len(set(scored))
    assert scored.count(",,;1,1,1") == 1
    assert scored.count(",,;,,") == 1


def test_cancel_at_yield_point():
    with pytest.raises(SearchCancelled):
        full_beam_search(CHECKER, yield_every=1, should_cancel=lambda: True)


def test_cancel_not_consulted_without_yielding():
    def boom():
        raise AssertionError("should not be called")
    result = full_beam_search(CHECKER, yield_every=0, should_cancel=boom)
    assert result.exact

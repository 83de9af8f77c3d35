import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from board import make_board, Move, apply_move
from plan_cache import PlanCache, EMPTY_CACHE, advance_plan_cache, cache_from_result, format_steps, move_matches_head
from search import full_beam_search
from utils import EMPTY


def grid(*rows):
    return make_board([[EMPTY if ch == '.' else int(ch) for ch in row] for row in rows])


BOARD = grid(
    "001",
    "021",
    "221",
)


def test_following_head_consumes_it():
    cache = PlanCache((Move(0, 0, 3), Move(0, 2, 3)), 3, True)
    after = advance_plan_cache(cache, (0, 0), BOARD)
    assert after.plan == (Move(0, 2, 3),)
    assert after.remaining == 2
    assert after.exact


def test_any_member_of_head_group_matches():
    cache = PlanCache((Move(0, 0, 3), Move(0, 2, 3)), 5, False)
    for cell in [(0, 0), (0, 1), (1, 0)]:
        after = advance_plan_cache(cache, cell, BOARD)
        assert after.remaining == 4
        assert not after.exact
        assert after.plan == (Move(0, 2, 3),)


def test_last_move_of_inexact_plan_empties_cache():
    cache = PlanCache((Move(0, 0, 3),), 5, False)
    assert advance_plan_cache(cache, (0, 1), BOARD) is EMPTY_CACHE
    # an exact plan keeps its zero projection
    exact = PlanCache((Move(0, 0, 3),), 1, True)
    assert advance_plan_cache(exact, (0, 1), BOARD) == PlanCache((), 0, True)


def test_divergent_move_empties_cache():
    cache = PlanCache((Move(0, 0, 3), Move(0, 2, 3)), 2, True)
    assert advance_plan_cache(cache, (0, 2), BOARD) is EMPTY_CACHE


def test_empty_cache_stays_empty():
    assert advance_plan_cache(EMPTY_CACHE, (0, 0), BOARD) is EMPTY_CACHE
    assert not move_matches_head(EMPTY_CACHE, 0, 0, BOARD)


def test_match_is_tested_against_pre_move_board():
    cache = PlanCache((Move(0, 0, 3),), 3, True)
    post_board, _, _ = apply_move(BOARD, 0, 0)
    # after the move the head cell is empty, so nothing would match
    assert move_matches_head(cache, 1, 0, BOARD)
    assert not move_matches_head(cache, 1, 0, post_board)


def test_cache_from_result_and_consume_all():
    result = full_beam_search(BOARD)
    cache = cache_from_result(result)
    assert cache.remaining == result.steps == len(cache.plan)
    board = BOARD
    for _ in range(result.steps):
        head = cache.plan[0]
        before = cache.remaining
        cache = advance_plan_cache(cache, (head.r, head.c), board)
        board, _, _ = apply_move(board, head.r, head.c)
        assert cache.remaining == before - 1
    assert cache.plan == ()
    assert cache.remaining == 0


def test_format_steps():
    assert format_steps(7) == "7"
    assert format_steps(7, exact=False) == "7+"
    assert format_steps(None) == "-"

from typing import NamedTuple, Optional, Tuple

from board import Move, find_group


class PlanCache(NamedTuple):
    plan: Tuple[Move, ...] = ()
    remaining: Optional[int] = None  # None: no projection available
    exact: bool = True


EMPTY_CACHE = PlanCache()


def cache_from_result(result):
    return PlanCache(tuple(result.moves), result.steps, result.exact)


def move_matches_head(cache, r, c, pre_board):
    """True when (r, c) is in the group the cached head move would clear on ``pre_board``."""
    if not cache.plan:
        return False
    head = cache.plan[0]
    return (r, c) in find_group(pre_board, head.r, head.c)


def advance_plan_cache(cache, move, pre_board):
    """Cache after the player clears the group at ``move`` = (r, c) on ``pre_board``.

    Following the plan drops its head and lowers the projection by one; any
    other move empties the cache so the next projection request replans. So
    does playing the last move of an inexact plan, which leaves tiles behind
    with nothing planned for them.
    """
    r, c = move
    if not move_matches_head(cache, r, c, pre_board):
        return EMPTY_CACHE
    if not cache.exact and len(cache.plan) == 1:
        return EMPTY_CACHE
    remaining = cache.remaining - 1 if cache.remaining is not None else None
    return PlanCache(cache.plan[1:], remaining, cache.exact)


def format_steps(steps, exact=True):
    if steps is None:
        return "-"
    return f"{steps}" if exact else f"{steps}+"

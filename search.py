import time
from typing import NamedTuple, Optional, Tuple

import utils
from utils import vlog
from board import Board, Move, apply_move, get_all_moves, is_board_empty
from score_cache import cached_evaluate, board_fingerprint


class SearchCancelled(Exception):
    """Raised at a yield point when the caller no longer wants the result."""


class PlanningError(Exception):
    """An unexpected fault inside the planner, reported once to the caller."""


class PlanState(NamedTuple):
    board: Board
    moves: Tuple[Move, ...]
    count: int
    heuristic: Optional[int] = None  # None for the root


class PlanResult(NamedTuple):
    moves: Tuple[Move, ...]
    steps: int
    exact: bool  # False: steps is only a lower bound, the search ran out of budget
    board: Board  # where replaying ``moves`` ends up


def _expand(state, seen):
    """Children of ``state`` whose fingerprint was not produced earlier in this depth."""
    children = []
    for move in get_all_moves(state.board):
        child_board, _, _ = apply_move(state.board, move.r, move.c)
        key = board_fingerprint(child_board)
        if key in seen:
            continue
        seen.add(key)
        children.append(
            PlanState(
                child_board,
                state.moves + (move,),
                state.count + 1,
                cached_evaluate(child_board, fingerprint=key),
            )
        )
    return children


def full_beam_search(board, beam_width=None, max_depth=None, *, yield_every=0, should_cancel=None):
    """Search for the shortest clearing sequence of ``board``.

    Each depth expands every beam state, drops children already reached at that
    depth, and keeps the ``beam_width`` best by heuristic. Equal heuristics keep
    discovery order (parent beam order, then row-major move order).

    Returns a PlanResult. When no clear was found within ``max_depth`` the best
    surviving state is returned with ``exact=False``.

    With ``yield_every`` > 0 the search releases the interpreter every that many
    depths and consults ``should_cancel``; a truthy answer raises SearchCancelled.
    """
    beam_width = utils.BEAM_WIDTH if beam_width is None else beam_width
    max_depth = utils.MAX_DEPTH if max_depth is None else max_depth

    beam = [PlanState(board, (), 0)]
    best_clear = None
    min_steps_found = float("inf")

    for depth in range(max_depth):
        if yield_every and depth % yield_every == 0:
            time.sleep(0)
            if should_cancel is not None and should_cancel():
                raise SearchCancelled()

        t0 = time.time()
        next_beam = []
        seen = set()
        all_cleared = True

        for state in beam:
            if state.count >= min_steps_found:
                continue
            if is_board_empty(state.board):
                if state.count < min_steps_found:
                    min_steps_found = state.count
                    best_clear = state
                continue
            all_cleared = False
            next_beam.extend(_expand(state, seen))

        if all_cleared:
            break

        next_beam.sort(key=lambda s: s.heuristic, reverse=True)
        beam = next_beam[:beam_width]
        vlog(f"full_beam_search depth {depth}: {len(next_beam)} unique children, kept {len(beam)}", t0)

        if not beam:
            break
    else:
        # Depth budget spent: the last beam was never checked for clears
        for state in beam:
            if state.count < min_steps_found and is_board_empty(state.board):
                min_steps_found = state.count
                best_clear = state

    if best_clear is not None:
        return PlanResult(best_clear.moves, best_clear.count, True, best_clear.board)
    if beam:
        best = beam[0]
        return PlanResult(best.moves, best.count, False, best.board)
    return PlanResult((), 0, True, board)


def solve_board(board, beam_width=None, max_depth=None):
    """Batch planning: run the search to completion without yielding."""
    t0 = time.time()
    result = full_beam_search(board, beam_width=beam_width, max_depth=max_depth)
    vlog(f"solve_board: {result.steps}{'' if result.exact else '+'} steps", t0)
    return result


def replay_plan(board, moves):
    """Apply ``moves`` in order and return the resulting board."""
    for move in moves:
        board, _, _ = apply_move(board, move.r, move.c)
    return board

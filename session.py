import concurrent.futures
import threading
import time
from typing import NamedTuple, Optional

from colorama import Fore

import utils
from utils import log_with_time, vlog, EMPTY
from board import (
    apply_move,
    empty_board,
    find_group,
    is_board_empty,
    remove_tile_type,
    set_cell,
)
from plan_cache import EMPTY_CACHE, advance_plan_cache, cache_from_result, format_steps, move_matches_head
from search import PlanningError, full_beam_search


class Projection(NamedTuple):
    taken: int
    remaining: Optional[int]  # None while a plan is being computed
    exact: bool
    pending: bool

    @property
    def total(self):
        if self.remaining is None:
            return None
        return self.taken + self.remaining

    @property
    def approximate(self):
        return not self.exact

    def describe(self):
        if self.pending:
            return f"taken {self.taken}, remaining ?, total ?"
        return (
            f"taken {self.taken}, remaining {format_steps(self.remaining, self.exact)}, "
            f"total {format_steps(self.total, self.exact)}"
        )


class GameSession:
    """Live board, undo history and plan cache for one player.

    Moves are applied synchronously. Plans are computed lazily on a single
    background worker; every board replacement bumps ``generation`` so that a
    plan computed for an older board is cancelled at its next yield point or
    discarded when it finishes.
    """

    def __init__(self, board=None, catalog=None, beam_width=None, max_depth=None, yield_every=None, executor=None):
        self.board = board if board is not None else empty_board()
        self.catalog = list(catalog or [])
        self.history = []
        self.cache = EMPTY_CACHE
        self.generation = 0
        self.computing = False
        self.beam_width = beam_width
        self.max_depth = max_depth
        self.yield_every = utils.YIELD_EVERY if yield_every is None else yield_every
        self._executor = executor
        self._owns_executor = executor is None
        self._future = None
        self._error = None
        # Reentrant: a done-callback may fire inline while submit() holds the lock
        self._lock = threading.RLock()

    # ---------- Board replacement ----------
    def _replace_board(self, board):
        """Install ``board`` and drop everything tied to the old one. Lock held."""
        self.board = board
        self.generation += 1
        self.cache = EMPTY_CACHE
        self.computing = False
        self._error = None
        if self._future is not None:
            self._future.cancel()
            self._future = None

    def load(self, board, catalog=None):
        """Start over from a freshly ingested board and catalog."""
        with self._lock:
            self._replace_board(board)
            self.catalog = list(catalog or [])
            self.history = []

    def play(self, r, c):
        """Clear the group at (r, c). Returns False, changing nothing, for an empty cell."""
        with self._lock:
            pre_board = self.board
            if pre_board[r][c] is EMPTY:
                return False
            new_board, score, count = apply_move(pre_board, r, c)
            followed = move_matches_head(self.cache, r, c, pre_board)
            cache = advance_plan_cache(self.cache, (r, c), pre_board)
            self._replace_board(new_board)
            self.history.append(pre_board)
            self.cache = cache
            vlog(f"play {r},{c}: cleared {count} (score {score}), {'followed plan' if followed else 'plan dropped'}")
            return True

    def undo(self):
        with self._lock:
            if not self.history:
                return False
            self._replace_board(self.history.pop())
            return True

    def set_cell(self, r, c, value):
        """Overwrite one cell with a catalog index, or clear it with ``EMPTY``."""
        with self._lock:
            self._replace_board(set_cell(self.board, r, c, value))

    def remove_tile_type(self, index):
        """Delete catalog entry ``index``: its tiles become empty and higher
        indices shift down. The undo history no longer matches the catalog, so it is dropped."""
        with self._lock:
            if not 0 <= index < len(self.catalog):
                raise IndexError(f"no tile type {index} in a catalog of {len(self.catalog)}")
            self._replace_board(remove_tile_type(self.board, index))
            del self.catalog[index]
            self.history = []

    def reset(self):
        with self._lock:
            self._replace_board(empty_board(len(self.board), len(self.board[0])))
            self.catalog = []
            self.history = []

    # ---------- Queries ----------
    @property
    def steps_taken(self):
        return len(self.history)

    def hint(self):
        with self._lock:
            return self.cache.plan[0] if self.cache.plan else None

    def hint_group(self):
        """Cells the suggested move would clear on the current board."""
        with self._lock:
            if not self.cache.plan:
                return []
            head = self.cache.plan[0]
            return find_group(self.board, head.r, head.c)

    def projection(self, wait=False):
        """Report steps taken, remaining and total.

        An empty cache on a non-empty board starts a planning job. Without
        ``wait`` the answer is pending until the job lands. A planner failure
        is raised once as PlanningError; the next call plans again. When
        waiting, a job superseded by a board change is followed by a wait on
        the job for the new board.
        """
        while True:
            with self._lock:
                ready = self._ready_projection()
                if ready is not None:
                    return ready
                future = self._future if self.computing else self._start_planning()
                token = self.generation
                # Synchronous executors may already have delivered the plan
                ready = self._ready_projection()
                if ready is not None:
                    return ready
                if not wait:
                    return Projection(self.steps_taken, None, True, True)
            concurrent.futures.wait([future])
            self._finish(future, token)

    def _ready_projection(self):
        """Projection answerable without planning, or None. Lock held."""
        if self._error is not None:
            error, self._error = self._error, None
            raise error
        if is_board_empty(self.board):
            return Projection(self.steps_taken, 0, True, False)
        if self.cache.remaining is not None:
            return Projection(self.steps_taken, self.cache.remaining, self.cache.exact, False)
        return None

    # ---------- Planning ----------
    def _get_executor(self):
        if self._executor is None:
            self._executor = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="planner")
        return self._executor

    def _start_planning(self):
        """Submit a plan for the current board. Lock held."""
        token = self.generation
        board = self.board
        self.computing = True
        vlog(f"planning started for generation {token}")

        def is_stale():
            return self.generation != token

        def plan():
            t0 = time.time()
            result = full_beam_search(
                board,
                beam_width=self.beam_width,
                max_depth=self.max_depth,
                yield_every=self.yield_every,
                should_cancel=is_stale,
            )
            vlog(f"planning finished for generation {token}", t0)
            return result

        future = self._get_executor().submit(plan)
        self._future = future
        future.add_done_callback(lambda f: self._finish(f, token))
        return future

    def _finish(self, future, token):
        """Apply a finished plan, unless the board moved on in the meantime."""
        with self._lock:
            if token != self.generation or future is not self._future:
                return
            self._future = None
            self.computing = False
            exc = future.exception()
            if exc is not None:
                log_with_time(f"Planning failed: {exc}", color=Fore.RED)
                error = PlanningError(f"planning failed: {exc}")
                error.__cause__ = exc
                self._error = error
                return
            self.cache = cache_from_result(future.result())

    def close(self):
        with self._lock:
            self.generation += 1
            if self._future is not None:
                self._future.cancel()
                self._future = None
            self.computing = False
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

from board import evaluate_board
import hashlib
import threading
import utils


from collections import OrderedDict

_CACHE_LOCK = threading.Lock()
_seen_hashes = {}
_actual_hits = 0
_actual_misses = 0
CACHE_DISABLED = False

# LRU cache using OrderedDict
MAX_CACHE_SIZE = 50000
class LRUCache(OrderedDict):
    def __init__(self, maxsize=MAX_CACHE_SIZE, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.maxsize = maxsize
    def __getitem__(self, key):
        value = super().__getitem__(key)
        self.move_to_end(key)
        return value
    def __setitem__(self, key, value):
        if key in self:
            self.move_to_end(key)
        super().__setitem__(key, value)
        if len(self) > self.maxsize:
            oldest = next(iter(self))
            del self[oldest]


def board_fingerprint(board):
    """Serialize every cell, row-major, into a string. Equal boards give equal
    fingerprints and unequal boards never collide."""
    return ';'.join(','.join('' if cell is None else str(cell) for cell in row) for row in board)


def board_hash(board):
    return hashlib.md5(board_fingerprint(board).encode()).hexdigest()[:8]


def cached_evaluate(board, cache=None, fingerprint=None):
    """Compute or retrieve the heuristic score of ``board``.

    Keys are full fingerprints, so a hit can never belong to another board.
    Pass ``fingerprint`` when the caller already has it. When CACHE_DISABLED
    is True, always recomputes without touching cache counters.
    """
    global _actual_hits, _actual_misses

    if CACHE_DISABLED:
        return evaluate_board(board)

    key = fingerprint if fingerprint is not None else board_fingerprint(board)

    # Verbose hash tracking for diagnostics
    if utils.VERBOSE:
        h = board_hash(board)
        count = _seen_hashes.get(h, 0)
        _seen_hashes[h] = count + 1

    if cache is None:
        cache = getattr(cached_evaluate, "_cache", None)
        if cache is None:
            cache = LRUCache(MAX_CACHE_SIZE)
            cached_evaluate._cache = cache

    # Background planners share the default cache
    with _CACHE_LOCK:
        if key in cache:
            _actual_hits += 1
            return cache[key]

    val = evaluate_board(board)
    with _CACHE_LOCK:
        _actual_misses += 1
        cache[key] = val
    return val


def cache_stats():
    return {"hits": _actual_hits, "misses": _actual_misses, "unique": len(_seen_hashes)}


def print_cache_summary():
    print(f"[CACHE SUMMARY] Unique board hashes: {len(_seen_hashes)}")
    repeated = [h for h, c in _seen_hashes.items() if c > 1]
    print(f"[CACHE SUMMARY] Hashes seen more than once: {len(repeated)}")
    if repeated:
        print(f"[CACHE SUMMARY] Example repeated hash: {repeated[0]}")
    print(f"[CACHE SUMMARY] Actual cache hits: {_actual_hits}")
    print(f"[CACHE SUMMARY] Actual cache misses: {_actual_misses}")

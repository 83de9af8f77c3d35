# --- utils.py ---

import time
import threading
import json
from colorama import Fore, Style, init
import os

init()

# Board dimensions
ROWS = 10
COLS = 10

# Marker for a cell with no tile
EMPTY = None

# Beam search knobs
BEAM_WIDTH = 80
MAX_DEPTH = 100
# Interactive planners hand control back every few depths; 0 means never
YIELD_EVERY = 3

# Heuristic penalty per remaining group
GROUP_PENALTY = 10

VERBOSE = False
start_time = None

# Lock used for synchronized printing across threads
PRINT_LOCK = threading.Lock()

def log_with_time(msg, color=Fore.LIGHTBLUE_EX):
    """Print ``msg`` with a timestamp."""
    global start_time
    if start_time is None:
        start_time = time.time()
    elapsed = time.time() - start_time
    mins = int(elapsed // 60)
    secs = elapsed % 60
    timestamp = Style.DIM + f"[{mins:02}:{secs:06.3f}]" + Style.RESET_ALL
    with PRINT_LOCK:
        print(f"{timestamp} {color}{msg}{Style.RESET_ALL}", flush=True)

def vlog(msg, t0=None):
    if VERBOSE:
        if t0 is not None:
            elapsed = time.time() - t0
            log_with_time(f"{msg} (took {elapsed:.3f}s)")
        else:
            log_with_time(msg)

# Exact clears beat lower-bound estimates, then fewer steps wins
def _plan_rank(result):
    return (not result.get("exact", False), result.get("steps", float('inf')))

def log_puzzle_to_file(puzzle, best_result=None, logs_dir=None):
    """Log a puzzle (grid and catalog, optionally the best plan) to a dated JSON file in ``logs``.
    If the file exists, best_result is only replaced by a plan with fewer steps."""
    logs_dir = logs_dir or os.path.join(os.getcwd(), 'logs')
    os.makedirs(logs_dir, exist_ok=True)
    log_file = os.path.join(logs_dir, f"puzzle_{time.strftime('%Y-%m-%d')}.json")

    # Parse the puzzle if it's a string
    if isinstance(puzzle, str):
        try:
            puzzle_data = json.loads(puzzle)
        except ValueError:
            puzzle_data = {"raw": puzzle}
    else:
        puzzle_data = puzzle

    log_data = {"puzzle": puzzle_data}

    if os.path.exists(log_file):
        try:
            with open(log_file, 'r') as f:
                existing = json.load(f)
            if existing.get("puzzle") == puzzle_data:
                log_data = existing
        except (OSError, ValueError) as e:
            log_with_time(f"Ignoring unreadable log {log_file}: {e}", color=Fore.YELLOW)

    if best_result:
        existing_best = log_data.get("best_result")
        if not existing_best or _plan_rank(best_result) < _plan_rank(existing_best):
            log_data["best_result"] = best_result
            log_with_time(f"Updated best_result in {log_file}", color=Fore.GREEN)
        else:
            log_with_time(f"Existing best_result in {log_file} has equal or fewer steps; not updated.", color=Fore.YELLOW)
    else:
        log_with_time(f"Puzzle logged to {log_file}", color=Fore.GREEN)

    with open(log_file, 'w') as f:
        json.dump(log_data, f, indent=2)
    return log_file

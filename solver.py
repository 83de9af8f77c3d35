import argparse
import json
import time

import requests
from colorama import Fore

import utils
from utils import log_with_time, vlog, EMPTY
from board import make_board, find_group, is_board_empty, print_board
from plan_cache import format_steps
from search import PlanningError, solve_board, replay_plan
from session import GameSession
import score_cache


def parse_puzzle(data):
    """Turn a puzzle document into (board, catalog).

    ``data["grid"]`` is a list of rows holding catalog indices or null.
    ``data["patterns"]`` is the catalog; when missing, one placeholder entry is
    made per index seen on the grid.
    """
    if not isinstance(data, dict) or "grid" not in data:
        raise ValueError("puzzle must be an object with a 'grid' field")
    rows = []
    for row in data["grid"]:
        rows.append([EMPTY if cell is None else int(cell) for cell in row])
    board = make_board(rows)
    catalog = data.get("patterns")
    if catalog is None:
        highest = max((cell for row in board for cell in row if cell is not EMPTY), default=-1)
        catalog = [{"label": f"Pattern {i + 1}"} for i in range(highest + 1)]
    return board, [dict(entry) for entry in catalog]


def puzzle_to_dict(board, catalog):
    return {"grid": [list(row) for row in board], "patterns": list(catalog)}


def load_puzzle(path):
    with open(path, "r") as f:
        return parse_puzzle(json.load(f))


def fetch_puzzle(url, timeout=10):
    resp = requests.get(url, timeout=timeout)
    resp.raise_for_status()
    return parse_puzzle(resp.json())


def plan_to_dict(result):
    return {
        "steps": result.steps,
        "exact": result.exact,
        "moves": [[m.r, m.c] for m in result.moves],
    }


def print_plan(board, result):
    color = Fore.GREEN if result.exact else Fore.YELLOW
    label = "Optimal clear" if result.exact else "Best partial plan"
    log_with_time(f"{label}: {format_steps(result.steps, result.exact)} steps", color=color)
    for i, move in enumerate(result.moves, 1):
        log_with_time(f"  {i:3d}. tap {move.r},{move.c} clearing {move.count}", color=color)
    final_board = replay_plan(board, result.moves)
    if not is_board_empty(final_board):
        log_with_time("Board left after the plan:", color=Fore.YELLOW)
        print_board(final_board)


PLAY_HELP = "commands: R C | hint | undo | set R C V|- | remove I | reset | help | quit"


def print_status(session):
    print_board(session.board, highlight=session.hint_group())
    try:
        projection = session.projection(wait=True)
    except PlanningError as e:
        log_with_time(f"Processing failed: {e}", color=Fore.RED)
        return
    log_with_time(projection.describe(), color=Fore.CYAN)


def _parse_coord(session, row, col):
    r, c = int(row), int(col)
    if not (0 <= r < len(session.board) and 0 <= c < len(session.board[0])):
        raise IndexError(f"{r},{c} is off the board")
    return r, c


def handle_command(session, line):
    """Run one play-loop command. Returns False when the loop should stop."""
    parts = line.strip().split()
    if not parts:
        return True
    cmd = parts[0].lower()
    try:
        if cmd in ("quit", "exit", "q"):
            return False
        if cmd == "help":
            print(PLAY_HELP)
        elif cmd == "hint":
            move = session.hint()
            if move is None:
                log_with_time("No hint available.", color=Fore.YELLOW)
            else:
                log_with_time(f"Tap {move.r},{move.c} ({len(find_group(session.board, move.r, move.c))} tiles)", color=Fore.GREEN)
        elif cmd == "undo":
            if not session.undo():
                log_with_time("Nothing to undo.", color=Fore.YELLOW)
        elif cmd == "set":
            r, c = _parse_coord(session, parts[1], parts[2])
            value = EMPTY if parts[3] == "-" else int(parts[3]) - 1
            if value is not EMPTY and not 0 <= value < len(session.catalog):
                log_with_time(f"Unknown pattern {parts[3]}.", color=Fore.RED)
                return True
            session.set_cell(r, c, value)
        elif cmd == "remove":
            session.remove_tile_type(int(parts[1]) - 1)
        elif cmd == "reset":
            session.reset()
        else:
            r, c = _parse_coord(session, parts[0], parts[1])
            session.play(r, c)
    except (ValueError, IndexError) as e:
        log_with_time(f"Bad command '{line.strip()}': {e}", color=Fore.RED)
        return True
    return True


def run_play_loop(session, input_fn=input):
    print(PLAY_HELP)
    print_status(session)
    while True:
        try:
            line = input_fn("> ")
        except EOFError:
            break
        if not handle_command(session, line):
            break
        print_status(session)


def run_solver(argv=None):
    parser = argparse.ArgumentParser(description="Critter Haven Solver")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--load", type=str, default=None, help="Path to a JSON puzzle (grid + patterns)")
    source.add_argument("--url", type=str, default=None, help="URL serving a JSON puzzle")
    parser.add_argument("--beam-width", type=int, default=utils.BEAM_WIDTH, help=f"Beam width for the search (default: {utils.BEAM_WIDTH})")
    parser.add_argument("--depth", type=int, default=utils.MAX_DEPTH, help=f"Maximum number of moves to search (default: {utils.MAX_DEPTH})")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("--no-cache", action="store_true", help="Disable heuristic score caching")
    parser.add_argument("--log-puzzle", action="store_true", help="Save the puzzle and best plan to a JSON log file")
    parser.add_argument("--play", action="store_true", help="Play interactively with a live moves-remaining projection")
    args = parser.parse_args(argv)

    utils.start_time = time.time()
    utils.VERBOSE = args.verbose
    score_cache.CACHE_DISABLED = args.no_cache

    try:
        if args.load:
            board, catalog = load_puzzle(args.load)
        else:
            board, catalog = fetch_puzzle(args.url)
    except FileNotFoundError:
        log_with_time(f"Could not find puzzle file: {args.load}", color=Fore.RED)
        return 1
    except requests.RequestException as e:
        log_with_time(f"Could not fetch puzzle: {e}", color=Fore.RED)
        return 1
    except (ValueError, TypeError) as e:
        log_with_time(f"Invalid puzzle: {e}", color=Fore.RED)
        return 1

    log_with_time(f"Loaded {len(board)}x{len(board[0])} board with {len(catalog)} patterns")

    if args.play:
        with GameSession(board, catalog, beam_width=args.beam_width, max_depth=args.depth) as session:
            run_play_loop(session)
        return 0

    print_board(board)
    t0 = time.time()
    try:
        result = solve_board(board, beam_width=args.beam_width, max_depth=args.depth)
    except Exception as e:
        log_with_time(f"Processing failed: {e}", color=Fore.RED)
        return 1
    vlog("search", t0)
    print_plan(board, result)

    if args.log_puzzle:
        utils.log_puzzle_to_file(puzzle_to_dict(board, catalog), plan_to_dict(result))
    if utils.VERBOSE:
        score_cache.print_cache_summary()

    total_elapsed = time.time() - utils.start_time
    log_with_time(f"Done in {total_elapsed:.2f}s", color=Fore.GREEN)
    return 0

from collections import deque
from typing import List, NamedTuple, Optional, Sequence, Tuple

from colorama import Fore, Back, Style
from utils import ROWS, COLS, EMPTY, GROUP_PENALTY, PRINT_LOCK

# A board is an immutable tuple of row tuples; a cell is EMPTY or a catalog index.
Board = Tuple[Tuple[Optional[int], ...], ...]
Coord = Tuple[int, int]

DIRECTIONS = ((0, 1), (0, -1), (1, 0), (-1, 0))


class Move(NamedTuple):
    r: int
    c: int
    count: int  # group size when the move was enumerated


def make_board(rows: Sequence[Sequence[Optional[int]]]) -> Board:
    """Freeze a list-of-lists grid into a Board. Rows must all have the same length."""
    board = tuple(tuple(row) for row in rows)
    if not board or not board[0]:
        raise ValueError("board must have at least one row and one column")
    width = len(board[0])
    for r, row in enumerate(board):
        if len(row) != width:
            raise ValueError(f"row {r} has {len(row)} cells, expected {width}")
    return board


def empty_board(rows=ROWS, cols=COLS) -> Board:
    return tuple(tuple(EMPTY for _ in range(cols)) for _ in range(rows))


def board_to_list(board):
    return [list(row) for row in board]


def is_board_empty(board) -> bool:
    return all(cell is EMPTY for row in board for cell in row)


def occupied_count(board) -> int:
    return sum(1 for row in board for cell in row if cell is not EMPTY)


def set_cell(board: Board, r: int, c: int, value: Optional[int]) -> Board:
    """Return a copy of ``board`` with one cell replaced (``EMPTY`` clears it)."""
    row = board[r][:c] + (value,) + board[r][c + 1:]
    return board[:r] + (row,) + board[r + 1:]


def remove_tile_type(board: Board, index: int) -> Board:
    """Drop tile type ``index`` from the board and shift higher indices down by one,
    keeping cells aligned with a catalog that lost the same entry."""
    def remap(cell):
        if cell is EMPTY or cell < index:
            return cell
        if cell == index:
            return EMPTY
        return cell - 1
    return tuple(tuple(remap(cell) for cell in row) for row in board)


# ============== Connectivity ==============
def find_group(board, r, c) -> List[Coord]:
    """Return every cell reachable from (r, c) through same-type 4-neighbours.

    The seed comes first, the rest in BFS order. Empty seeds give an empty list.
    """
    type_index = board[r][c]
    if type_index is EMPTY:
        return []
    rows, cols = len(board), len(board[0])
    group = []
    visited = {(r, c)}
    queue = deque([(r, c)])
    while queue:
        cr, cc = queue.popleft()
        group.append((cr, cc))
        for dr, dc in DIRECTIONS:
            nr, nc = cr + dr, cc + dc
            if 0 <= nr < rows and 0 <= nc < cols and (nr, nc) not in visited and board[nr][nc] == type_index:
                visited.add((nr, nc))
                queue.append((nr, nc))
    return group


def all_groups(board) -> List[List[Coord]]:
    """Partition the non-empty cells into groups, scanning row-major."""
    visited = set()
    groups = []
    for r, row in enumerate(board):
        for c, cell in enumerate(row):
            if cell is EMPTY or (r, c) in visited:
                continue
            group = find_group(board, r, c)
            visited.update(group)
            groups.append(group)
    return groups


def get_all_moves(board) -> List[Move]:
    # One legal move per group, keyed by the first cell the scan reached
    return [Move(group[0][0], group[0][1], len(group)) for group in all_groups(board)]


# ============== Transition ==============
def apply_gravity(board) -> Board:
    """Let every column fall: tiles sink to the bottom in their original order."""
    rows, cols = len(board), len(board[0])
    columns = []
    for c in range(cols):
        tiles = [board[r][c] for r in range(rows) if board[r][c] is not EMPTY]
        columns.append([EMPTY] * (rows - len(tiles)) + tiles)
    return tuple(tuple(columns[c][r] for c in range(cols)) for r in range(rows))


def apply_move(board, r, c):
    """Clear the group at (r, c) and compact. Returns (new_board, score, count).

    Selecting an empty cell changes nothing and scores zero.
    """
    group = find_group(board, r, c)
    if not group:
        return board, 0, 0
    cleared = board_to_list(board)
    for gr, gc in group:
        cleared[gr][gc] = EMPTY
    count = len(group)
    return apply_gravity(cleared), count * count, count


# ============== Evaluator ==============
def evaluate_board(board) -> int:
    """Ranking heuristic: sum of squared group sizes minus a per-group penalty.

    Fewer, larger groups rank higher. This is not a bound on the moves left.
    """
    groups = all_groups(board)
    return sum(len(g) * len(g) for g in groups) - GROUP_PENALTY * len(groups)


# ============== Printing ==============
TILE_COLORS = [
    Back.RED, Back.GREEN, Back.YELLOW, Back.BLUE, Back.MAGENTA, Back.CYAN,
    Back.LIGHTRED_EX, Back.LIGHTGREEN_EX, Back.LIGHTYELLOW_EX, Back.LIGHTBLUE_EX,
    Back.LIGHTMAGENTA_EX, Back.LIGHTCYAN_EX,
]


def format_cell(cell):
    if cell is EMPTY:
        return '··'
    return f"{cell + 1:2d}"


def print_board(board, highlight=None):
    """Thread-safe printing of a board. Cells listed in ``highlight`` (e.g. the
    group of the suggested move) are drawn in bold white on black."""
    highlight = set(highlight or ())
    with PRINT_LOCK:
        lines = []
        for r, row in enumerate(board):
            line = []
            for c, cell in enumerate(row):
                text = format_cell(cell)
                if cell is EMPTY:
                    line.append(Style.DIM + text + Style.RESET_ALL)
                elif (r, c) in highlight:
                    line.append(Back.BLACK + Fore.WHITE + Style.BRIGHT + text + Style.RESET_ALL)
                else:
                    color = TILE_COLORS[cell % len(TILE_COLORS)]
                    line.append(color + Fore.BLACK + text + Style.RESET_ALL)
            lines.append(' '.join(line))
        print('\n'.join(lines), flush=True)
        print(flush=True)

"""Text rendering of boards for the console client."""

from __future__ import annotations

from collections.abc import Sequence

from seabattle.model import BOARD_SIZE, CellState, GameBoard

_SYMBOLS = {
    CellState.EMPTY: ".",
    CellState.SHIP: "S",
    CellState.MISS: "o",
    CellState.HIT: "X",
    CellState.DESTROYED: "#",
}

Grid = Sequence[Sequence[int]]


def cell_symbol(state: int, hide_ships: bool = False) -> str:
    """The character drawn for a cell; ships show as water when hidden."""
    if hide_ships and state == CellState.SHIP:
        return "."
    try:
        return _SYMBOLS[CellState(state)]
    except ValueError:
        return "?"


def _cells(board: GameBoard | Grid) -> Grid:
    return board.cells if isinstance(board, GameBoard) else board


def _column_header() -> str:
    return "".join(f" {x}" for x in range(BOARD_SIZE))


def _row(cells: Grid, y: int, hide_ships: bool) -> str:
    symbols = "".join(f" {cell_symbol(state, hide_ships)}" for state in cells[y])
    return f"{y} {symbols}"


def render_board(board: GameBoard | Grid, hide_ships: bool = False) -> str:
    """One board with column and row numbers, one line per row."""
    cells = _cells(board)
    lines = ["  " + _column_header()]
    lines.extend(_row(cells, y, hide_ships) for y in range(BOARD_SIZE))
    return "\n".join(lines) + "\n"


def render_boards_side_by_side(
    my_board: GameBoard | Grid,
    enemy_board: GameBoard | Grid,
    hide_enemy_ships: bool = True,
) -> str:
    """The player's own board and the enemy board next to each other."""
    mine = _cells(my_board)
    enemy = _cells(enemy_board)
    header = _column_header()
    lines = [
        "      Your Board                Enemy Board      ",
        "  " + header + "      " + header,
    ]
    lines.extend(
        _row(mine, y, False) + "    " + _row(enemy, y, hide_enemy_ships)
        for y in range(BOARD_SIZE)
    )
    return "\n".join(lines) + "\n"
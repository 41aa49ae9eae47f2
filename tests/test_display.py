import pytest

from seabattle.display import cell_symbol, render_board, render_boards_side_by_side
from seabattle.model import BOARD_SIZE, CellState, GameBoard


@pytest.mark.parametrize(
    "state, symbol",
    [
        (CellState.EMPTY, "."),
        (CellState.SHIP, "S"),
        (CellState.MISS, "o"),
        (CellState.HIT, "X"),
        (CellState.DESTROYED, "#"),
    ],
)
def test_cell_symbol(state, symbol):
    assert cell_symbol(state) == symbol


def test_hidden_ship_looks_like_water():
    assert cell_symbol(CellState.SHIP, hide_ships=True) == "."
    assert cell_symbol(CellState.HIT, hide_ships=True) == "X"


def test_unknown_state():
    assert cell_symbol(42) == "?"


def test_render_board_shape():
    text = render_board(GameBoard())
    lines = text.splitlines()
    assert text.endswith("\n")
    assert len(lines) == BOARD_SIZE + 1
    for y, line in enumerate(lines[1:]):
        assert line.startswith(f"{y} ")
        assert line.split()[1:] == ["."] * BOARD_SIZE


def test_render_board_column_header():
    header = render_board(GameBoard()).splitlines()[0]
    assert header.split() == [str(x) for x in range(BOARD_SIZE)]


def test_render_board_shows_and_hides_ships():
    board = GameBoard()
    board.cells[2][5] = CellState.SHIP
    board.cells[3][1] = CellState.MISS
    shown = render_board(board).splitlines()
    hidden = render_board(board, hide_ships=True).splitlines()
    assert shown[3].split()[1 + 5] == "S"
    assert hidden[3].split()[1 + 5] == "."
    assert hidden[4].split()[1 + 1] == "o"


def test_render_board_accepts_plain_grid():
    board = GameBoard()
    board.cells[0][0] = CellState.HIT
    assert render_board(board.cells) == render_board(board)


def test_side_by_side_layout():
    mine = GameBoard()
    enemy = GameBoard()
    mine.cells[0][0] = CellState.SHIP
    enemy.cells[0][0] = CellState.SHIP
    enemy.cells[9][9] = CellState.DESTROYED
    lines = render_boards_side_by_side(mine, enemy).splitlines()
    assert lines[0] == "      Your Board                Enemy Board      "
    assert len(lines) == BOARD_SIZE + 2
    first = lines[2].split()
    assert first[:2] == ["0", "S"]
    assert first[BOARD_SIZE + 1 : BOARD_SIZE + 3] == ["0", "."]
    assert lines[-1].split()[-1] == "#"


def test_side_by_side_can_reveal_enemy():
    enemy = GameBoard()
    enemy.cells[4][4] = CellState.SHIP
    lines = render_boards_side_by_side(GameBoard(), enemy, hide_enemy_ships=False)
    row = lines.splitlines()[2 + 4].split()
    assert row[BOARD_SIZE + 2 + 4] == "S"


def test_side_by_side_rows_match_single_rendering():
    mine = GameBoard()
    mine.cells[5][5] = CellState.HIT
    single = render_board(mine).splitlines()
    combined = render_boards_side_by_side(mine, GameBoard()).splitlines()
    for y in range(BOARD_SIZE):
        assert combined[2 + y].startswith(single[1 + y])
"""Game rules: ship placement, firing and result formatting."""

from __future__ import annotations

from collections import Counter
from enum import IntEnum

from seabattle.model import (
    BOARD_SIZE,
    SHIP_COUNTS,
    TOTAL_SHIPS,
    CellState,
    GameBoard,
    Ship,
)


class PlacementError(Exception):
    """A ship cannot be placed where requested."""


class MoveError(Exception):
    """A shot cannot be made."""


class InvalidCoordinates(MoveError):
    """The shot lies outside the board."""


class AlreadyFired(MoveError):
    """The target cell has already been shot at."""


class MoveResult(IntEnum):
    """Outcome of a shot."""

    MISS = 0
    HIT = 1
    DESTROYED = 2
    VICTORY = 3


def _on_board(x: int, y: int) -> bool:
    return 0 <= x < BOARD_SIZE and 0 <= y < BOARD_SIZE


def place_ship(
    board: GameBoard, x: int, y: int, length: int, horizontal: bool = True
) -> Ship:
    """Place a ship so that it neither overlaps nor touches another one."""
    if not _on_board(x, y):
        raise PlacementError("ship starts off the board")
    if length < 1:
        raise PlacementError("ship length must be positive")
    if (x if horizontal else y) + length > BOARD_SIZE:
        raise PlacementError("ship runs off the board")
    for i in range(-1, length + 1):
        for j in (-1, 0, 1):
            cx, cy = (x + i, y + j) if horizontal else (x + j, y + i)
            if _on_board(cx, cy) and board.cells[cy][cx] == CellState.SHIP:
                raise PlacementError("ship overlaps or touches another ship")
    if board.ships_placed >= TOTAL_SHIPS:
        raise PlacementError("all ships are already placed")

    ship = Ship(x=x, y=y, length=length, horizontal=horizontal)
    for cx, cy in ship.cells():
        board.cells[cy][cx] = CellState.SHIP
    board.ships.append(ship)
    return ship


def ships_by_length(board: GameBoard) -> Counter[int]:
    """Count the placed ships of each length."""
    return Counter(ship.length for ship in board.ships)


def can_add_ship(board: GameBoard, length: int) -> bool:
    """True if the fleet still lacks a ship of this length."""
    if length not in SHIP_COUNTS:
        return False
    return ships_by_length(board)[length] < SHIP_COUNTS[length]


def all_ships_placed(board: GameBoard) -> bool:
    counts = ships_by_length(board)
    return all(counts[length] == wanted for length, wanted in SHIP_COUNTS.items())


def process_move(board: GameBoard, x: int, y: int) -> MoveResult:
    """Fire at (x, y) on the opponent's board and update it."""
    if not _on_board(x, y):
        raise InvalidCoordinates(f"({x}, {y}) is off the board")
    cell = board.cells[y][x]
    if cell in (CellState.MISS, CellState.HIT, CellState.DESTROYED):
        raise AlreadyFired(f"({x}, {y}) was already fired at")
    if cell == CellState.EMPTY:
        board.cells[y][x] = CellState.MISS
        return MoveResult.MISS

    board.cells[y][x] = CellState.HIT
    for ship in board.ships:
        if (x, y) not in ship.cells():
            continue
        ship.hits += 1
        if not ship.is_destroyed():
            return MoveResult.HIT
        for cx, cy in ship.cells():
            board.cells[cy][cx] = CellState.DESTROYED
        if board.all_ships_destroyed():
            return MoveResult.VICTORY
        return MoveResult.DESTROYED
    return MoveResult.MISS


def calculate_win_rate(wins: int, losses: int) -> float:
    """Percentage of games won; 0.0 when none were played."""
    total = wins + losses
    if total == 0:
        return 0.0
    return wins * 100.0 / total


def center_text(text: str, width: int) -> str:
    """Pad text with spaces to width, measured in UTF-8 bytes."""
    size = len(text.encode("utf-8"))
    if size >= width:
        return text
    padding = (width - size) // 2
    return " " * padding + text + " " * (width - size - padding)
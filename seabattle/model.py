"""Core data model: cells, ships, boards, games and player records."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import IntEnum

BOARD_SIZE = 10
MAX_PLAYERS = 100
MAX_GAMES = 20
NAME_LIMIT = 63
DATA_LIMIT = 1023


class CellState(IntEnum):
    """State of a single cell on a board."""

    EMPTY = 0
    SHIP = 1
    MISS = 2
    HIT = 3
    DESTROYED = 4


class ShipType(IntEnum):
    """Ship kinds, valued by their length in cells."""

    BATTLESHIP = 4
    CRUISER = 3
    DESTROYER = 2
    SUBMARINE = 1

    @property
    def count(self) -> int:
        """How many ships of this kind a fleet holds."""
        return SHIP_COUNTS[self]


SHIP_COUNTS: dict[ShipType, int] = {
    ShipType.BATTLESHIP: 1,
    ShipType.CRUISER: 2,
    ShipType.DESTROYER: 3,
    ShipType.SUBMARINE: 4,
}
TOTAL_SHIPS = sum(SHIP_COUNTS.values())


class GameState(IntEnum):
    """Phase a game is in."""

    WAITING_FOR_PLAYER = 0
    PLACING_SHIPS = 1
    PLAYER1_TURN = 2
    PLAYER2_TURN = 3
    GAME_OVER = 4


@dataclass
class Ship:
    """A ship placed on a board, with the number of hits it has taken."""

    x: int = -1
    y: int = -1
    length: int = 0
    horizontal: bool = True
    hits: int = 0

    def is_destroyed(self) -> bool:
        return self.hits >= self.length

    def cells(self) -> list[tuple[int, int]]:
        """The (x, y) coordinates the ship occupies, from its start."""
        if self.horizontal:
            return [(self.x + i, self.y) for i in range(self.length)]
        return [(self.x, self.y + i) for i in range(self.length)]


def _empty_cells() -> list[list[CellState]]:
    return [[CellState.EMPTY] * BOARD_SIZE for _ in range(BOARD_SIZE)]


@dataclass
class GameBoard:
    """One player's board; cells are indexed as cells[y][x]."""

    cells: list[list[CellState]] = field(default_factory=_empty_cells)
    ships: list[Ship] = field(default_factory=list)

    @property
    def ships_placed(self) -> int:
        return len(self.ships)

    def clear(self) -> None:
        self.cells = _empty_cells()
        self.ships = []

    def all_ships_destroyed(self) -> bool:
        """True once a complete fleet is placed and every ship is sunk."""
        if not all(ship.is_destroyed() for ship in self.ships):
            return False
        return len(self.ships) == TOTAL_SHIPS

    def copy(self) -> GameBoard:
        return GameBoard(
            cells=[list(row) for row in self.cells],
            ships=[dataclasses.replace(ship) for ship in self.ships],
        )


@dataclass
class Game:
    """A match between two players."""

    name: str
    player1: str
    player2: str = ""
    board1: GameBoard = field(default_factory=GameBoard)
    board2: GameBoard = field(default_factory=GameBoard)
    state: GameState = GameState.WAITING_FOR_PLAYER
    winner: int = 0
    active: bool = True

    def is_participant(self, player: str) -> bool:
        return player in (self.player1, self.player2)

    def _check(self, player: str) -> bool:
        """Return True for player 1, False for player 2; raise otherwise."""
        if player == self.player1:
            return True
        if player == self.player2:
            return False
        raise ValueError(f"{player!r} is not a participant in game {self.name!r}")

    def board_of(self, player: str) -> GameBoard:
        return self.board1 if self._check(player) else self.board2

    def opponent_board_of(self, player: str) -> GameBoard:
        return self.board2 if self._check(player) else self.board1

    def opponent_of(self, player: str) -> str:
        return self.player2 if self._check(player) else self.player1


@dataclass
class PlayerStats:
    """A registered player's record."""

    username: str
    wins: int = 0
    losses: int = 0
    active: bool = False
    in_game: bool = False
    current_game: str = ""
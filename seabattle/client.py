"""Interactive console client for Sea Battle."""

from __future__ import annotations

import argparse
import re
import sys
import time
from collections import Counter
from collections.abc import Callable, Sequence
from typing import TextIO

from seabattle.display import render_board, render_boards_side_by_side
from seabattle.model import (
    BOARD_SIZE,
    SHIP_COUNTS,
    CellState,
    GameState,
    Ship,
    ShipType,
)
from seabattle.rules import MoveResult
from seabattle.session import Grid, Session
from seabattle.transport import DEFAULT_HOST, DEFAULT_PORT, Connection, TransportError

GAME_EXISTS = "Game with this name already exists!"
TOO_MANY_GAMES = "Maximum number of games reached!"
ALREADY_ONLINE = "Already online"

SHIPS_WAIT_POLLS = 300
OPPONENT_WAIT_POLLS = 600

_TURNS = (GameState.PLAYER1_TURN, GameState.PLAYER2_TURN)
_INT = re.compile(r"\s*([+-]?\d+)")
_CLEAR_SCREEN = "\033[H\033[2J"


def _read_ints(text: str, count: int) -> list[int] | None:
    """Read count leading integers from text, ignoring whatever follows."""
    values: list[int] = []
    position = 0
    for _ in range(count):
        match = _INT.match(text, position)
        if match is None:
            return None
        values.append(int(match.group(1)))
        position = match.end()
    return values


def parse_coordinates(text: str) -> tuple[int, int]:
    """Parse "x y" into a pair of on-board coordinates."""
    values = _read_ints(text, 2)
    if values is None:
        raise ValueError("Invalid coordinates! Please try again.")
    x, y = values
    if not (0 <= x < BOARD_SIZE and 0 <= y < BOARD_SIZE):
        raise ValueError("Invalid coordinates! Please try again.")
    return x, y


def _empty_grid() -> Grid:
    return [[CellState.EMPTY] * BOARD_SIZE for _ in range(BOARD_SIZE)]


def _copy_grid(grid: Grid | None) -> Grid:
    return [list(row) for row in grid] if grid is not None else _empty_grid()


class ConsoleClient:
    """Menus and game screens for one logged-in player."""

    def __init__(
        self,
        session: Session,
        *,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
        sleep: Callable[[float], object] = time.sleep,
        clear: Callable[[], object] | None = None,
    ) -> None:
        self.session = session
        self._in = stdin if stdin is not None else sys.stdin
        self._out = stdout if stdout is not None else sys.stdout
        self._err_stream = stderr if stderr is not None else sys.stderr
        self._sleep = sleep
        self._clear_screen = clear
        self.last_state = GameState.WAITING_FOR_PLAYER

    def _say(self, text: str = "", end: str = "\n") -> None:
        print(text, end=end, file=self._out, flush=True)

    def _err(self, text: str) -> None:
        print(text, file=self._err_stream, flush=True)

    def _ask(self, prompt: str) -> str:
        self._say(prompt, end="")
        line = self._in.readline()
        if not line:
            raise EOFError
        return line.rstrip("\r\n")

    def _clear(self) -> None:
        if self._clear_screen is not None:
            self._clear_screen()
        else:
            self._say(_CLEAR_SCREEN, end="")

    def _ask_ship_length(self, placed: Counter[int]) -> int:
        while True:
            values = _read_ints(self._ask("\nEnter ship length (1-4): "), 1)
            if values is None or not 1 <= values[0] <= 4:
                self._say("Invalid length. Please enter a number between 1 and 4.")
                continue
            length = values[0]
            if placed[length] >= SHIP_COUNTS[ShipType(length)]:
                self._say("You have already placed all ships of this length!")
                continue
            return length

    def place_ships(self, game_name: str) -> None:
        """Ask for ship positions until the whole fleet is placed."""
        self._clear()
        self._say("\n====== Ship Placement ======\n")
        self._say("You need to place:")
        self._say(f"- {SHIP_COUNTS[ShipType.BATTLESHIP]} battleships (4 cells)")
        self._say(f"- {SHIP_COUNTS[ShipType.CRUISER]} cruisers (3 cells)")
        self._say(f"- {SHIP_COUNTS[ShipType.DESTROYER]} destroyers (2 cells)")
        self._say(f"- {SHIP_COUNTS[ShipType.SUBMARINE]} submarines (1 cell)")

        board = _empty_grid()
        placed: Counter[int] = Counter()
        while True:
            self._say("\nCurrent board:")
            self._say(render_board(board), end="")
            self._say("\nRemaining ships:")
            self._say(f"- Battleships (4): {SHIP_COUNTS[ShipType.BATTLESHIP] - placed[4]}")
            self._say(f"- Cruisers (3): {SHIP_COUNTS[ShipType.CRUISER] - placed[3]}")
            self._say(f"- Destroyers (2): {SHIP_COUNTS[ShipType.DESTROYER] - placed[2]}")
            self._say(f"- Submarines (1): {SHIP_COUNTS[ShipType.SUBMARINE] - placed[1]}")

            if all(placed[length] == wanted for length, wanted in SHIP_COUNTS.items()):
                self._say(self.session.ships_ready(game_name).data)
                return

            length = self._ask_ship_length(placed)
            try:
                x, y = parse_coordinates(self._ask("Enter coordinates (format: x y): "))
            except ValueError as exc:
                self._say(str(exc))
                continue

            horizontal = True
            if length > 1:
                answer = self._ask("Orientation (h - horizontal, v - vertical): ")
                horizontal = answer not in ("v", "V")

            reply = self.session.place_ship(game_name, x, y, length, horizontal)
            self._say(reply.data)
            if "successfully" in reply.data:
                for cx, cy in Ship(x=x, y=y, length=length, horizontal=horizontal).cells():
                    board[cy][cx] = CellState.SHIP
                placed[length] += 1
            self._clear()

    def wait_for_opponent_ships(self, game_name: str) -> bool:
        """Poll until the battle starts; False if it ends or takes too long."""
        self._say("\nWaiting for your opponent to place their ships...")
        for poll in range(SHIPS_WAIT_POLLS):
            reply = self.session.game_status(game_name)
            if reply.game_state in _TURNS:
                self.last_state = reply.game_state
                self._say("\nYour opponent has finished placing ships!")
                self._say("Game is starting now...")
                return True
            if reply.game_state == GameState.GAME_OVER:
                self._say(f"\nGame has ended: {reply.data}")
                return False
            if poll % 5 == 0:
                self._say(".", end="")
            self._sleep(1)
        self._say("\nWaited too long for opponent. You can check back later.")
        return False

    def _fire(self, game_name: str, x: int, y: int, enemy: Grid) -> GameState | None:
        """Send a shot; return the new game state, or None if it was refused."""
        reply = self.session.make_move(game_name, x, y)
        self._say(reply.data)
        if reply.hit_result < 0:
            return None
        result = MoveResult(reply.hit_result)
        if result == MoveResult.MISS:
            enemy[y][x] = CellState.MISS
        elif result == MoveResult.HIT:
            enemy[y][x] = CellState.HIT
        elif result == MoveResult.DESTROYED:
            snapshot = self.session.enemy_board or []
            for cy, row in enumerate(snapshot):
                for cx, cell in enumerate(row):
                    if cell == CellState.DESTROYED:
                        enemy[cy][cx] = CellState.DESTROYED
        else:
            enemy[y][x] = CellState.DESTROYED
            self._say("\nCongratulations! You won the game!")
        return reply.game_state

    def play_game(self, game_name: str, initial_state: GameState, opponent: str) -> None:
        """Take turns firing until the game ends or the player quits."""
        self._clear()
        self._say("\n====== Game Started ======\n")
        self._say(f"You are playing against: {opponent}")

        status = self.session.game_status(game_name)
        my_board = _copy_grid(self.session.own_board)
        enemy_board = _empty_grid()
        my_turn_now = status.data.startswith("It's your turn")
        if status.game_state == GameState.PLAYER1_TURN:
            is_player1 = my_turn_now
        elif status.game_state == GameState.PLAYER2_TURN:
            is_player1 = not my_turn_now
        else:
            is_player1 = False
        mine = GameState.PLAYER1_TURN if is_player1 else GameState.PLAYER2_TURN

        game_state = initial_state
        is_my_turn = game_state == mine
        while game_state != GameState.GAME_OVER:
            self._say()
            self._say(render_boards_side_by_side(my_board, enemy_board), end="")

            if is_my_turn:
                text = self._ask("\nYour turn! Enter coordinates to fire (format: x y): ")
                self._clear()
                if text in ("quit", "exit"):
                    self._say("Exiting game...")
                    break
                try:
                    x, y = parse_coordinates(text)
                except ValueError as exc:
                    self._say(str(exc))
                    continue
                new_state = self._fire(game_name, x, y, enemy_board)
                if new_state is not None:
                    game_state = new_state
                    is_my_turn = game_state == mine
                continue

            self._say("\nWaiting for opponent's move...")
            while True:
                reply = self.session.game_status(game_name)
                if reply.game_state == mine:
                    is_my_turn = True
                    game_state = reply.game_state
                    my_board = _copy_grid(self.session.own_board)
                    self._clear()
                    self._say("     Your opponent made a move. Your turn now!")
                    break
                if reply.game_state == GameState.GAME_OVER:
                    game_state = GameState.GAME_OVER
                    my_board = _copy_grid(self.session.own_board)
                    self._clear()
                    self._say("😭 Game ended! Your opponent has won 😭")
                    break
                self._sleep(1)

        self._say("\nGame over!")

    def view_stats(self) -> None:
        data = self.session.stats()
        self._clear()
        self._say("\n====== Player Statistics ======\n")
        self._say(data)

    def _play_through(self, game_name: str, opponent: str) -> None:
        self.place_ships(game_name)
        if self.wait_for_opponent_ships(game_name):
            self.play_game(game_name, self.last_state, opponent)

    def _create_game(self) -> None:
        name = self._ask("Enter game name: ")
        try:
            reply = self.session.create_game(name)
        except ValueError as exc:
            self._say(str(exc))
            return
        self._clear()
        self._say(f"Server response: {reply.data}")
        if reply.game_state != GameState.WAITING_FOR_PLAYER:
            return
        if reply.data in (GAME_EXISTS, TOO_MANY_GAMES):
            return

        game_name = reply.game_name
        self._say("Waiting for an opponent to join...")
        for poll in range(OPPONENT_WAIT_POLLS):
            status = self.session.game_status(game_name)
            if status.game_state == GameState.PLACING_SHIPS:
                self._say("\nAn opponent has joined! Moving to ship placement phase...")
                joined = self.session.join_game(game_name)
                self._play_through(game_name, joined.opponent)
                return
            if poll % 5 == 0:
                self._say(".", end="")
            self._sleep(1)
        self._say("\nWaited too long for an opponent. Returning to main menu.")

    def _join_game(self) -> None:
        self._say("\n" + self.session.list_games())
        game_name = self._ask("Enter game name to join (or 'back' to return): ")
        if game_name == "back":
            return
        if not game_name:
            self._say("Game name cannot be empty!")
            return
        reply = self.session.join_game(game_name)
        self._say(reply.data)
        if reply.game_state == GameState.PLACING_SHIPS:
            self._play_through(game_name, reply.opponent)

    def _menu(self) -> int:
        reply = self.session.login()
        if reply.data == ALREADY_ONLINE:
            self._say("Player is already online")
            return 0
        self._say(reply.data)

        while True:
            self._say("\nOptions:")
            self._say("1. Create a new game")
            self._say("2. Join an existing game")
            self._say("3. View your statistics")
            self._say("4. Exit")
            choice = self._ask("Enter your choice (1-4): ")
            if choice == "1":
                self._create_game()
            elif choice == "2":
                self._join_game()
            elif choice == "3":
                self.view_stats()
            elif choice == "4":
                self._say("Thank you for playing. Goodbye!")
                return 0
            else:
                self._say("Invalid option. Please try again.")

    def run(self) -> int:
        """Log in and show the main menu until the player leaves."""
        try:
            return self._menu()
        except EOFError:
            self._say()
            return 0
        except TransportError as exc:
            self._err(str(exc))
            return 1


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="seabattle", description="Play Sea Battle against another player."
    )
    parser.add_argument("--host", default=DEFAULT_HOST, help="server address")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="server port")
    args = parser.parse_args(argv)

    try:
        connection = Connection(args.host, args.port)
    except TransportError as exc:
        print(exc, file=sys.stderr)
        return 1

    with connection:
        print("====== Welcome to Sea Battle ======\n")
        try:
            username = input("Please enter your username: ")
        except EOFError:
            return 1
        try:
            session = Session(connection, username)
        except ValueError as exc:
            print(exc, file=sys.stderr)
            return 1
        return ConsoleClient(session).run()
import io

import pytest

from seabattle.client import ConsoleClient, parse_coordinates
from seabattle.model import TOTAL_SHIPS, CellState, GameState, Ship
from seabattle.protocol import Message, MessageType
from seabattle.rules import all_ships_placed
from seabattle.server import GameServer
from seabattle.session import Session

FLEET = [
    (0, 0, 4, True),
    (0, 2, 3, True),
    (5, 2, 3, True),
    (0, 4, 2, True),
    (4, 4, 2, True),
    (8, 4, 2, True),
    (0, 6, 1, True),
    (2, 6, 1, True),
    (4, 6, 1, True),
    (6, 6, 1, True),
]


class DirectConnection:
    def __init__(self, server):
        self.server = server

    def request(self, message):
        return self.server.handle(message)


def send(server, kind, username, **fields):
    return server.handle(Message(kind, username=username, **fields))


@pytest.fixture
def server():
    srv = GameServer(stats_path=None)
    for name in ("bob", "alice"):
        send(srv, MessageType.LOGIN, name)
    return srv


def open_game(server):
    send(server, MessageType.CREATE_GAME, "bob", data="g1")
    send(server, MessageType.JOIN_GAME, "alice", game_name="g1")


def place_fleet(server, username):
    for x, y, length, horizontal in FLEET:
        send(
            server,
            MessageType.PLACE_SHIP,
            username,
            game_name="g1",
            x=x,
            y=y,
            ship_length=length,
            ship_horizontal=horizontal,
        )


def start_battle(server):
    open_game(server)
    place_fleet(server, "bob")
    place_fleet(server, "alice")
    send(server, MessageType.SHIPS_READY, "bob", game_name="g1")
    send(server, MessageType.SHIPS_READY, "alice", game_name="g1")


def fleet_cells():
    return [
        cell
        for x, y, length, horizontal in FLEET
        for cell in Ship(x=x, y=y, length=length, horizontal=horizontal).cells()
    ]


def make_client(server, username, lines=(), sleep=None):
    out = io.StringIO()
    err = io.StringIO()
    stdin = io.StringIO("".join(f"{line}\n" for line in lines))
    client = ConsoleClient(
        Session(DirectConnection(server), username),
        stdin=stdin,
        stdout=out,
        stderr=err,
        sleep=sleep or (lambda seconds: None),
        clear=lambda: None,
    )
    return client, out


@pytest.mark.parametrize(
    "text, expected",
    [("3 4", (3, 4)), (" 0 9 trailing", (0, 9)), ("+2 5", (2, 5))],
)
def test_parse_coordinates_accepts(text, expected):
    assert parse_coordinates(text) == expected


@pytest.mark.parametrize("text", ["3", "a b", "10 0", "-1 2", "3,4", ""])
def test_parse_coordinates_rejects(text):
    with pytest.raises(ValueError, match="Invalid coordinates"):
        parse_coordinates(text)


def test_run_registers_and_exits(server):
    client, out = make_client(server, "carol", ["4"])
    assert client.run() == 0
    text = out.getvalue()
    assert "Registration successful!" in text
    assert "Thank you for playing. Goodbye!" in text


def test_run_stops_when_already_online(server):
    client, out = make_client(server, "bob", ["4"])
    assert client.run() == 0
    assert "Player is already online" in out.getvalue()
    assert "Options:" not in out.getvalue()


def test_run_ends_quietly_at_end_of_input(server):
    client, out = make_client(server, "carol")
    assert client.run() == 0
    assert "Registration successful!" in out.getvalue()


def test_run_shows_statistics(server):
    client, out = make_client(server, "carol", ["3", "4"])
    assert client.run() == 0
    text = out.getvalue()
    assert "====== Player Statistics ======" in text
    assert "Statistics for carol:" in text
    assert "Win rate: 0.0%" in text


def test_run_rejects_unknown_option(server):
    client, out = make_client(server, "carol", ["9", "4"])
    assert client.run() == 0
    assert "Invalid option. Please try again." in out.getvalue()


def test_run_lists_waiting_games(server):
    send(server, MessageType.CREATE_GAME, "bob", data="g2")
    client, out = make_client(server, "carol", ["2", "back", "4"])
    assert client.run() == 0
    assert "- g2 (created by bob)" in out.getvalue()


def test_run_rejects_empty_join_name(server):
    client, out = make_client(server, "carol", ["2", "", "4"])
    assert client.run() == 0
    assert "Game name cannot be empty!" in out.getvalue()


def test_run_reports_duplicate_game_without_polling(server):
    send(server, MessageType.CREATE_GAME, "bob", data="g2")
    sleeps = []
    client, out = make_client(server, "carol", ["1", "g2", "4"], sleep=sleeps.append)
    assert client.run() == 0
    assert "Server response: Game with this name already exists!" in out.getvalue()
    assert sleeps == []


def test_run_rejects_empty_game_name(server):
    client, out = make_client(server, "carol", ["1", "", "4"])
    assert client.run() == 0
    assert (
        "Invalid game name! It must be between 1 and 63 characters." in out.getvalue()
    )


def test_create_game_gives_up_waiting_for_opponent(server):
    sleeps = []
    client, out = make_client(server, "carol", ["1", "lonely", "4"], sleep=sleeps.append)
    assert client.run() == 0
    assert len(sleeps) == 600
    assert "Waited too long for an opponent. Returning to main menu." in out.getvalue()
    assert server.games.find("lonely").state == GameState.WAITING_FOR_PLAYER


def test_place_ships_full_fleet(server):
    open_game(server)
    lines = [
        "5",
        "4", "0 0", "h",
        "4", "3", "0 1", "h",
        "3", "0 2", "h",
        "3", "5 2", "h",
        "2", "0 4", "h",
        "2", "4 4", "h",
        "2", "8 4", "h",
        "1", "0 6",
        "1", "2 6",
        "1", "4 6",
        "1", "6 6",
    ]
    client, out = make_client(server, "alice", lines)
    client.place_ships("g1")
    text = out.getvalue()
    assert "Invalid length. Please enter a number between 1 and 4." in text
    assert "You have already placed all ships of this length!" in text
    assert "Cannot place ship at this position!" in text
    assert "Your ships are ready! Waiting for your opponent..." in text
    board = server.games.find("g1").board_of("alice")
    assert board.ships_placed == TOTAL_SHIPS
    assert all_ships_placed(board)


def test_place_ships_vertical(server):
    open_game(server)
    client, out = make_client(server, "alice", ["4", "9 0", "v"])
    with pytest.raises(EOFError):
        client.place_ships("g1")
    board = server.games.find("g1").board_of("alice")
    assert [board.cells[y][9] for y in range(4)] == [CellState.SHIP] * 4
    assert "Ship of length 4 placed successfully!" in out.getvalue()


def test_wait_for_missing_game(server):
    client, out = make_client(server, "alice")
    assert client.wait_for_opponent_ships("nope") is False
    assert "Game has ended: Game not found!" in out.getvalue()


def test_wait_until_opponent_ready(server):
    open_game(server)
    place_fleet(server, "alice")
    place_fleet(server, "bob")
    send(server, MessageType.SHIPS_READY, "alice", game_name="g1")

    def sleep(seconds):
        send(server, MessageType.SHIPS_READY, "bob", game_name="g1")

    client, out = make_client(server, "alice", sleep=sleep)
    assert client.wait_for_opponent_ships("g1") is True
    assert client.last_state == GameState.PLAYER1_TURN
    assert "Your opponent has finished placing ships!" in out.getvalue()


def test_wait_gives_up(server):
    open_game(server)
    sleeps = []
    client, out = make_client(server, "alice", sleep=sleeps.append)
    assert client.wait_for_opponent_ships("g1") is False
    assert len(sleeps) == 300
    assert "Waited too long for opponent" in out.getvalue()


def test_play_game_to_victory(server):
    start_battle(server)
    lines = [f"{x} {y}" for x, y in fleet_cells()]
    client, out = make_client(server, "bob", lines)
    client.play_game("g1", GameState.PLAYER1_TURN, "alice")
    text = out.getvalue()
    assert "You are playing against: alice" in text
    assert "Congratulations! You won the game!" in text
    assert text.rstrip().endswith("Game over!")
    assert server.players.find("bob").wins == 1
    assert server.players.find("alice").losses == 1
    assert server.games.find("g1").state == GameState.GAME_OVER


def test_play_game_miss_wait_and_quit(server):
    start_battle(server)
    calls = []

    def sleep(seconds):
        if not calls:
            send(server, MessageType.MAKE_MOVE, "alice", game_name="g1", x=9, y=9)
        calls.append(seconds)

    client, out = make_client(server, "bob", ["9 9", "quit"], sleep=sleep)
    client.play_game("g1", GameState.PLAYER1_TURN, "alice")
    text = out.getvalue()
    assert "Your opponent made a move. Your turn now!" in text
    assert "Exiting game..." in text
    assert "Game over!" in text
    assert len(calls) == 1
    row_nine = [line for line in text.splitlines() if line.startswith("9 ")]
    assert row_nine[-1].endswith(" o")
    assert server.games.find("g1").state == GameState.PLAYER1_TURN


def test_play_game_invalid_coordinates(server):
    start_battle(server)
    client, out = make_client(server, "bob", ["abc", "exit"])
    client.play_game("g1", GameState.PLAYER1_TURN, "alice")
    text = out.getvalue()
    assert "Invalid coordinates! Please try again." in text
    assert "Exiting game..." in text
    assert server.games.find("g1").state == GameState.PLAYER1_TURN


def test_play_game_lost_while_waiting(server):
    start_battle(server)
    calls = []

    def sleep(seconds):
        if not calls:
            for x, y in fleet_cells():
                send(server, MessageType.MAKE_MOVE, "bob", game_name="g1", x=x, y=y)
        calls.append(seconds)

    client, out = make_client(server, "alice", sleep=sleep)
    client.play_game("g1", GameState.PLAYER1_TURN, "bob")
    text = out.getvalue()
    assert "Game ended! Your opponent has won" in text
    assert "Game over!" in text
    assert len(calls) == 1
    assert server.players.find("alice").losses == 1
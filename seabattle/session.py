"""Client side of the protocol: one method per request the server answers."""

from __future__ import annotations

from typing import Any, Protocol

from seabattle.model import BOARD_SIZE, NAME_LIMIT, CellState
from seabattle.protocol import Message, MessageType
from seabattle.server import BOARD_TAG
from seabattle.transport import TransportError

Grid = list[list[CellState]]


class _Requester(Protocol):
    def request(self, message: Message) -> Message: ...


def _check_name(name: str, what: str) -> None:
    if not name or len(name) > NAME_LIMIT:
        raise ValueError(
            f"Invalid {what}! It must be between 1 and {NAME_LIMIT} characters."
        )


def _take_board(reply: Message) -> Grid | None:
    """Strip a board snapshot from the reply's text and return it as a grid."""
    text, tag, digits = reply.data.rpartition(BOARD_TAG)
    if not tag:
        return None
    if len(digits) != BOARD_SIZE * BOARD_SIZE:
        raise TransportError("malformed board in server reply")
    try:
        cells = [CellState(int(digit)) for digit in digits]
    except ValueError:
        raise TransportError("malformed board in server reply") from None
    reply.data = text
    return [cells[start : start + BOARD_SIZE] for start in range(0, len(cells), BOARD_SIZE)]


class Session:
    """A logged-in player's requests to the server.

    own_board and enemy_board hold the latest snapshots the server sent:
    the player's own board from a status reply and the enemy board, with
    ships hidden, from a move result.
    """

    def __init__(self, connection: _Requester, username: str) -> None:
        _check_name(username, "username")
        self.connection = connection
        self.username = username
        self.own_board: Grid | None = None
        self.enemy_board: Grid | None = None

    def _request(
        self, kind: MessageType, expected: MessageType, **fields: Any
    ) -> Message:
        reply = self.connection.request(Message(kind, username=self.username, **fields))
        if reply.type != expected:
            raise TransportError(f"Unexpected server response: {reply.type.name}")
        return reply

    def login(self) -> Message:
        return self._request(
            MessageType.LOGIN, MessageType.LOGIN_RESPONSE, data="Login request"
        )

    def create_game(self, game_name: str) -> Message:
        _check_name(game_name, "game name")
        return self._request(
            MessageType.CREATE_GAME, MessageType.CREATE_GAME_RESPONSE, data=game_name
        )

    def list_games(self) -> str:
        return self._request(MessageType.LIST_GAMES, MessageType.GAMES_LIST).data

    def join_game(self, game_name: str) -> Message:
        if not game_name:
            raise ValueError("Game name cannot be empty!")
        return self._request(
            MessageType.JOIN_GAME, MessageType.JOIN_GAME_RESPONSE, game_name=game_name
        )

    def game_status(self, game_name: str) -> Message:
        reply = self._request(
            MessageType.GAME_STATUS, MessageType.GAME_STATUS, game_name=game_name
        )
        board = _take_board(reply)
        if board is not None:
            self.own_board = board
        return reply

    def place_ship(
        self, game_name: str, x: int, y: int, length: int, horizontal: bool = True
    ) -> Message:
        return self._request(
            MessageType.PLACE_SHIP,
            MessageType.PLACE_SHIP_RESPONSE,
            game_name=game_name,
            x=x,
            y=y,
            ship_length=length,
            ship_horizontal=horizontal,
        )

    def ships_ready(self, game_name: str) -> Message:
        return self._request(
            MessageType.SHIPS_READY, MessageType.SHIPS_READY_RESPONSE, game_name=game_name
        )

    def make_move(self, game_name: str, x: int, y: int) -> Message:
        reply = self._request(
            MessageType.MAKE_MOVE, MessageType.MOVE_RESULT, game_name=game_name, x=x, y=y
        )
        board = _take_board(reply)
        if board is not None:
            self.enemy_board = board
        return reply

    def stats(self) -> str:
        return self._request(MessageType.GET_STATS, MessageType.STATS_DATA).data
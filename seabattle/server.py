"""The game server: answers client requests and keeps lobby and game state."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import socketserver
import threading
from collections.abc import Callable, Sequence
from typing import Any

from seabattle.lobby import GameTable, LobbyError, PlayerRegistry
from seabattle.model import DATA_LIMIT, CellState, Game, GameBoard, GameState
from seabattle.protocol import Message, MessageType
from seabattle.rules import (
    AlreadyFired,
    InvalidCoordinates,
    MoveResult,
    PlacementError,
    all_ships_placed,
    calculate_win_rate,
    can_add_ship,
    center_text,
    place_ship,
    process_move,
)
from seabattle.transport import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    TransportError,
    receive_message,
    send_message,
)

STATS_FILE = "player_stats.json"
BOARD_TAG = "\n[board] "

GAME_NOT_FOUND = "Game not found!"
NOT_PARTICIPANT = "You are not a participant in this game!"
NOT_PLACING = "Game is not in the ship placement phase!"
ALREADY_ONLINE = "Already online"
JOIN_FAILED = (
    "Could not join game. It may not exist, already started, or you created it."
)

log = logging.getLogger(__name__)

_MOVE_TEXT: dict[MoveResult, tuple[str, int]] = {
    MoveResult.MISS: ("❌ Miss! ❌", 54),
    MoveResult.HIT: ("💥 Hit! 💥", 54),
    MoveResult.DESTROYED: ("🔥 Ship destroyed! 🔥", 54),
    MoveResult.VICTORY: ("🌟 Victory! All enemy ships destroyed! 🌟", 30),
}

_TURNS = (GameState.PLAYER1_TURN, GameState.PLAYER2_TURN)


class _Refusal(Exception):
    """A request that is answered with an explanation instead of an action."""

    def __init__(self, text: str, **fields: Any) -> None:
        super().__init__(text)
        self.fields = fields


def _encode_board(board: GameBoard, hide_ships: bool) -> str:
    return "".join(
        str(int(CellState.EMPTY if hide_ships and cell == CellState.SHIP else cell))
        for row in board.cells
        for cell in row
    )


_Handler = Callable[[Message, Message], None]


class GameServer:
    """Holds the players and games and answers one request at a time."""

    def __init__(self, stats_path: str | None = STATS_FILE) -> None:
        self.players = PlayerRegistry()
        self.games = GameTable()
        self.stats_path = stats_path
        self._lock = threading.Lock()
        if stats_path is not None:
            self.players.load(stats_path)
        self._handlers: dict[MessageType, tuple[MessageType, _Handler]] = {
            MessageType.LOGIN: (MessageType.LOGIN_RESPONSE, self._login),
            MessageType.CREATE_GAME: (MessageType.CREATE_GAME_RESPONSE, self._create),
            MessageType.LIST_GAMES: (MessageType.GAMES_LIST, self._list),
            MessageType.JOIN_GAME: (MessageType.JOIN_GAME_RESPONSE, self._join),
            MessageType.GAME_STATUS: (MessageType.GAME_STATUS, self._status),
            MessageType.PLACE_SHIP: (MessageType.PLACE_SHIP_RESPONSE, self._place),
            MessageType.SHIPS_READY: (MessageType.SHIPS_READY_RESPONSE, self._ready),
            MessageType.MAKE_MOVE: (MessageType.MOVE_RESULT, self._move),
            MessageType.GET_STATS: (MessageType.STATS_DATA, self._stats),
        }

    def handle(self, message: Message) -> Message:
        """Answer one request with its reply."""
        with self._lock:
            entry = self._handlers.get(message.type)
            if entry is None:
                log.warning("Received unknown message type: %d", message.type)
                return dataclasses.replace(
                    message, type=MessageType.ERROR, data="Unknown command"
                )
            reply_type, handler = entry
            reply = dataclasses.replace(message, type=reply_type)
            try:
                handler(message, reply)
            except _Refusal as refusal:
                reply.data = str(refusal)
                for name, value in refusal.fields.items():
                    setattr(reply, name, value)
            return reply

    def save(self) -> None:
        """Write player statistics to the stats file, if there is one."""
        if self.stats_path is None:
            return
        with self._lock:
            self.players.save(self.stats_path)

    def serve_forever(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
        """Accept clients until interrupted, then save the statistics."""
        with self._make_tcp_server(host, port) as tcp:
            bound_host, bound_port = tcp.server_address[:2]
            log.info(
                "Sea Battle Server started on %s:%d. Press Ctrl+C to save and exit.",
                bound_host,
                bound_port,
            )
            try:
                tcp.serve_forever()
            except KeyboardInterrupt:
                log.info("Interrupted. Saving data and cleaning up...")
            finally:
                self.save()

    def _make_tcp_server(self, host: str, port: int) -> _TCPServer:
        return _TCPServer((host, port), self)

    def _sign_off(self, username: str) -> None:
        with self._lock:
            player = self.players.find(username)
            if player is not None:
                player.active = False

    def _participant_game(self, message: Message, **fields: Any) -> Game:
        game = self.games.find(message.game_name)
        if game is None:
            raise _Refusal(GAME_NOT_FOUND, **fields)
        if not game.is_participant(message.username):
            raise _Refusal(NOT_PARTICIPANT, **fields)
        return game

    def _login(self, message: Message, reply: Message) -> None:
        username = message.username
        log.info("Login request from: %s", username)
        player = self.players.find(username)
        reply.new_user = player is None
        if player is None:
            try:
                self.players.add(username)
            except LobbyError as exc:
                raise _Refusal(str(exc), new_user=False) from None
            log.info("New player registered: %s", username)
            reply.data = "Registration successful!"
            return
        already_online = player.active
        player.active = True
        player.in_game = False
        log.info(
            "Returning player: %s (W:%d/L:%d)", username, player.wins, player.losses
        )
        if already_online:
            reply.data = ALREADY_ONLINE
        else:
            reply.data = (
                f"Welcome back, {username}! Your stats: "
                f"{player.wins} wins, {player.losses} losses"
            )

    def _create(self, message: Message, reply: Message) -> None:
        game_name = message.data
        log.info("Create game request: %s from %s", game_name, message.username)
        try:
            game = self.games.create(game_name, message.username, self.players)
        except LobbyError as exc:
            raise _Refusal(str(exc)) from None
        reply.data = f"Game '{game_name}' created successfully! Waiting for opponent..."
        reply.game_state = GameState.WAITING_FOR_PLAYER
        reply.game_name = game.name

    def _list(self, message: Message, reply: Message) -> None:
        log.info("List games request from %s", message.username)
        waiting = self.games.waiting_games(message.username)
        lines = [f"- {game.name} (created by {game.player1})\n" for game in waiting]
        if not lines:
            lines = ["No games available. Create your own game!\n"]
        reply.data = ("Available games:\n" + "".join(lines))[:DATA_LIMIT]

    def _join(self, message: Message, reply: Message) -> None:
        username = message.username
        log.info("Join game request: %s from %s", message.game_name, username)
        try:
            game = self.games.join(message.game_name, username, self.players)
        except LobbyError:
            raise _Refusal(JOIN_FAILED, game_state=GameState.GAME_OVER) from None
        reply.data = f"Successfully joined game '{message.game_name}'! Place your ships."
        reply.game_state = game.state
        reply.game_name = game.name
        reply.opponent = game.player2 if game.player1 == username else game.player1

    def _status(self, message: Message, reply: Message) -> None:
        username = message.username
        game = self.games.find(message.game_name)
        if game is None:
            raise _Refusal(GAME_NOT_FOUND, game_state=GameState.GAME_OVER)
        reply.game_state = game.state
        is_player1 = game.player1 == username
        is_player2 = game.player2 == username
        if not is_player1 and not is_player2:
            raise _Refusal(NOT_PARTICIPANT)
        if (game.state == GameState.PLAYER1_TURN and is_player2) or (
            game.state == GameState.PLAYER2_TURN and is_player1
        ):
            reply.x = -1
            reply.y = -1
            reply.hit_result = -1
            text = "Waiting for opponent's move"
        else:
            text = f"It's your turn in game {message.game_name}"
        reply.data = text + BOARD_TAG + _encode_board(game.board_of(username), False)

    def _place(self, message: Message, reply: Message) -> None:
        length = message.ship_length
        log.info(
            "Place ship request from %s in game %s at (%d,%d), length %d %s",
            message.username,
            message.game_name,
            message.x,
            message.y,
            length,
            "horizontal" if message.ship_horizontal else "vertical",
        )
        game = self._participant_game(message)
        if game.state != GameState.PLACING_SHIPS:
            raise _Refusal(NOT_PLACING)
        board = game.board_of(message.username)
        if not can_add_ship(board, length):
            raise _Refusal("You have placed all ships of this type!")
        try:
            place_ship(board, message.x, message.y, length, message.ship_horizontal)
        except PlacementError:
            text = "Cannot place ship at this position!"
        else:
            text = f"Ship of length {length} placed successfully!"
            if all_ships_placed(board):
                text += " All ships are now placed!"
        reply.data = text
        reply.ship_length = board.ships_placed

    def _ready(self, message: Message, reply: Message) -> None:
        username = message.username
        log.info(
            "Ships ready notification from %s in game %s", username, message.game_name
        )
        game = self._participant_game(message)
        if game.state != GameState.PLACING_SHIPS:
            raise _Refusal(NOT_PLACING)
        if not all_ships_placed(game.board_of(username)):
            raise _Refusal("You haven't placed all your ships yet!")
        reply.opponent = game.opponent_of(username)
        if all_ships_placed(game.opponent_board_of(username)):
            game.state = GameState.PLAYER1_TURN
            reply.game_state = GameState.PLAYER1_TURN
            turn = (
                " It's your turn!"
                if game.player1 == username
                else " Waiting for opponent's move."
            )
            reply.data = "Both players are ready! Game starts now." + turn
        else:
            reply.game_state = GameState.PLACING_SHIPS
            reply.data = "\nYour ships are ready! Waiting for your opponent..."

    def _move(self, message: Message, reply: Message) -> None:
        username = message.username
        log.info(
            "Move request from %s in game %s at (%d,%d)",
            username,
            message.game_name,
            message.x,
            message.y,
        )
        game = self._participant_game(message, hit_result=-1)
        is_player1 = game.player1 == username
        is_player2 = game.player2 == username
        if (
            game.state not in _TURNS
            or (game.state == GameState.PLAYER1_TURN and not is_player1)
            or (game.state == GameState.PLAYER2_TURN and not is_player2)
        ):
            raise _Refusal("It's not your turn!", hit_result=-1)
        target = game.opponent_board_of(username)
        try:
            result = process_move(target, message.x, message.y)
        except InvalidCoordinates:
            raise _Refusal("Invalid coordinates!", hit_result=-1) from None
        except AlreadyFired:
            raise _Refusal("You already fired at this position!", hit_result=-1) from None

        if result == MoveResult.MISS:
            game.state = GameState.PLAYER2_TURN if is_player1 else GameState.PLAYER1_TURN
        elif result == MoveResult.VICTORY:
            game.state = GameState.GAME_OVER
            game.winner = 1 if is_player1 else 2
            self._record_result(username, game.opponent_of(username))

        text, width = _MOVE_TEXT[result]
        reply.hit_result = int(result)
        reply.game_state = game.state
        reply.data = center_text(text, width) + BOARD_TAG + _encode_board(target, True)

    def _record_result(self, winner_name: str, loser_name: str) -> None:
        winner = self.players.find(winner_name)
        if winner is not None:
            winner.wins += 1
            self.players.leave_game(winner_name)
        loser = self.players.find(loser_name)
        if loser is not None:
            loser.losses += 1
            self.players.leave_game(loser_name)

    def _stats(self, message: Message, reply: Message) -> None:
        username = message.username
        log.info("Stats request from %s", username)
        player = self.players.find(username)
        if player is None:
            raise _Refusal("Player not found!")
        rate = calculate_win_rate(player.wins, player.losses)
        reply.data = (
            f"Statistics for {username}:\nWins: {player.wins}\n"
            f"Losses: {player.losses}\nWin rate: {rate:.1f}%"
        )


class _RequestHandler(socketserver.StreamRequestHandler):
    server: _TCPServer

    def handle(self) -> None:
        game_server = self.server.game_server
        online: str | None = None
        try:
            while True:
                message = receive_message(self.rfile)
                if message is None:
                    break
                reply = game_server.handle(message)
                if (
                    message.type == MessageType.LOGIN
                    and reply.type == MessageType.LOGIN_RESPONSE
                    and reply.data != ALREADY_ONLINE
                    and message.username in game_server.players
                ):
                    online = message.username
                send_message(self.request, reply)
        except TransportError as exc:
            log.warning("Dropping client: %s", exc)
        finally:
            if online is not None:
                game_server._sign_off(online)


class _TCPServer(socketserver.ThreadingTCPServer):
    allow_reuse_address = True
    daemon_threads = True

    def __init__(self, address: tuple[str, int], game_server: GameServer) -> None:
        self.game_server = game_server
        super().__init__(address, _RequestHandler)


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="seabattle-server", description="Run the Sea Battle game server."
    )
    parser.add_argument("--host", default=DEFAULT_HOST, help="address to listen on")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="port to listen on")
    parser.add_argument("--stats", default=STATS_FILE, help="player statistics file")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(message)s")
    server = GameServer(args.stats)
    try:
        server.serve_forever(args.host, args.port)
    except OSError as exc:
        log.error("Cannot start server: %s", exc)
        return 1
    return 0
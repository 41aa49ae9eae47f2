"""Server-side bookkeeping: registered players and the table of games."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable, Iterator
from typing import Any

from seabattle.model import (
    MAX_GAMES,
    MAX_PLAYERS,
    NAME_LIMIT,
    Game,
    GameState,
    PlayerStats,
)

log = logging.getLogger(__name__)


class LobbyError(Exception):
    """A lobby request (registration, creating or joining a game) failed."""


def _limit(name: str) -> str:
    return name[:NAME_LIMIT]


class PlayerRegistry:
    """Registered players, kept in registration order."""

    def __init__(self, players: Iterable[PlayerStats] = ()) -> None:
        self._players: dict[str, PlayerStats] = {}
        for player in players:
            self._players[player.username] = player

    def __len__(self) -> int:
        return len(self._players)

    def __iter__(self) -> Iterator[PlayerStats]:
        return iter(self._players.values())

    def __contains__(self, username: object) -> bool:
        return username in self._players

    def load(self, path: str | os.PathLike[str]) -> int:
        """Replace the registry with the records in path; return how many.

        A missing file gives an empty registry, as does a corrupt one.
        Loaded players are neither online nor in a game.
        """
        self._players = {}
        try:
            with open(path, encoding="utf-8") as handle:
                raw = json.load(handle)
        except FileNotFoundError:
            log.info("Stats file not found, starting with empty database.")
            return 0
        except (json.JSONDecodeError, UnicodeDecodeError):
            log.warning("Corrupt stats file. Resetting.")
            return 0

        try:
            players = [self._decode(entry) for entry in raw["players"]]
        except (KeyError, TypeError, ValueError):
            log.warning("Corrupt stats file. Resetting.")
            return 0
        if len(players) > MAX_PLAYERS:
            log.warning("Too many players in stats file. Resetting.")
            return 0

        for player in players:
            self._players[player.username] = player
        log.info("Loaded %d player records.", len(self._players))
        return len(self._players)

    @staticmethod
    def _decode(entry: Any) -> PlayerStats:
        if not isinstance(entry, dict):
            raise ValueError("player record must be an object")
        username = entry["username"]
        wins = entry["wins"]
        losses = entry["losses"]
        current_game = entry.get("current_game", "")
        if not isinstance(username, str) or not isinstance(current_game, str):
            raise ValueError("bad player name")
        for number in (wins, losses):
            if not isinstance(number, int) or isinstance(number, bool):
                raise ValueError("bad player counters")
        return PlayerStats(
            username=username,
            wins=wins,
            losses=losses,
            current_game=current_game,
        )

    def save(self, path: str | os.PathLike[str]) -> None:
        """Write every player's record to path."""
        payload = {
            "players": [
                {
                    "username": player.username,
                    "wins": player.wins,
                    "losses": player.losses,
                    "current_game": player.current_game,
                }
                for player in self._players.values()
            ]
        }
        with open(path, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=False, indent=2)
        log.info("Saved %d player records.", len(self._players))

    def find(self, username: str) -> PlayerStats | None:
        return self._players.get(username)

    def add(self, username: str) -> PlayerStats:
        """Register a new player, who is then online."""
        if len(self._players) >= MAX_PLAYERS:
            raise LobbyError("Maximum number of players reached!")
        player = PlayerStats(username=_limit(username), active=True)
        self._players[player.username] = player
        return player

    def enter_game(self, username: str, game_name: str) -> None:
        player = self.find(username)
        if player is not None:
            player.in_game = True
            player.current_game = _limit(game_name)

    def leave_game(self, username: str) -> None:
        player = self.find(username)
        if player is not None:
            player.in_game = False
            player.current_game = ""


class GameTable:
    """All games the server has created, in creation order."""

    def __init__(self) -> None:
        self.games: list[Game] = []

    def __len__(self) -> int:
        return len(self.games)

    def __iter__(self) -> Iterator[Game]:
        return iter(self.games)

    def find(self, name: str) -> Game | None:
        """The active game with this name, if any."""
        return next(
            (game for game in self.games if game.name == name and game.active),
            None,
        )

    def create(self, name: str, player: str, registry: PlayerRegistry) -> Game:
        """Open a new game with player as its first player."""
        if len(self.games) >= MAX_GAMES:
            raise LobbyError("Maximum number of games reached!")
        if self.find(name) is not None:
            raise LobbyError("Game with this name already exists!")
        game = Game(name=_limit(name), player1=_limit(player))
        self.games.append(game)
        registry.enter_game(player, name)
        return game

    def join(self, name: str, player: str, registry: PlayerRegistry) -> Game:
        """Join a waiting game as its second player.

        The creator may also rejoin once ship placement has begun.
        """
        game = self.find(name)
        if game is None:
            raise LobbyError(f"Game {name!r} not found")
        if game.player1 == player and game.state == GameState.PLACING_SHIPS:
            return game
        if game.state != GameState.WAITING_FOR_PLAYER:
            raise LobbyError(f"Game {name!r} is not waiting for a player")
        game.player2 = _limit(player)
        game.state = GameState.PLACING_SHIPS
        registry.enter_game(player, name)
        return game

    def waiting_games(self, excluding: str) -> list[Game]:
        """Active games awaiting an opponent, other than those excluding created."""
        return [
            game
            for game in self.games
            if game.active
            and game.state == GameState.WAITING_FOR_PLAYER
            and game.player1 != excluding
        ]
"""Messages exchanged between client and server, encoded as JSON."""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from seabattle.model import GameState


class MessageType(IntEnum):
    """Kinds of request and response."""

    LOGIN = 3
    LOGIN_RESPONSE = 4
    CREATE_GAME = 5
    CREATE_GAME_RESPONSE = 6
    LIST_GAMES = 7
    GAMES_LIST = 8
    JOIN_GAME = 9
    JOIN_GAME_RESPONSE = 10
    PLACE_SHIP = 11
    PLACE_SHIP_RESPONSE = 12
    SHIPS_READY = 13
    SHIPS_READY_RESPONSE = 14
    MAKE_MOVE = 15
    MOVE_RESULT = 16
    GAME_STATUS = 17
    GET_STATS = 18
    STATS_DATA = 19
    ERROR = 99


@dataclass
class Message:
    """One request or response.

    hit_result is -1 when no move result applies, otherwise 0 miss,
    1 hit, 2 ship destroyed, 3 victory.
    """

    type: MessageType
    username: str = ""
    data: str = ""
    new_user: bool = False
    game_name: str = ""
    x: int = 0
    y: int = 0
    ship_length: int = 0
    ship_horizontal: bool = True
    hit_result: int = -1
    game_state: GameState = GameState.WAITING_FOR_PLAYER
    opponent: str = ""

    def to_json(self) -> str:
        payload: dict[str, Any] = {}
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            payload[f.name] = int(value) if isinstance(value, IntEnum) else value
        return json.dumps(payload, ensure_ascii=False)

    @classmethod
    def from_json(cls, text: str | bytes) -> Message:
        """Decode a message; raise ValueError if it is malformed."""
        raw = json.loads(text)
        if not isinstance(raw, dict):
            raise ValueError("message must be a JSON object")
        if "type" not in raw:
            raise ValueError("message has no type")
        kwargs = {
            name: _coerce(name, kind, raw[name])
            for name, kind in _FIELD_KINDS.items()
            if name in raw
        }
        return cls(**kwargs)


_FIELD_KINDS: dict[str, type] = {
    "type": MessageType,
    "username": str,
    "data": str,
    "new_user": bool,
    "game_name": str,
    "x": int,
    "y": int,
    "ship_length": int,
    "ship_horizontal": bool,
    "hit_result": int,
    "game_state": GameState,
    "opponent": str,
}


def _coerce(name: str, kind: type, value: Any) -> Any:
    if kind is bool:
        if not isinstance(value, bool):
            raise ValueError(f"field {name!r} must be a boolean")
        return value
    if kind is str:
        if not isinstance(value, str):
            raise ValueError(f"field {name!r} must be a string")
        return value
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"field {name!r} must be an integer")
    if issubclass(kind, IntEnum):
        try:
            return kind(value)
        except ValueError:
            raise ValueError(f"field {name!r} has unknown value {value}") from None
    return value
# seabattle

Sea Battle (Battleship) for two players. One machine runs the game server;
each player starts the console client, logs in with a username and plays
against another player connected to the same server. Client and server
talk over TCP, one JSON message per line.

## Installing

```
pip install .
```

## Playing

Start the server first:

```
seabattle-server
```

It listens on `127.0.0.1`, port `5050`, by default. The options are:

- `--host` — address to listen on
- `--port` — port to listen on
- `--stats` — player statistics file (default `player_stats.json`)

Then each player starts a client:

```
seabattle-client
```

which takes `--host` and `--port` to name the server to connect to.

After entering a username (1 to 63 characters) the client offers a menu:

1. Create a new game — give it a name (1 to 63 characters) and wait for an
   opponent to join. The client waits up to ten minutes.
2. Join an existing game — the client lists the games other players are
   waiting in; type a name to join, or `back` to return.
3. View your statistics — wins, losses and win rate.
4. Exit.

A username can only be online once at a time; it is signed off when its
client disconnects. Returning players are greeted with their record; new
usernames are registered automatically. The server keeps at most 100 players
and 20 games.

### Placing ships

The board is 10 × 10, with columns and rows numbered 0 to 9. Every player
places:

- 1 battleship (4 cells)
- 2 cruisers (3 cells)
- 3 destroyers (2 cells)
- 4 submarines (1 cell)

For each ship enter its length, the coordinates of its first cell as `x y`,
and for ships longer than one cell the orientation: `v` for vertical
(extending downward), anything else for horizontal (extending to the right).
Ships may not overlap or touch each other, not even at a corner. When both
players have placed their fleets the battle starts, and the game's creator
fires first. A player who finishes first waits up to five minutes for the
other.

### Firing

On your turn enter the target as `x y`. A hit or a sunk ship gives you
another shot; a miss passes the turn to your opponent. Type `quit` or `exit`
to leave the game. Sink the whole enemy fleet to win.

The boards are drawn side by side with these symbols:

| Symbol | Meaning                   |
|--------|---------------------------|
| `.`    | water, or an unseen cell  |
| `S`    | your ship                 |
| `o`    | miss                      |
| `X`    | hit                       |
| `#`    | sunk ship                 |

### Statistics

The server keeps every player's wins and losses and writes them to the
statistics file when it is stopped with Ctrl+C, so the record carries over
to the next run. A missing or corrupt file starts an empty record.

## Using the library

The rules can be used on their own:

```python
from seabattle.model import GameBoard
from seabattle.rules import MoveResult, place_ship, process_move

board = GameBoard()
place_ship(board, 2, 3, 4, True)
assert process_move(board, 2, 3) is MoveResult.HIT
```

`place_ship` raises `PlacementError` for a position that is not allowed;
`process_move` raises `InvalidCoordinates` or `AlreadyFired`.

The other modules:

- `seabattle.protocol` — `Message` and `MessageType`, with JSON encoding.
- `seabattle.transport` — `send_message`, `receive_message` and the client's
  `Connection`.
- `seabattle.lobby` — `PlayerRegistry` and `GameTable`.
- `seabattle.server` — `GameServer`, whose `handle` answers one request and
  whose `serve_forever` runs the TCP server.
- `seabattle.session` — `Session`, one method per request (`login`,
  `create_game`, `list_games`, `join_game`, `game_status`, `place_ship`,
  `ships_ready`, `make_move`, `stats`).
- `seabattle.display` — `render_board` and `render_boards_side_by_side`.
- `seabattle.client` — `ConsoleClient`, the interactive menus and screens.

## What it does not do

Only player statistics are saved. Games live in the server's memory and are
lost when it stops; a game left part way cannot be resumed.

## Running the tests

```
pip install .[test]
pytest
```
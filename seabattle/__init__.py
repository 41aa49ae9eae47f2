"""Two-player Sea Battle: game rules, a TCP game server and a console client."""

__version__ = "1.0.0"
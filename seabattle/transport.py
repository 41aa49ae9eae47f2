"""Line-delimited JSON messaging between client and server over TCP."""

from __future__ import annotations

import socket
from types import TracebackType
from typing import BinaryIO, Protocol

from seabattle.protocol import Message

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 5050
MAX_LINE = 64 * 1024


class TransportError(Exception):
    """A message could not be sent, received or decoded."""


class _Sender(Protocol):
    def sendall(self, data: bytes, /) -> object: ...


def send_message(sock: _Sender, message: Message) -> None:
    """Write one message as a single JSON line."""
    line = (message.to_json() + "\n").encode("utf-8")
    try:
        sock.sendall(line)
    except OSError as exc:
        raise TransportError(f"cannot send message: {exc}") from exc


def receive_message(stream: BinaryIO) -> Message | None:
    """Read one message from a binary stream; None at a clean end of stream."""
    try:
        line = stream.readline(MAX_LINE + 1)
    except OSError as exc:
        raise TransportError(f"cannot receive message: {exc}") from exc
    if not line:
        return None
    if not line.endswith(b"\n"):
        if len(line) > MAX_LINE:
            raise TransportError("message is too long")
        raise TransportError("connection closed in the middle of a message")
    try:
        return Message.from_json(line)
    except ValueError as exc:
        raise TransportError(f"malformed message: {exc}") from exc


class Connection:
    """A client's connection to the server: one request, one reply."""

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        timeout: float | None = None,
        *,
        sock: socket.socket | None = None,
    ) -> None:
        if sock is None:
            try:
                sock = socket.create_connection((host, port), timeout=timeout)
            except OSError as exc:
                raise TransportError(
                    f"cannot connect to {host}:{port}. Is the server running?"
                ) from exc
        self._sock = sock
        self._stream = sock.makefile("rb")
        self._closed = False

    def request(self, message: Message) -> Message:
        """Send a request and wait for the server's reply."""
        if self._closed:
            raise TransportError("connection is closed")
        send_message(self._sock, message)
        reply = receive_message(self._stream)
        if reply is None:
            raise TransportError("server closed the connection")
        return reply

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._stream.close()
        self._sock.close()

    def __enter__(self) -> Connection:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
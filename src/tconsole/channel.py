#
# src/tconsole/channel.py
#
"""
Synchronous, blocking duplex transport between the console and the server.
"""

import socket
from typing import Any

import structlog

from tconsole import codec
from tconsole.exceptions import ChannelClosed

log = structlog.get_logger("channel")


class Channel:
    """
    One end of a connected Unix socket pair, speaking framed payloads.

    Each ``write`` by the initiating side is answered by exactly one
    ``read`` before the next ``write``; there is no pipelining.
    """

    def __init__(self, sock: socket.socket, name: str = "channel"):
        self._sock = sock
        self._reader = sock.makefile("rb")
        self._closed = False
        self._log = log.bind(channel=name, fd=sock.fileno())

    @classmethod
    def pair(cls) -> tuple["Channel", "Channel"]:
        """Creates two connected channels."""
        left, right = socket.socketpair(socket.AF_UNIX, socket.SOCK_STREAM)
        return cls(left, name="left"), cls(right, name="right")

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, value: Any) -> None:
        """Blocks until the whole frame has been handed to the transport."""
        if self._closed:
            raise ChannelClosed("Channel is closed")
        frame = codec.encode(value)
        try:
            self._sock.sendall(frame)
        except (BrokenPipeError, ConnectionResetError) as e:
            self._log.debug("Peer went away during write", error=str(e))
            raise ChannelClosed("Peer process has exited") from e
        self._log.debug("Frame written", size=len(frame))

    def read(self) -> Any:
        """Blocks until one whole frame is available and returns its value."""
        if self._closed:
            raise ChannelClosed("Channel is closed")
        try:
            return codec.read_frame(self._reader)
        except EOFError as e:
            self._log.debug("Peer closed the channel")
            raise ChannelClosed("Peer process has exited") from e
        except ConnectionResetError as e:
            raise ChannelClosed("Peer process has exited") from e

    def request(self, value: Any) -> Any:
        """Writes a request and waits for its reply."""
        self.write(value)
        return self.read()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._reader.close()
        self._sock.close()

    def __enter__(self) -> "Channel":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


# 🔼⚙️

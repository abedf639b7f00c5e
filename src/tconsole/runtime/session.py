# src/tconsole/runtime/session.py

"""
Process lifecycle for an interactive session: fork the server, wire it to
the console, and start over on ``reload``.
"""

import os
import sys
from collections.abc import Callable

import structlog
from attrs import define, field
from rich.console import Console as RichConsole

from tconsole.channel import Channel
from tconsole.config import TConsoleConfig
from tconsole.console import Console
from tconsole.exceptions import ChannelClosed, FrameBodyError, PayloadDecodeError
from tconsole.protocol import Message
from tconsole.runtime.server import Server
from tconsole.telemetry import StructLogger

log: StructLogger = structlog.get_logger("runtime.session")


@define(slots=True)
class ServerProcess:
    """Handle on a forked server, held by the console side."""

    pid: int
    channel: Channel
    _reaped: bool = field(default=False, init=False)

    def wait(self) -> int:
        """Closes our end of the channel and reaps the server. Returns its exit code."""
        self.channel.close()
        if self._reaped:
            return 0
        _, status = os.waitpid(self.pid, 0)
        self._reaped = True
        return os.waitstatus_to_exitcode(status)


def serve(server: Server, channel: Channel) -> None:
    """Answers requests until the server exits or the console disappears."""
    serve_log = log.bind(pid=os.getpid())
    serve_log.debug("Server loop started", emoji_key="server")
    while not server.exited:
        try:
            message = channel.read()
        except ChannelClosed:
            serve_log.info("Console disconnected, shutting down", emoji_key="channel")
            break
        except FrameBodyError as e:
            # The whole frame was consumed, so the stream is still in sync.
            serve_log.warning("Dropping undecodable request", error=str(e))
            message = None
        except PayloadDecodeError as e:
            serve_log.error("Request framing is corrupt, shutting down", error=str(e))
            break

        if message is None:
            reply = None
        elif not isinstance(message, Message):
            serve_log.warning("Ignoring non-message request", request_type=type(message).__name__)
            reply = None
        else:
            reply = server.handle(message)

        try:
            channel.write(reply)
        except ChannelClosed:
            serve_log.info("Console went away before the reply was sent", emoji_key="channel")
            break
    channel.close()
    serve_log.debug("Server loop finished")


def spawn_server(config: TConsoleConfig, output: RichConsole | None = None) -> ServerProcess:
    """Forks a server process connected to the caller through a socket pair."""
    console_end, server_end = Channel.pair()
    sys.stdout.flush()
    sys.stderr.flush()

    pid = os.fork()
    if pid == 0:
        exit_code = 0
        try:
            console_end.close()
            serve(Server(config, console=output), server_end)
        except BaseException as e:  # the server child must always reach os._exit
            log.critical("Server crashed", error=str(e), exc_info=True)
            exit_code = 1
        finally:
            try:
                sys.stdout.flush()
                sys.stderr.flush()
            finally:
                os._exit(exit_code)

    server_end.close()
    log.debug("Server process started", pid=pid, emoji_key="server")
    return ServerProcess(pid=pid, channel=console_end)


def run_session(
    config_loader: Callable[[], TConsoleConfig],
    input_func: Callable[[str], str] = input,
    output: RichConsole | None = None,
) -> int:
    """
    Runs console/server cycles until the user exits.

    The configuration is reloaded on every cycle so ``reload`` picks up
    changes to the configuration file too.
    """
    output = output or RichConsole()
    while True:
        config = config_loader()
        server = spawn_server(config, output=output)
        console = Console(config, channel=server.channel, input_func=input_func, output=output)

        try:
            console.send_message(Message.load_environment())
        except ChannelClosed:
            output.print("No connection to test environment. Exiting.")
            server.wait()
            return 1

        keep_running = console.read_and_execute()
        exit_code = server.wait()
        log.debug("Server process reaped", pid=server.pid, exit_code=exit_code)
        if not keep_running:
            return 0
        output.print("Reloading...")


# 🔼⚙️

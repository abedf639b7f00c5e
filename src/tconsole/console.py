#
# src/tconsole/console.py
#
"""
Interactive front end: reads command lines and turns them into protocol
messages for the server.
"""

import shlex
from collections.abc import Callable

import structlog
from rich.console import Console as RichConsole
from rich.markup import escape

from tconsole.channel import Channel
from tconsole.config import TConsoleConfig
from tconsole.exceptions import ChannelClosed
from tconsole.protocol import Message, Response

log = structlog.get_logger("console")

PROMPT = "tconsole> "
KNOWN_COMMANDS = ("exit", "reload", "info", "!failed", "!timings", "set")


class Console:
    """
    Drives one server connection from user input.

    ``read_and_execute`` returns True when the session should start a fresh
    server (``reload``) and False when it should end.
    """

    def __init__(
        self,
        config: TConsoleConfig,
        channel: Channel | None = None,
        input_func: Callable[[str], str] = input,
        output: RichConsole | None = None,
    ):
        self.config = config
        self.channel = channel
        self.input_func = input_func
        self.output = output or RichConsole()

    @property
    def connected(self) -> bool:
        return self.channel is not None

    def send_message(self, message: Message) -> Response:
        """Sends one request and waits for its reply. Drops the connection if the server is gone."""
        if self.channel is None:
            raise ChannelClosed("No connection to the test environment")
        try:
            return self.channel.request(message)
        except ChannelClosed:
            log.debug("Server connection lost", action=message.action.value)
            self.channel = None
            raise

    def complete(self, text: str) -> list[str]:
        """Completion candidates: commands, file set names and cached test elements."""
        candidates = [command for command in KNOWN_COMMANDS if command.startswith(text)]
        candidates.extend(name for name in self.config.file_sets if name.startswith(text))
        if self.channel is not None:
            try:
                elements = self.send_message(Message.autocomplete(text))
            except ChannelClosed:
                elements = []
            candidates.extend(elements or [])
        return candidates

    def message_for(self, args: list[str]) -> Message | None:
        """Maps a tokenized command line to the message it stands for."""
        if not args:
            return None
        command = args[0]
        if command in ("exit", "reload"):
            return Message.exit()
        if command == "!failed":
            return Message.run_failed()
        if command == "!timings":
            return Message.show_performance(args[1] if len(args) > 1 else None)
        if command == "info":
            return Message.run_info()
        if command == "set":
            return Message.set_var(
                args[1] if len(args) > 1 else None,
                args[2] if len(args) > 2 else None,
            )
        if command in self.config.file_sets:
            return Message.run_file_set(command)
        return Message.run_all_tests(args)

    def execute_line(self, line: str) -> bool | None:
        """
        Handles one line of input.

        Returns None to keep reading, True to reload, False to stop.
        """
        try:
            args = shlex.split(line.strip())
        except ValueError as e:
            self.output.print(f"[red]Couldn't parse that command: {escape(str(e))}[/red]")
            return None

        message = self.message_for(args)
        if message is None:
            return None

        try:
            self.send_message(message)
        except ChannelClosed:
            if args[0] in ("exit", "reload"):
                # The server closes its end as it exits.
                return args[0] == "reload"
            self.output.print("Lost connection to test environment. Exiting.")
            return False

        if args[0] == "exit":
            return False
        if args[0] == "reload":
            return True
        return None

    def read_and_execute(self) -> bool:
        """Runs the prompt loop. Returns True if the app should keep running."""
        if not self.connected:
            self.output.print("No connection to test environment. Exiting.")
            return False

        while True:
            try:
                line = self.input_func(PROMPT)
            except EOFError:
                self.output.print()
                line = "exit"
            except KeyboardInterrupt:
                self.output.print()
                continue

            outcome = self.execute_line(line)
            if outcome is not None:
                return outcome


# 🔼⚙️

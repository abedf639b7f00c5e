#
# tests/unit/test_console.py
#
"""
Tests for the interactive console's command mapping and loop.
"""

import shlex
from unittest.mock import MagicMock

import pytest
from rich.console import Console as RichConsole

from tconsole.channel import Channel
from tconsole.config import TConsoleConfig
from tconsole.console import Console
from tconsole.exceptions import ChannelClosed
from tconsole.protocol import Message


@pytest.fixture
def channel() -> MagicMock:
    channel = MagicMock(spec=Channel)
    channel.request.return_value = None
    return channel


@pytest.fixture
def config() -> TConsoleConfig:
    return TConsoleConfig(file_sets={"all": ["tests/*.py"], "units": ["tests/unit/*.py"]})


def scripted(lines: list[str]):
    """An input function that replays ``lines`` then signals end of input."""
    remaining = list(lines)

    def read(prompt: str) -> str:
        if not remaining:
            raise EOFError
        return remaining.pop(0)

    return read


def make_console(config, channel, output, lines=()) -> Console:
    return Console(config, channel=channel, input_func=scripted(list(lines)), output=output)


class TestMessageFor:
    @pytest.mark.parametrize(
        "line, expected",
        [
            ("exit", Message.exit()),
            ("reload", Message.exit()),
            ("!failed", Message.run_failed()),
            ("!timings", Message.show_performance(None)),
            ("!timings 5", Message.show_performance("5")),
            ("info", Message.run_info()),
            ("set fast on", Message.set_var("fast", "on")),
            ("set", Message.set_var(None, None)),
            ("units", Message.run_file_set("units")),
            ("UserTests", Message.run_all_tests(["UserTests"])),
            ("UserTests#test_a 'quoted arg'", Message.run_all_tests(["UserTests#test_a", "quoted arg"])),
        ],
    )
    def test_lines_map_to_messages(self, config, channel, output: RichConsole, line: str, expected) -> None:
        console = make_console(config, channel, output)
        assert console.message_for(shlex.split(line)) == expected

    def test_blank_line_sends_nothing(self, config, channel, output: RichConsole) -> None:
        console = make_console(config, channel, output)
        assert console.execute_line("   ") is None
        channel.request.assert_not_called()


class TestReadAndExecute:
    def test_exit_stops_the_session(self, config, channel, output: RichConsole) -> None:
        console = make_console(config, channel, output, ["UserTests", "exit"])

        assert console.read_and_execute() is False

        sent = [c.args[0] for c in channel.request.call_args_list]
        assert sent == [Message.run_all_tests(["UserTests"]), Message.exit()]

    def test_reload_asks_for_a_new_server(self, config, channel, output: RichConsole) -> None:
        console = make_console(config, channel, output, ["reload"])
        assert console.read_and_execute() is True
        channel.request.assert_called_once_with(Message.exit())

    def test_end_of_input_exits(self, config, channel, output: RichConsole) -> None:
        console = make_console(config, channel, output, [])
        assert console.read_and_execute() is False
        channel.request.assert_called_once_with(Message.exit())

    def test_lost_connection_ends_the_loop(self, config, channel, output: RichConsole) -> None:
        channel.request.side_effect = ChannelClosed("gone")
        console = make_console(config, channel, output, ["UserTests", "info"])

        assert console.read_and_execute() is False

        assert channel.request.call_count == 1
        assert console.connected is False
        assert "Lost connection" in output.file.getvalue()

    def test_exit_tolerates_server_closing_first(self, config, channel, output: RichConsole) -> None:
        channel.request.side_effect = ChannelClosed("gone")
        console = make_console(config, channel, output, ["exit"])
        assert console.read_and_execute() is False

    def test_no_connection(self, config, output: RichConsole) -> None:
        console = make_console(config, None, output, ["UserTests"])
        assert console.read_and_execute() is False
        assert "No connection to test environment" in output.file.getvalue()

    def test_unbalanced_quotes_are_reported(self, config, channel, output: RichConsole) -> None:
        console = make_console(config, channel, output, ["'oops", "exit"])
        assert console.read_and_execute() is False
        assert "Couldn't parse that command" in output.file.getvalue()
        channel.request.assert_called_once_with(Message.exit())


class TestComplete:
    def test_combines_commands_sets_and_server_elements(self, config, channel, output: RichConsole) -> None:
        console = make_console(config, channel, output)

        channel.request.return_value = []
        assert console.complete("u") == ["units"]
        channel.request.assert_called_with(Message.autocomplete("u"))

        channel.request.return_value = ["UserTests"]
        assert console.complete("U") == ["UserTests"]

        channel.request.return_value = ["reloadable_tests"]
        assert console.complete("re") == ["reload", "reloadable_tests"]

    def test_without_server(self, config, output: RichConsole) -> None:
        console = make_console(config, None, output)
        assert console.complete("e") == ["exit"]

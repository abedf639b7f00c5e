#
# tests/unit/test_session.py
#
"""
End-to-end tests with a real forked server speaking over a real channel.
"""

import json
import os
import socket
import threading
from unittest.mock import MagicMock

import pytest
from rich.console import Console

from tconsole import codec
from tconsole.channel import Channel
from tconsole.config import TConsoleConfig
from tconsole.exceptions import ChannelClosed
from tconsole.protocol import Message
from tconsole.runtime.isolation import NO_RESULT, IsolatedRunner
from tconsole.runtime.server import Server
from tconsole.runtime.session import run_session, serve, spawn_server

pytestmark = pytest.mark.skipif(not hasattr(os, "fork"), reason="requires os.fork")


class TestSpawnServer:
    def test_full_conversation(self, sample_config: TConsoleConfig, output: Console) -> None:
        server = spawn_server(sample_config, output=output)
        try:
            channel = server.channel
            assert channel.request(Message.load_environment()) is True
            assert "ArithmeticTests#test_broken" in channel.request(Message.autocomplete("Arith"))

            assert channel.request(Message.run_all_tests(["ArithmeticTests"])) is None
            assert channel.request(Message.run_failed()) is None
            assert channel.request(Message.show_performance("1")) is None
            assert channel.request(Message.set_var("fast", "on")) is None
            assert channel.request(Message.from_dict({"action": "mystery"})) is None

            assert channel.request(Message.exit()) is None
            with pytest.raises(ChannelClosed):
                channel.request(Message.autocomplete(""))
        finally:
            exit_code = server.wait()
        assert exit_code == 0

    def test_server_exits_when_console_disappears(self, sample_config: TConsoleConfig, output: Console) -> None:
        server = spawn_server(sample_config, output=output)
        assert server.wait() == 0


class TestRunSession:
    def test_reload_starts_a_fresh_server(self, sample_config: TConsoleConfig, output: Console) -> None:
        loads: list[int] = []

        def config_loader() -> TConsoleConfig:
            loads.append(1)
            return sample_config

        lines = iter(["set fast on", "reload", "MoreTests", "exit"])
        exit_code = run_session(config_loader, input_func=lambda prompt: next(lines), output=output)

        assert exit_code == 0
        assert len(loads) == 2
        assert "Reloading..." in output.file.getvalue()


def _raw_frame(payload: dict) -> bytes:
    body = json.dumps(payload).encode()
    return codec.HEADER.pack(codec.MAGIC, codec.FORMAT_VERSION, len(body)) + body


class TestServe:
    @pytest.fixture
    def served(self, output: Console):
        console_sock, server_sock = socket.socketpair(socket.AF_UNIX, socket.SOCK_STREAM)
        runner = MagicMock(spec=IsolatedRunner)
        runner.run.return_value = NO_RESULT
        server = Server(TConsoleConfig(), console=output, runner=runner)
        server.element_cache.merge(["UserTests", "UserTests#test_save"])
        thread = threading.Thread(target=serve, args=(server, Channel(server_sock, name="server")), daemon=True)
        thread.start()
        reader = console_sock.makefile("rb")
        yield console_sock, reader, thread, runner
        reader.close()
        console_sock.close()
        thread.join(timeout=5)

    def test_bad_request_body_is_answered_and_serving_continues(self, served) -> None:
        console_sock, reader, thread, runner = served

        console_sock.sendall(_raw_frame({"kind": "message", "data": {"action": "run_all_tests", "args": 5}}))
        assert codec.read_frame(reader) is None

        console_sock.sendall(_raw_frame({"kind": "message", "data": {"action": "run_all_tests", "args": "abc"}}))
        assert codec.read_frame(reader) is None

        console_sock.sendall(codec.encode(Message.autocomplete("User")))
        assert codec.read_frame(reader) == ["UserTests", "UserTests#test_save"]

        console_sock.sendall(codec.encode(Message.exit()))
        assert codec.read_frame(reader) is None
        thread.join(timeout=5)
        assert not thread.is_alive()
        runner.run.assert_not_called()

    def test_corrupt_framing_ends_the_loop(self, served) -> None:
        console_sock, reader, thread, _ = served

        console_sock.sendall(b"NOPE" + codec.encode("x")[4:])
        thread.join(timeout=5)

        assert not thread.is_alive()
        with pytest.raises(EOFError):
            codec.read_frame(reader)

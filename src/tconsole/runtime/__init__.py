# src/tconsole/runtime/__init__.py

"""
Server-side runtime: dispatch, isolated workers and session lifecycle.
"""

from .isolation import NO_RESULT, IsolatedRunner
from .jobs import PreloadJob, RunJob
from .server import Server, ServerState
from .session import ServerProcess, run_session, serve, spawn_server

__all__ = [
    "NO_RESULT",
    "IsolatedRunner",
    "PreloadJob",
    "RunJob",
    "Server",
    "ServerProcess",
    "ServerState",
    "run_session",
    "serve",
    "spawn_server",
]

# src/tconsole/runtime/server.py

"""
The long-lived process that holds the loaded environment and answers
console requests.
"""

import importlib
import sys
import time
import traceback
from collections.abc import Callable, Sequence
from enum import Enum, auto
from pathlib import Path

import structlog
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from tconsole.config import TConsoleConfig
from tconsole.exceptions import EnvironmentLoadError, UnknownFileSet, UnknownSettingName
from tconsole.protocol import Action, Message, Response
from tconsole.results import ElementCache, TestResult
from tconsole.runtime.isolation import NO_RESULT, IsolatedRunner
from tconsole.runtime.jobs import PreloadJob, RunJob, execute_preload, execute_run, load_file
from tconsole.telemetry import StructLogger

log: StructLogger = structlog.get_logger("runtime.server")

TRUTHY_SETTING_VALUES = frozenset({"on", "true", "yes"})


class ServerState(Enum):
    UNINITIALIZED = auto()
    ENVIRONMENT_LOADED = auto()
    RUNNING = auto()
    EXITED = auto()


# Actions that need a loaded environment because they execute tests.
_EXECUTION_ACTIONS = frozenset({Action.RUN_ALL_TESTS, Action.RUN_FILE_SET, Action.RUN_FAILED})


def parse_limit(raw: object) -> int | None:
    """
    Permissive limit parsing: anything that isn't a positive integer means
    "no limit" (None).
    """
    if isinstance(raw, bool) or raw is None:
        return None
    if isinstance(raw, int):
        value = raw
    else:
        try:
            value = int(str(raw).strip())
        except ValueError:
            return None
    return value if value > 0 else None


def normalize_setting_value(value: str | None) -> bool:
    """Maps on/true/yes (any case) to True and everything else to False."""
    return (value or "").strip().lower() in TRUTHY_SETTING_VALUES


class Server:
    """Dispatches protocol messages against the long-lived environment."""

    def __init__(
        self,
        config: TConsoleConfig,
        console: Console | None = None,
        runner: IsolatedRunner | None = None,
    ):
        self.config = config
        self.console = console or Console()
        self.runner = runner or IsolatedRunner(config)
        self.last_result = TestResult()
        self.element_cache = ElementCache()
        self.state = ServerState.UNINITIALIZED
        self.current_action: Action | None = None
        self._handlers: dict[Action, Callable[[Message], Response]] = {
            Action.LOAD_ENVIRONMENT: lambda m: self.load_environment(),
            Action.RUN_ALL_TESTS: lambda m: self.run_all_tests(m.args or None),
            Action.RUN_FILE_SET: lambda m: self.run_file_set(m.set or ""),
            Action.RUN_FAILED: lambda m: self.run_failed(),
            Action.SHOW_PERFORMANCE: lambda m: self.show_performance(m.limit),
            Action.RUN_INFO: lambda m: self.run_info(),
            Action.SET: lambda m: self.set(m.var or "", m.value),
            Action.AUTOCOMPLETE: lambda m: self.autocomplete(m.text),
            Action.EXIT: lambda m: self.exit(),
        }
        log.debug("Server initialized", file_sets=sorted(config.file_sets))

    @property
    def exited(self) -> bool:
        return self.state is ServerState.EXITED

    # --- Dispatch ---
    def handle(self, message: Message) -> Response:
        """Processes one message from the console and returns the reply."""
        handler = self._handlers.get(message.action)
        if handler is None:
            log.warning("Ignoring message with unknown action", action=message.tag or message.action.value)
            return None
        if self.exited:
            log.warning("Message received after exit", action=message.action.value)
            return None
        if message.action in (Action.AUTOCOMPLETE, Action.EXIT, Action.LOAD_ENVIRONMENT):
            return handler(message)
        if message.action in _EXECUTION_ACTIONS and self.state is ServerState.UNINITIALIZED:
            self.console.print("The environment isn't loaded. Use `reload` to try again.")
            self.console.print()
            return None

        previous = self.state
        self.state = ServerState.RUNNING
        self.current_action = message.action
        try:
            return handler(message)
        finally:
            self.current_action = None
            self.state = previous

    # --- Environment ---
    def _load_environment_steps(self) -> None:
        try:
            # Include paths go on sys.path before any hook is resolved.
            for include_path in reversed(self.config.include_paths):
                resolved = str(Path(include_path).resolve())
                if resolved not in sys.path:
                    sys.path.insert(0, resolved)

            self.config.before_load()

            for target in self.config.preload_paths:
                self.config.trace(f"Preloading {target}")
                if target.endswith(".py"):
                    load_file(Path(target))
                else:
                    importlib.import_module(target)

            self.config.after_load()
        except (Exception, SystemExit, KeyboardInterrupt) as e:
            raise EnvironmentLoadError(f"Loading your environment failed: {e}", details=e) from e

    def load_environment(self) -> bool:
        if self.state is ServerState.ENVIRONMENT_LOADED:
            self.console.print("Environment already loaded. Use `reload` to start fresh.")
            return True

        self.console.print()
        self.console.print("Loading environment...")
        started = time.perf_counter()
        try:
            self._load_environment_steps()
        except EnvironmentLoadError as e:
            log.error("Environment load failed", error=str(e))
            self.console.print(f"[red]Error - {escape(str(e))}[/red]")
            if self.config.is_tracing and e.details is not None:
                self.console.print()
                formatted = "".join(traceback.format_exception(e.details))
                self.console.print("    " + formatted.replace("\n", "\n    "), markup=False)
            return False

        self.preload_elements()
        self.state = ServerState.ENVIRONMENT_LOADED
        elapsed = time.perf_counter() - started
        log.info("Environment loaded", elapsed=round(elapsed, 6), emoji_key="time")
        self.console.print(f"Environment loaded in {elapsed:0.6f}s.")
        self.console.print()
        return True

    def preload_elements(self) -> None:
        """Fills the autocomplete cache from a worker that imports the 'all' file set."""
        result = self.runner.run(execute_preload, PreloadJob(self.config.file_sets["all"]), self.config)
        if result is NO_RESULT or not isinstance(result, ElementCache):
            self.config.trace("Preloading test elements produced no result.")
            return
        self.element_cache.merge(result.names)

    # --- Test execution ---
    def run_tests(
        self,
        globs: Sequence[str],
        match_patterns: Sequence[str] | None,
        message: str = "Running tests...",
    ) -> None:
        """
        Loads the files matching ``globs`` in a worker and runs the tests there,
        limited by ``match_patterns`` (class names, method names or test ids).
        """
        job = RunJob(globs, match_patterns, banner=message)
        started = time.perf_counter()
        result = self.runner.run(execute_run, job, self.config, self.console)
        elapsed = time.perf_counter() - started

        if result is NO_RESULT or not isinstance(result, TestResult):
            # Worker crashed or its payload was unreadable.
            result = TestResult()
        self.last_result = result
        self.element_cache.merge(result.element_names())

        log.info(
            "Test run finished",
            failures=result.failures,
            errors=result.errors,
            skips=result.skips,
            elapsed=round(elapsed, 6),
        )
        self.console.print()
        self.console.print(f"Test time (including load): {elapsed:0.6f}s")
        self.console.print()

    def run_all_tests(self, match_patterns: Sequence[str] | None = None) -> None:
        self.run_tests(self.config.file_sets["all"], match_patterns)

    def run_file_set(self, name: str) -> None:
        try:
            globs = self.file_set(name)
        except UnknownFileSet as e:
            log.info("Unknown file set requested", file_set=name)
            self.console.print(str(e))
            self.console.print()
            return
        self.run_tests(globs, None)

    def file_set(self, name: str) -> list[str]:
        if name not in self.config.file_sets:
            raise UnknownFileSet(name)
        return self.config.file_sets[name]

    def run_failed(self) -> None:
        patterns = self.last_result.failed_patterns()
        if not patterns:
            self.console.print(
                "No tests failed in your last run, or you haven't run any tests in this session yet."
            )
            self.console.print()
            return
        self.run_tests(self.config.file_sets["all"], patterns)

    # --- Reporting ---
    def show_performance(self, limit: object = None) -> None:
        timings = self.last_result.slowest_timings(parse_limit(limit))

        self.console.print()
        self.console.print("Timings from last run:")
        self.console.print()

        if not timings:
            self.console.print("No timing data available. Be sure you've run some tests.")
        else:
            table = Table(show_header=True, header_style="bold", box=None)
            table.add_column("Time", justify="right")
            table.add_column("Test")
            for timing in timings:
                table.add_row(f"{timing.elapsed:0.6f}s", escape(f"{timing.suite}#{timing.method}"))
            self.console.print(table)

        self.console.print()

    def run_info(self) -> None:
        self.console.print("Loaded modules:")
        names = sorted({name.split(".")[0] for name in sys.modules})
        self.console.print("\n".join(names), markup=False, highlight=False)
        self.console.print()
        self.console.print()

    # --- Settings ---
    def set(self, key: str, value: str | None) -> None:
        try:
            self._apply_setting(key, value)
        except UnknownSettingName as e:
            log.info("Unknown runtime setting", setting=key)
            self.console.print(str(e))
            self.console.print()

    def _apply_setting(self, key: str, value: str | None) -> None:
        if key != "fast":
            raise UnknownSettingName(key)
        self.config.fail_fast = normalize_setting_value(value)
        log.debug("Fail fast changed", fail_fast=self.config.fail_fast)
        self.console.print(f"Fail Fast is now {'on' if self.config.fail_fast else 'off'}")
        self.console.print()

    # --- Autocomplete / exit ---
    def autocomplete(self, text: str) -> list[str]:
        """Cached element names starting with ``text``."""
        return self.element_cache.complete(text)

    def exit(self) -> None:
        log.info("Server exiting", emoji_key="server")
        self.state = ServerState.EXITED


# 🔼⚙️

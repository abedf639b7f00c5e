#
# config/models.py
#
"""
Attrs-based data models for tconsole configuration.
"""

import importlib
from collections.abc import Callable, Mapping
from typing import Any, TypeAlias

import click
import structlog
from attrs import define, field, mutable

log = structlog.get_logger("config.models")

Hook: TypeAlias = Callable[[], Any]
HookRef: TypeAlias = str | Hook

HOOK_STAGES = ("before_load", "after_load", "before_test_run")

DEFAULT_FILE_SETS: dict[str, list[str]] = {
    "all": ["tests/**/test_*.py", "tests/**/*_test.py"],
    "units": ["tests/unit/**/test_*.py"],
    "integration": ["tests/integration/**/test_*.py"],
}


# --- Validators ---
def _validate_file_sets(inst: Any, attr: Any, value: Mapping[str, list[str]]) -> None:
    """Validator ensures the mandatory 'all' file set is present."""
    if "all" not in value:
        raise ValueError("file_sets must define an 'all' set.")
    for name, globs in value.items():
        if isinstance(globs, str) or not all(isinstance(g, str) for g in globs):
            raise ValueError(f"File set '{name}' must be a list of glob strings.")


def _default_trace_sink(message: str) -> None:
    click.secho(f"[tconsole trace] {message}", dim=True, err=True)


def resolve_hook(ref: HookRef) -> Hook:
    """Turns a 'module:attribute' reference into a callable."""
    if callable(ref):
        return ref
    module_name, sep, attr_path = ref.partition(":")
    if not sep or not module_name or not attr_path:
        raise ValueError(f"Hook reference '{ref}' must look like 'module:function'.")
    target: Any = importlib.import_module(module_name)
    for part in attr_path.split("."):
        target = getattr(target, part)
    if not callable(target):
        raise TypeError(f"Hook reference '{ref}' does not point at a callable.")
    return target


@define(frozen=True, slots=True)
class HooksConfig:
    """Lifecycle callbacks, in the order they should run."""

    before_load: list[HookRef] = field(factory=list)
    after_load: list[HookRef] = field(factory=list)
    before_test_run: list[HookRef] = field(factory=list)


@mutable(slots=True)
class TConsoleConfig:
    """
    Root configuration object handed to the server and its workers.

    Mutable only so the runtime 'fast' setting can flip ``fail_fast``.
    """

    file_sets: dict[str, list[str]] = field(
        factory=lambda: {name: list(globs) for name, globs in DEFAULT_FILE_SETS.items()},
        validator=_validate_file_sets,
    )
    include_paths: list[str] = field(factory=list)
    preload_paths: list[str] = field(factory=list, metadata={"toml_name": "preload"})
    hooks: HooksConfig = field(factory=HooksConfig)
    fail_fast: bool = field(default=False)
    trace_enabled: bool = field(default=False, metadata={"toml_name": "trace"})
    adapter: str = field(default="unittest")
    trace_sink: Callable[[str], None] = field(default=_default_trace_sink, repr=False, eq=False)

    # --- Trace gate ---
    def trace(self, message: str) -> None:
        """Writes a trace line for the user when tracing is on."""
        log.debug("trace", message=message)
        if self.trace_enabled:
            self.trace_sink(message)

    @property
    def is_tracing(self) -> bool:
        return self.trace_enabled

    # --- Hooks ---
    def _run_hooks(self, stage: str) -> None:
        for ref in getattr(self.hooks, stage):
            hook = resolve_hook(ref)
            self.trace(f"Running {stage} hook {getattr(hook, '__qualname__', hook)!r}")
            hook()

    def before_load(self) -> None:
        self._run_hooks("before_load")

    def after_load(self) -> None:
        self._run_hooks("after_load")

    def before_test_run(self) -> None:
        self._run_hooks("before_test_run")


# 🔼⚙️

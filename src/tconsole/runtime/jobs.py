# src/tconsole/runtime/jobs.py

"""
Units of work executed inside isolated workers.

Jobs are plain frozen records so a worker's task is fully described by
data: which globs to load and which patterns to match.
"""

import glob
import importlib.util
import sys
from collections.abc import Iterable, Sequence
from pathlib import Path
from types import ModuleType

import structlog
from attrs import define, field
from rich.console import Console

from tconsole.config import TConsoleConfig
from tconsole.results import ElementCache, TestResult
from tconsole.testing import get_test_adapter

log = structlog.get_logger("runtime.jobs")


def _optional_tuple(value: Iterable[str] | None) -> tuple[str, ...] | None:
    if value is None:
        return None
    return tuple(value)


@define(frozen=True, slots=True)
class RunJob:
    """Load the files matched by ``globs`` and run the selected tests."""

    globs: tuple[str, ...] = field(converter=tuple)
    match_patterns: tuple[str, ...] | None = field(default=None, converter=_optional_tuple)
    banner: str = field(default="Running tests...")


@define(frozen=True, slots=True)
class PreloadJob:
    """Load the files matched by ``globs`` and list every test element."""

    globs: tuple[str, ...] = field(converter=tuple)


def expand_globs(globs: Sequence[str], config: TConsoleConfig) -> list[Path]:
    """
    Expands globs into an ordered, de-duplicated list of files.

    A literal path that doesn't exist is only reported through the trace gate.
    """
    paths: list[Path] = []
    seen: set[Path] = set()
    for pattern in globs:
        matched = sorted(glob.glob(pattern, recursive=True))
        if not matched and not glob.has_magic(pattern):
            config.trace(f"Requested path `{pattern}` doesn't exist.")
        for match in matched:
            path = Path(match)
            if path.is_dir():
                continue
            resolved = path.resolve()
            if resolved not in seen:
                seen.add(resolved)
                paths.append(path)
    return paths


def module_name_for(path: Path) -> str:
    """Dotted module name for a test file, relative to the working directory when possible."""
    resolved = path.resolve()
    try:
        relative = resolved.relative_to(Path.cwd())
    except ValueError:
        relative = Path(resolved.name)
    parts = list(relative.with_suffix("").parts)
    return ".".join(part.replace("-", "_").replace(" ", "_") for part in parts)


def load_file(path: Path) -> ModuleType:
    """Imports a source file into the current interpreter."""
    name = module_name_for(path)
    existing = sys.modules.get(name)
    if existing is not None and getattr(existing, "__file__", None) == str(path.resolve()):
        return existing

    spec = importlib.util.spec_from_file_location(name, path.resolve())
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load tests from '{path}'")
    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        sys.modules.pop(name, None)
        raise
    return module


def load_files(paths: Iterable[Path], config: TConsoleConfig) -> list[ModuleType]:
    modules = []
    for path in paths:
        config.trace(f"Loading `{path}`")
        modules.append(load_file(path))
    return modules


def execute_run(job: RunJob, config: TConsoleConfig, console: Console) -> TestResult:
    """Worker body for test runs."""
    console.print(job.banner)
    console.print()

    modules = load_files(expand_globs(job.globs, config), config)

    config.trace("Running before_test_run callback")
    config.before_test_run()
    config.trace("Completed before_test_run callback")

    adapter = get_test_adapter(config.adapter, modules, console=console)
    config.trace("Running tests.")
    result = adapter.run(job.match_patterns, config)
    config.trace("Finished running tests.")
    return result


def execute_preload(job: PreloadJob, config: TConsoleConfig) -> ElementCache:
    """Worker body that collects autocomplete names without running anything."""
    modules = load_files(expand_globs(job.globs, config), config)
    adapter = get_test_adapter(config.adapter, modules)
    cache = ElementCache()
    cache.merge(adapter.preload_elements())
    log.debug("Preloaded test elements", count=len(cache), modules=len(modules))
    return cache


# 🔼⚙️

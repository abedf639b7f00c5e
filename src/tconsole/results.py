#
# src/tconsole/results.py
#
"""
Attrs-based models for the outcome of a single test run and the
autocomplete element cache that outlives runs.
"""

from collections.abc import Iterable, Mapping
from typing import Any

import structlog
from attrs import define, field, mutable

log = structlog.get_logger("results")


@define(frozen=True, slots=True)
class FailureDetail:
    """Identifies a test that failed or errored."""

    class_name: str
    method_name: str

    @property
    def pattern(self) -> str:
        """Match pattern that selects exactly this test."""
        return f"{self.class_name}#{self.method_name}"


@define(frozen=True, slots=True)
class Timing:
    """Elapsed wall-clock time of one test method."""

    suite: str
    method: str
    elapsed: float


@mutable(slots=True)
class TestResult:
    """
    Aggregates counts, failure details, seen suites and timings for one run.

    The server stores one of these as its ``last_result`` and replaces it
    wholesale after every run; it is never mutated once stored.
    """

    __test__ = False  # keep pytest from collecting this class

    failures: int = field(default=0)
    errors: int = field(default=0)
    skips: int = field(default=0)
    failure_details: list[FailureDetail] = field(factory=list)
    suites: set[str] = field(factory=set)
    timings: list[Timing] = field(factory=list)

    def append_failure_details(self, class_name: Any, method_name: Any) -> None:
        """Adds to the failure details that we know about."""
        self.failure_details.append(FailureDetail(str(class_name), str(method_name)))

    def add_suite(self, suite: Any) -> bool:
        """
        Records that a suite has been encountered.

        Returns True the first time a suite name is seen, False afterwards.
        """
        name = str(suite)
        if name in self.suites:
            return False
        self.suites.add(name)
        return True

    def add_timing(self, suite: Any, method: Any, elapsed: float) -> None:
        self.timings.append(Timing(str(suite), str(method), float(elapsed)))

    def failed_patterns(self) -> list[str]:
        return [detail.pattern for detail in self.failure_details]

    def element_names(self) -> list[str]:
        """Identifiers observed in this run that are worth autocompleting."""
        names = list(self.suites)
        names.extend(f"{timing.suite}#{timing.method}" for timing in self.timings)
        names.extend(self.failed_patterns())
        return names

    def slowest_timings(self, limit: int | None = None) -> list[Timing]:
        """
        Timings ordered slowest first.

        A limit that is None or not positive returns every timing.
        """
        ordered = sorted(self.timings, key=lambda timing: timing.elapsed)
        ordered.reverse()
        if limit is None or limit <= 0:
            return ordered
        return ordered[:limit]

    def to_dict(self) -> dict[str, Any]:
        return {
            "failures": self.failures,
            "errors": self.errors,
            "skips": self.skips,
            "failure_details": [
                {"class_name": d.class_name, "method_name": d.method_name}
                for d in self.failure_details
            ],
            "suites": sorted(self.suites),
            "timings": [
                {"suite": t.suite, "method": t.method, "elapsed": t.elapsed} for t in self.timings
            ],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TestResult":
        """Rebuilds a result from its ``to_dict`` shape. Raises on malformed input."""
        return cls(
            failures=int(data["failures"]),
            errors=int(data["errors"]),
            skips=int(data["skips"]),
            failure_details=[
                FailureDetail(str(d["class_name"]), str(d["method_name"]))
                for d in data["failure_details"]
            ],
            suites={str(name) for name in data["suites"]},
            timings=[
                Timing(str(t["suite"]), str(t["method"]), float(t["elapsed"]))
                for t in data["timings"]
            ],
        )


@mutable(slots=True)
class ElementCache:
    """
    Names of known test elements (suites, ``Suite#method`` pairs, test ids),
    used only to answer autocomplete requests.
    """

    names: dict[str, bool] = field(factory=dict)

    def merge(self, names: Iterable[str]) -> int:
        """Adds any names not yet cached. Returns how many were new."""
        added = 0
        for name in names:
            if name not in self.names:
                self.names[name] = True
                added += 1
        if added:
            log.debug("Element cache updated", added=added, total=len(self.names))
        return added

    def complete(self, text: str) -> list[str]:
        """Cached names that start with ``text`` (case-sensitive)."""
        return sorted(name for name in self.names if name.startswith(text))

    def __contains__(self, name: object) -> bool:
        return name in self.names

    def __len__(self) -> int:
        return len(self.names)


# 🔼⚙️

#
# tests/unit/test_unittest_adapter.py
#
"""
Tests for the unittest adapter and its pattern matching.
"""

import types
import unittest

import pytest
from rich.console import Console

from tconsole.config import TConsoleConfig
from tconsole.exceptions import ConfigurationError
from tconsole.testing import UnittestAdapter, get_test_adapter
from tconsole.testing.unittest_adapter import describe_test, matches


@pytest.fixture
def module() -> types.ModuleType:
    """A module holding one TestCase, built here so pytest doesn't collect it."""

    class WidgetTests(unittest.TestCase):
        def test_spin(self):
            pass

        def test_stop(self):
            self.fail("stuck")

    module = types.ModuleType("widgets_module")
    WidgetTests.__module__ = "widgets_module"
    WidgetTests.__qualname__ = "WidgetTests"
    module.WidgetTests = WidgetTests
    return module


@pytest.fixture
def spin(module: types.ModuleType) -> unittest.TestCase:
    return module.WidgetTests("test_spin")


class TestMatches:
    @pytest.mark.parametrize(
        "patterns",
        [
            None,
            [],
            ["WidgetTests"],
            ["test_spin"],
            ["WidgetTests#test_spin"],
            ["widgets_module.WidgetTests.test_spin"],
            ["Widget*"],
            ["*#test_sp?n"],
            ["nothing", "WidgetTests#test_spin"],
        ],
    )
    def test_selected(self, spin: unittest.TestCase, patterns) -> None:
        assert matches(spin, patterns)

    @pytest.mark.parametrize(
        "patterns",
        [["Widget"], ["test_stop"], ["WidgetTests#test_stop"], ["widgettests"], ["Gadget*"]],
    )
    def test_not_selected(self, spin: unittest.TestCase, patterns) -> None:
        assert not matches(spin, patterns)

    def test_describe_test(self, spin: unittest.TestCase) -> None:
        assert describe_test(spin) == ("WidgetTests", "test_spin")


class TestUnittestAdapter:
    def test_run_records_outcomes(self, module: types.ModuleType, output: Console) -> None:
        adapter = UnittestAdapter([module], console=output)

        result = adapter.run(None, TConsoleConfig())

        assert result.failures == 1
        assert result.failed_patterns() == ["WidgetTests#test_stop"]
        assert [t.method for t in result.timings] == ["test_spin", "test_stop"]
        text = output.file.getvalue()
        assert "WidgetTests" in text
        assert "FAIL" in text
        assert "stuck" in text

    def test_suite_header_printed_once(self, module: types.ModuleType, output: Console) -> None:
        UnittestAdapter([module], console=output).run(None, TConsoleConfig())
        lines = [line.strip() for line in output.file.getvalue().splitlines()]
        assert lines.count("WidgetTests") == 1

    def test_preload_elements(self, module: types.ModuleType) -> None:
        names = UnittestAdapter([module]).preload_elements()
        assert "WidgetTests" in names
        assert "WidgetTests#test_stop" in names
        assert "widgets_module.WidgetTests.test_spin" in names


class TestFactory:
    def test_known_adapter(self, module: types.ModuleType) -> None:
        assert isinstance(get_test_adapter("UNITTEST", [module]), UnittestAdapter)

    def test_unknown_adapter(self) -> None:
        with pytest.raises(ConfigurationError, match="Unsupported test adapter"):
            get_test_adapter("nose", [])

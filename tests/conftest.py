import io
import textwrap
from pathlib import Path

import pytest
from rich.console import Console

from tconsole.config import TConsoleConfig

SAMPLE_TESTS = '''
import unittest


class ArithmeticTests(unittest.TestCase):
    def test_addition(self):
        self.assertEqual(1 + 1, 2)

    def test_broken(self):
        self.assertEqual(1 + 1, 3)

    @unittest.skip("not today")
    def test_skipped(self):
        pass


class StringTests(unittest.TestCase):
    def test_upper(self):
        self.assertEqual("a".upper(), "A")

    def test_explodes(self):
        raise RuntimeError("boom")
'''

MORE_TESTS = '''
import unittest


class MoreTests(unittest.TestCase):
    def test_fine(self):
        self.assertTrue(True)
'''


@pytest.fixture
def output() -> Console:
    """A rich console that records into a string buffer."""
    return Console(file=io.StringIO(), width=200, color_system=None, force_terminal=False)


@pytest.fixture
def sample_project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """A working directory containing a small unittest suite."""
    suite_dir = tmp_path / "sample_suite"
    suite_dir.mkdir()
    (suite_dir / "test_sample.py").write_text(textwrap.dedent(SAMPLE_TESTS))
    (suite_dir / "test_more.py").write_text(textwrap.dedent(MORE_TESTS))
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def sample_config(sample_project: Path) -> TConsoleConfig:
    return TConsoleConfig(
        file_sets={
            "all": ["sample_suite/**/test_*.py"],
            "more": ["sample_suite/test_more.py"],
        }
    )

#
# src/tconsole/__init__.py
#
"""
tconsole: an interactive test console that keeps your environment loaded
and runs each batch of tests in a throwaway forked worker.
"""

from tconsole.exceptions import TConsoleError

__all__ = ["TConsoleError"]

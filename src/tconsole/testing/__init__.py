#
# src/tconsole/testing/__init__.py
#
"""
Test framework adapters for tconsole.
"""
from .factory import ADAPTER_MAP, get_test_adapter
from .protocols import TestFrameworkAdapter
from .unittest_adapter import UnittestAdapter

__all__ = [
    "ADAPTER_MAP",
    "TestFrameworkAdapter",
    "UnittestAdapter",
    "get_test_adapter",
]

# 🔼⚙️

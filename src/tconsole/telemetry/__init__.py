# src/tconsole/telemetry/__init__.py

"""
Logging setup for tconsole.
"""

from .logger import StructLogger, setup_logging

__all__ = ["StructLogger", "setup_logging"]

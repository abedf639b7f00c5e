#
# config/__init__.py
#
"""
Configuration handling sub-package for tconsole.

Exports the loading function and core configuration model.
"""

from .loader import DEFAULT_CONFIG_NAME, load_config
from .models import DEFAULT_FILE_SETS, HooksConfig, TConsoleConfig, resolve_hook

__all__ = [
    "DEFAULT_CONFIG_NAME",
    "DEFAULT_FILE_SETS",
    "HooksConfig",
    "TConsoleConfig",
    "load_config",
    "resolve_hook",
]

# 🔼⚙️

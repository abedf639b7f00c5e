#
# config/loader.py
#
"""
Loads and validates tconsole configuration from a TOML file.
"""

import os
import tomllib
from pathlib import Path
from typing import Any

import structlog

from tconsole.config.models import HOOK_STAGES, HooksConfig, TConsoleConfig
from tconsole.exceptions import ConfigurationError

log = structlog.get_logger("config.loader")

DEFAULT_CONFIG_NAME = ".tconsole.toml"
_BOOL_TRUE = {"1", "true", "yes", "on"}

_KNOWN_KEYS = {"file_sets", "include_paths", "preload", "hooks", "fail_fast", "trace", "adapter"}


def _string_list(section: dict[str, Any], key: str, path: Path) -> list[str]:
    value = section.get(key, [])
    if isinstance(value, str) or not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigurationError(f"'{key}' must be a list of strings", path=str(path))
    return list(value)


def _env_flag(name: str) -> bool | None:
    raw = os.environ.get(name)
    if raw is None:
        return None
    return raw.strip().lower() in _BOOL_TRUE


def _build_config(section: dict[str, Any], path: Path) -> TConsoleConfig:
    unknown = set(section) - _KNOWN_KEYS
    if unknown:
        log.warning("Ignoring unknown configuration keys", keys=sorted(unknown), path=str(path))

    kwargs: dict[str, Any] = {}
    if "file_sets" in section:
        file_sets = section["file_sets"]
        if not isinstance(file_sets, dict):
            raise ConfigurationError("'file_sets' must be a table", path=str(path))
        kwargs["file_sets"] = {name: _string_list(file_sets, name, path) for name in file_sets}

    kwargs["include_paths"] = _string_list(section, "include_paths", path)
    kwargs["preload_paths"] = _string_list(section, "preload", path)

    hooks_section = section.get("hooks", {})
    if not isinstance(hooks_section, dict):
        raise ConfigurationError("'hooks' must be a table", path=str(path))
    kwargs["hooks"] = HooksConfig(
        **{stage: _string_list(hooks_section, stage, path) for stage in HOOK_STAGES if stage in hooks_section}
    )

    for key, attr in (("fail_fast", "fail_fast"), ("trace", "trace_enabled")):
        if key in section:
            if not isinstance(section[key], bool):
                raise ConfigurationError(f"'{key}' must be true or false", path=str(path))
            kwargs[attr] = section[key]

    if "adapter" in section:
        kwargs["adapter"] = str(section["adapter"])

    try:
        return TConsoleConfig(**kwargs)
    except (ValueError, TypeError) as e:
        raise ConfigurationError(str(e), path=str(path), details=e) from e


def load_config(config_path: Path | None = None) -> TConsoleConfig:
    """
    Loads configuration from ``config_path`` (default ``.tconsole.toml``).

    A missing file yields the defaults. TCONSOLE_TRACE and TCONSOLE_FAIL_FAST
    environment variables override the corresponding file settings.
    """
    path = Path(config_path) if config_path is not None else Path(DEFAULT_CONFIG_NAME)
    load_log = log.bind(path=str(path))

    if path.is_file():
        try:
            with path.open("rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            load_log.error("Invalid TOML in configuration file", error=str(e))
            raise ConfigurationError(f"Invalid TOML: {e}", path=str(path), details=e) from e
        except OSError as e:
            raise ConfigurationError(f"Could not read configuration: {e}", path=str(path), details=e) from e

        section = data.get("tconsole", {})
        if not isinstance(section, dict):
            raise ConfigurationError("'[tconsole]' must be a table", path=str(path))
        config = _build_config(section, path)
        load_log.debug("Configuration loaded", file_sets=sorted(config.file_sets))
    else:
        load_log.debug("No configuration file found, using defaults")
        config = TConsoleConfig()

    trace = _env_flag("TCONSOLE_TRACE")
    if trace is not None:
        config.trace_enabled = trace
    fail_fast = _env_flag("TCONSOLE_FAIL_FAST")
    if fail_fast is not None:
        config.fail_fast = fail_fast

    return config


# 🔼⚙️

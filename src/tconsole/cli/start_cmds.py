# src/tconsole/cli/start_cmds.py

import logging
import sys
from pathlib import Path

import click
import structlog

from tconsole.cli.utils import config_path_option, logging_options, setup_logging_from_context
from tconsole.config import TConsoleConfig, load_config
from tconsole.exceptions import ConfigurationError
from tconsole.runtime.session import run_session
from tconsole.telemetry import StructLogger

log: StructLogger = structlog.get_logger("cli.start")


@click.command(name="start")
@config_path_option
@click.option("--trace", is_flag=True, default=False, help="Print trace output from the server and workers.")
@click.option("-f", "--fail-fast", is_flag=True, default=False, help="Start with fail fast mode on.")
@logging_options
@click.pass_context
def start_cli(ctx: click.Context, config_path: Path, trace: bool, fail_fast: bool, **kwargs):
    """Load the environment and start the interactive console."""
    setup_logging_from_context(
        ctx,
        local_log_level=kwargs.get("log_level"),
        local_log_file=kwargs.get("log_file"),
        local_json_logs=kwargs.get("json_logs"),
    )

    def config_loader() -> TConsoleConfig:
        config = load_config(config_path)
        if trace:
            config.trace_enabled = True
        if fail_fast:
            config.fail_fast = True
        return config

    # Validate once up front so a broken file fails before any fork.
    try:
        config_loader()
    except ConfigurationError as e:
        log.error("Failed to load or validate configuration", error=str(e))
        click.echo(f"Error: Configuration problem in '{config_path}':\n{e}", err=True)
        ctx.exit(1)

    log.info("Starting tconsole session", config_path=str(config_path))
    try:
        exit_code = run_session(config_loader)
    except ConfigurationError as e:
        # Configuration broke between reloads.
        click.echo(f"Error: Configuration problem in '{config_path}':\n{e}", err=True)
        exit_code = 1
    except KeyboardInterrupt:
        log.warning("Shutdown initiated by KeyboardInterrupt (CTRL-C).")
        exit_code = 130
    finally:
        logging.shutdown()

    if exit_code != 0:
        sys.exit(exit_code)

# 🔼⚙️

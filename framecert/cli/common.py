"""Argument, logging and signal plumbing shared by framecert commands."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from pathlib import Path
from typing import Any, Callable, Optional

from framecert.core.logging_config import configure_logging
from framecert.core.logging_utils import StructuredLogger, get_module_logger
from framecert.core.paths import USER_LOGS_DIR, ensure_directories


LOG_LEVELS: dict[str, int] = {
    name: getattr(logging, name.upper())
    for name in ("critical", "error", "warning", "info", "debug")
}


def _positive(convert: Callable[[str], Any], kind: str) -> Callable[[str], Any]:
    def parse(value: str):
        try:
            number = convert(value)
        except ValueError as exc:
            raise argparse.ArgumentTypeError(f"{value!r} is not a {kind}") from exc
        if number <= 0:
            raise argparse.ArgumentTypeError(f"{value!r} must be positive")
        return number

    parse.__name__ = f"positive_{kind}"
    return parse


positive_int = _positive(int, "integer")
positive_float = _positive(float, "number")


def add_common_cli_arguments(
    parser: argparse.ArgumentParser,
    *,
    default_output: Optional[Path | str] = None,
    include_config: bool = True,
) -> None:
    """Output, logging and config options every framecert command accepts.

    ``--log-level`` defaults to None so a level from the config file is not
    overridden unless the option is given.
    """
    output = parser.add_argument_group("output")
    output.add_argument(
        "--output-dir",
        type=Path,
        default=None if default_output is None else Path(default_output),
        help="Directory for the frame CSV, run log and raw latency dumps (default: none written)",
    )
    output.add_argument(
        "--log-level",
        choices=sorted(LOG_LEVELS),
        default=None,
        help="Logging verbosity (default: info)",
    )
    output.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Path of the rotating log file (default: user logs directory)",
    )

    if include_config:
        parser.add_argument(
            "--config",
            type=Path,
            default=None,
            help="key = value configuration file; command line options take precedence",
        )


def default_log_file(name: str) -> Path:
    return USER_LOGS_DIR / f"{name}.log"


def setup_cli_logging(args: Any, level: str = "info") -> StructuredLogger:
    """Configure console (stderr) and rotating file logging.

    Without ``--log-file`` the log goes to the user logs directory.
    """
    log_file = getattr(args, "log_file", None)
    if log_file is None:
        ensure_directories()
        log_file = default_log_file("framecert")
    configure_logging(
        getattr(args, "log_level", None) or level,
        force=True,
        console=True,
        log_file=log_file,
    )
    cli_logger = get_module_logger("CLI")
    cli_logger.debug("Log file: %s", log_file)
    return cli_logger


def log_run_startup(logger: Any, config: Any, duration_s: float, requirements: Any = None) -> None:
    """Record what is about to be measured, so a log file stands on its own."""
    logger.info("=" * 60)
    logger.info("framecert run on %s", config.device_serial)
    logger.info("Layer: %s", config.layer_name)
    logger.info(
        "Polling every %.3fs (%s), %.1fs total",
        config.interval_s, "fixed rate" if config.fixed_rate else "fixed delay", duration_s,
    )
    if requirements is None:
        logger.info("No certification requirements; statistics only")
    else:
        logger.info(
            "Requirements %s: frame time %.3f ms, jank rate <= %.3f, load time %s",
            requirements.name or "(unnamed)",
            requirements.frame_time_ms,
            requirements.jank_rate,
            f"<= {requirements.load_time_ms} ms" if requirements.checks_load_time else "not checked",
        )
    if config.output_dir is not None:
        logger.info("Artifacts: %s", config.output_dir)
    logger.info("=" * 60)


def install_exception_handlers(logger: Any, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
    """Route uncaught exceptions (and unhandled loop errors) to ``logger``."""

    def log_uncaught(exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return
        logger.critical("Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback))

    sys.excepthook = log_uncaught

    if loop is None:
        return

    def log_loop_error(_loop, context):
        message = context.get("message", "Unhandled asyncio exception")
        exception = context.get("exception")
        if exception is not None:
            logger.error("Asyncio exception: %s", message, exc_info=exception)
        else:
            logger.error("Asyncio error: %s, context: %s", message, context)

    loop.set_exception_handler(log_loop_error)


def install_signal_handlers(stop_event: asyncio.Event, loop: asyncio.AbstractEventLoop) -> None:
    """SIGINT/SIGTERM end the run early; results are still evaluated."""
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Not available on Windows event loops
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop_event.set)

"""
Logging for auctionhouse.

Every subsystem logs under the "auctionhouse" namespace
("auctionhouse.services.dutch", "auctionhouse.tracker", ...). Console
output is colored with colorlog; a plain-text file can be added for
long-running watchers.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

import colorlog

ROOT = "auctionhouse"
LOG_FILE = "auctionhouse.log"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}

_configured = False


def resolve_level(level: Union[int, str]) -> int:
    """Accept a level number or a name such as "debug"."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return value


def _console_handler() -> logging.Handler:
    handler = colorlog.StreamHandler(sys.stderr)
    handler.setFormatter(colorlog.ColoredFormatter(
        "%(log_color)s%(asctime)s %(levelname)-8s%(reset)s %(name)s: %(message)s",
        datefmt=DATE_FORMAT,
        log_colors=LOG_COLORS,
    ))
    return handler


def _file_handler(log_dir: Path) -> logging.Handler:
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_dir / LOG_FILE)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt=DATE_FORMAT,
    ))
    return handler


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_dir: Optional[str] = None,
    log_to_file: bool = False,
    force: bool = False,
) -> logging.Logger:
    """
    Attach handlers to the package logger.

    Args:
        level: Level number or name
        log_dir: Directory for the log file (default ./logs)
        log_to_file: Also write to log_dir/auctionhouse.log
        force: Replace handlers installed by an earlier call

    Returns:
        The package logger
    """
    global _configured

    root = logging.getLogger(ROOT)
    if _configured and not force:
        return root

    level = resolve_level(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    handlers = [_console_handler()]
    if log_to_file:
        handlers.append(_file_handler(Path(log_dir) if log_dir else Path("logs")))
    for handler in handlers:
        handler.setLevel(level)
        root.addHandler(handler)

    root.setLevel(level)
    _configured = True
    return root


def get_logger(name: str) -> logging.Logger:
    """Logger for a subsystem, e.g. get_logger("storage")."""
    if not _configured:
        setup_logging()
    if name == ROOT or name.startswith(ROOT + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT}.{name}")

"""Loguru setup for the Study Buddy server.

`setup_logging()` is called once by the CLI before anything else logs.
Console output goes to stderr at a level picked from --verbose/--quiet;
everything at DEBUG and above also lands in a size-rotated file under
~/.studybuddy/logs so rate-limit rejections and upstream failures can be
traced after the fact.
"""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

LOG_FILE_NAME = "studybuddy.log"

_STDERR_FORMAT = (
    "<green>{time:HH:mm:ss}</green> <level>{level:<7}</level> "
    "<cyan>{name}</cyan> {message}"
)
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} {level:<7} {name}:{line} {message}"


def _console_level(verbose: bool, quiet: bool) -> str:
    # quiet wins when both flags are given
    if quiet:
        return "WARNING"
    return "DEBUG" if verbose else "INFO"


def setup_logging(
    verbose: bool = False,
    quiet: bool = False,
    log_dir: Path | None = None,
) -> Path:
    """Replace loguru's default sink with a console sink and a rotating file sink.

    Returns the path of the log file.
    """
    directory = log_dir or Path.home() / ".studybuddy" / "logs"
    directory.mkdir(parents=True, exist_ok=True)
    log_file = directory / LOG_FILE_NAME

    logger.remove()
    logger.add(
        sys.stderr,
        level=_console_level(verbose, quiet),
        format=_STDERR_FORMAT,
        colorize=True,
    )
    logger.add(
        log_file,
        level="DEBUG",
        format=_FILE_FORMAT,
        rotation="10 MB",
        retention=5,
        encoding="utf-8",
        enqueue=True,
    )
    return log_file

"""
Reusable logging and console output setup for all parts of the project.

Functions:
    setup_logging       - Configure and return the root logger.
    set_print_logger    - Set the logger used by the print helpers.
    print_and_log       - Print to stdout and log an info message.
    print_json_and_log  - Print a JSON document to stdout and log it.
    print_error         - Print to stderr and log an error message.
"""

import json
import logging
import os
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape

# Module-level variable to hold the logger for the print helpers
_print_logger: Optional[logging.Logger] = None

console = Console(highlight=False, emoji=False)
err_console = Console(stderr=True, highlight=False, emoji=False)


def setup_logging(app_name: str = "foldertree", loglevel: int | str = logging.INFO,
                  logfile: Optional[str] = None) -> logging.Logger:
    """
    Set up logging for the application.
    - Logs go to ``logfile`` if given, else to ~/.<app_name>/log.txt.
      Environment overrides are resolved by common.settings, not here.
    Returns the configured logger.
    """
    logger = logging.getLogger()
    if isinstance(loglevel, str):
        loglevel = logging.getLevelName(loglevel.upper())
        if not isinstance(loglevel, int):
            raise ValueError(f"Unknown log level: {loglevel}")
    logger.setLevel(loglevel)

    if not logfile:
        log_dir = os.path.expanduser(f"~/.{app_name}")
        os.makedirs(log_dir, exist_ok=True)
        logfile = os.path.join(log_dir, "log.txt")
    formatter = logging.Formatter(f'%(asctime)s %(levelname)s %(process)d [{app_name}] %(name)s: %(message)s')
    handler = logging.FileHandler(logfile)

    # Remove any existing handlers
    for h in logger.handlers[:]:
        logger.removeHandler(h)
        h.close()

    handler.setFormatter(formatter)
    logger.addHandler(handler)
    set_print_logger(logger)
    logger.debug(f"Logger initialized, writing to {logfile}")
    return logger


def set_print_logger(logger: logging.Logger):
    """
    Set the logger to be used by print_and_log and print_error.
    """
    global _print_logger
    _print_logger = logger


def print_and_log(message: str, **kwargs):
    """
    Print to console (rich markup allowed) and log as info.
    """
    console.print(message, soft_wrap=True, **kwargs)
    if _print_logger is not None:
        _print_logger.info(message)


def print_json_and_log(data: Any, indent: int = 2):
    """
    Print ``data`` as JSON on stdout, untouched by markup, and log it as info.
    """
    text = json.dumps(data, indent=indent)
    console.print(text, markup=False, soft_wrap=True)
    if _print_logger is not None:
        _print_logger.info(json.dumps(data))


def print_error(message: str, **kwargs):
    """
    Print and log an error message (stderr and error level).
    """
    err_console.print(f'[bold red]{escape(message)}[/bold red]', soft_wrap=True, **kwargs)
    if _print_logger is not None:
        _print_logger.error(message)

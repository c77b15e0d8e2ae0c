"""
Reusable logging and print setup for all parts of the project.

Functions:
    setup_logging      - Configure and return the root logger.
    null_logger        - Logger that discards everything (default for library code).
    set_print_logger   - Set the logger for print_and_log and print_error.
    print_and_log      - Print (rich) and log an info message.
    print_error        - Print (rich) and log an error message.
"""

import logging
import logging.handlers
import os
import sys
from typing import Optional

from rich import print as rich_print

# Module-level variable to hold the logger for print_and_log and print_error
_print_logger: Optional[logging.Logger] = None

NULL_LOGGER_NAME = "vcloud_discovery.null"


def setup_logging(app_name: str = "vcloud_discovery", daemon: bool = False, loglevel: int = logging.INFO, logfile: Optional[str] = None) -> logging.Logger:
    """
    Set up logging for the application.
    - If daemon=True, logs to syslog (Linux only), falling back to stderr.
    - Otherwise, logs to a file in ~/.<app_name>/log.txt or to a custom logfile.
    Returns the configured logger.
    """
    logger = logging.getLogger()
    logger.setLevel(loglevel)
    handler: logging.Handler
    if daemon:
        formatter = logging.Formatter(f'%(asctime)s %(levelname)s %(process)d [{app_name}] %(message)s')
        try:
            handler = logging.handlers.SysLogHandler(address='/dev/log')
        except OSError:
            handler = logging.StreamHandler(sys.stderr)
    else:
        formatter = logging.Formatter('%(asctime)s %(levelname)s %(process)d %(name)s %(message)s')
        if logfile is None:
            log_dir = os.path.expanduser(f"~/.{app_name}")
            os.makedirs(log_dir, exist_ok=True)
            logfile = os.path.join(log_dir, "log.txt")
        handler = logging.FileHandler(logfile)

    # Remove any existing handlers
    for h in logger.handlers[:]:
        logger.removeHandler(h)

    handler.setFormatter(formatter)
    logger.addHandler(handler)
    set_print_logger(logger)
    logger.debug("Logger initialized for %s", app_name)
    return logger


def null_logger() -> logging.Logger:
    """Return a logger that swallows every record, whatever handlers get attached to it."""
    logger = logging.getLogger(NULL_LOGGER_NAME)
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    logger.propagate = False
    logger.disabled = True
    return logger


def set_print_logger(logger: Optional[logging.Logger]):
    """
    Set the logger to be used by print_and_log and print_error.
    setup_logging calls this; pass None to stop mirroring console output.
    """
    global _print_logger
    _print_logger = logger


def print_and_log(message: str, **kwargs):
    """
    Print to console (rich markup allowed) and log as info.
    """
    rich_print(message, **kwargs)
    if _print_logger is not None:
        _print_logger.info(message)


def print_error(message: str, **kwargs):
    """
    Print and log an error message (stderr and error level), using the logger set by set_print_logger.
    """
    rich_print(f'[bold red]{message}[/bold red]', file=sys.stderr, **kwargs)
    if _print_logger is not None:
        _print_logger.error(message)

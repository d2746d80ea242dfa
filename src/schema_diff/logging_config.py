"""Logging setup for the command line."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(
    verbose: bool = False,
    log_file: str | Path | None = None,
    console: Console | None = None,
) -> None:
    """Install handlers on the ``schema_diff`` logger.

    Args:
        verbose: DEBUG when set, WARNING otherwise.
        log_file: Optional rotating log file (INFO and above, 5 MB x 3).
        console: Console the rich handler writes to (default: stderr).
    """
    level = logging.DEBUG if verbose else logging.WARNING

    logger = logging.getLogger("schema_diff")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    rich_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=verbose,
        rich_tracebacks=verbose,
    )
    rich_handler.setLevel(level)
    logger.addHandler(rich_handler)

    if log_file is not None:
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
        )
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        file_handler.setLevel(logging.INFO)
        logger.addHandler(file_handler)

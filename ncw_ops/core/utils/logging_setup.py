"""
Logging Setup Utilities.

Console output goes through rich; occ and git output is logged verbatim, so
markup is disabled on the console handler. A log file, when requested,
always receives DEBUG records including every host command line.
"""

import logging
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

CONSOLE_HANDLER_NAME = "ncw-ops-console"


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
) -> None:
    """
    Configure logging for the ncw-ops commands.

    Args:
        level: Console logging level
        log_file: Optional file receiving DEBUG-level records
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if log_file else level)
    root_logger.handlers.clear()

    console_handler = RichHandler(
        show_time=False,
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    console_handler.set_name(CONSOLE_HANDLER_NAME)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        root_logger.addHandler(file_handler)


def set_console_level(level: int) -> None:
    """
    Change the threshold of the console handler only.

    Used by ``--quiet``: informational progress is hidden while warnings,
    errors and the log file are unaffected.
    """
    for handler in logging.getLogger().handlers:
        if handler.get_name() == CONSOLE_HANDLER_NAME:
            handler.setLevel(level)

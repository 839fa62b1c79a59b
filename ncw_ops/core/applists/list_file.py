"""
Flat app list files (``disabled-apps.list``, ``always-enabled-apps.list``, ...).

One app identifier per line; ``#`` comments and blank lines are ignored.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from ncw_ops.core.errors import MissingInputError

logger = logging.getLogger(__name__)


def parse_app_list(lines: Iterable[str]) -> list[str]:
    """
    Extract app identifiers from the lines of a list file.

    Args:
        lines: Raw lines (with or without trailing newlines)

    Returns:
        App identifiers in file order
    """
    apps = []
    for line in lines:
        entry = line.strip()
        if not entry or entry.startswith("#"):
            continue
        apps.append(entry)
    return apps


def read_app_list(path: Path, required: bool = False) -> list[str]:
    """
    Read a list file.

    A missing optional file is an empty list; a missing required one raises
    :class:`MissingInputError`.
    """
    path = Path(path)
    if not path.is_file():
        if required:
            raise MissingInputError(f"App list file not found: {path}")
        logger.debug("App list %s not found, treating as empty", path)
        return []
    return parse_app_list(path.read_text(encoding="utf-8").splitlines())

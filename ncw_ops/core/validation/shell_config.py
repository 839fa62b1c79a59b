"""Policy check: shell scripts must not call ``occ config:system:set``."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

CONFIG_COMMAND = "config:system:set"

# Lines that merely talk about the command (detection logic, log messages)
_IGNORED = (
    re.compile(rf"Check if this is a {CONFIG_COMMAND}"),
    re.compile(rf"log_warning.*{CONFIG_COMMAND}"),
    re.compile(rf"if.*{CONFIG_COMMAND}"),
)
_SKIPPED_DIRS = {".git", "node_modules", "vendor"}


@dataclass
class ShellConfigViolation:
    path: Path
    line_number: int
    content: str


def _is_ignored(line: str) -> bool:
    return any(pattern.search(line) for pattern in _IGNORED)


def find_system_config_violations(
    root: Path,
    skip_names: tuple[str, ...] = ("check-shell-config.sh",),
) -> list[ShellConfigViolation]:
    """Scan every ``*.sh`` file below ``root`` for the forbidden command."""
    root = Path(root)
    violations = []
    for path in sorted(root.rglob("*.sh")):
        if not path.is_file() or path.name in skip_names:
            continue
        if _SKIPPED_DIRS.intersection(path.relative_to(root).parts):
            continue
        text = path.read_text(encoding="utf-8", errors="replace")
        for number, line in enumerate(text.splitlines(), start=1):
            if CONFIG_COMMAND in line and not _is_ignored(line):
                violations.append(ShellConfigViolation(path, number, line.strip()))
    return violations

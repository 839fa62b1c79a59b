"""
Release packaging: ``version.json``, config partials and the zip archive.
"""

from __future__ import annotations

import fnmatch
import json
import logging
import re
import shutil
import subprocess
import time
import zipfile
from collections.abc import Sequence
from pathlib import Path

from ncw_ops.core.errors import HostCommandError, MissingDependencyError, MissingInputError

logger = logging.getLogger(__name__)

DEFAULT_INCLUDE = [
    "IONOS/",
    "3rdparty/",
    "apps/",
    "apps-external/",
    "config/",
    "core/",
    "dist/",
    "lib/",
    "ocs/",
    "ocs-provider/",
    "resources/",
    "themes/",
    "AUTHORS",
    "composer.json",
    "composer.lock",
    "console.php",
    "COPYING",
    "cron.php",
    "index.html",
    "index.php",
    "occ",
    "public.php",
    "remote.php",
    "robots.txt",
    "status.php",
    "version.php",
    "version.json",
    ".htaccess",
]

DEFAULT_EXCLUDE = [
    "apps/theming/img/background/**",
    "apps/*/tests/**",
    "apps-*/*/.git",
    "apps-*/*/composer.json",
    "apps-*/*/composer.lock",
    "apps-*/*/composer.phar",
    "apps-*/*/.tx",
    "apps-*/*/.github",
    "apps-*/*/src**",
    "apps-*/*/node_modules**",
    "apps-*/*/vendor-bin**",
    "apps-*/*/tests**",
    "**/cypress/**",
    "*.git*",
    "*.editorconfig*",
    ".tx",
    "composer.json",
    "composer.lock",
    "composer.phar",
    "package.json",
    "package-lock.json",
]

_OC_VERSION = re.compile(r"\$OC_Version\s*=\s*(?:array\s*\(|\[)([^\])]*)[\])]")


def parse_nc_version(version_php: str) -> str:
    """``$OC_Version = array(31, 0, 5, 1);`` -> ``"31.0.5.1"``."""
    match = _OC_VERSION.search(version_php)
    if not match:
        raise MissingInputError("No $OC_Version found in version.php")
    parts = [part.strip().strip("'\"") for part in match.group(1).split(",")]
    return ".".join(part for part in parts if part)


def git_short_ref(root: Path) -> str:
    if shutil.which("git") is None:
        raise MissingDependencyError("git")
    completed = subprocess.run(
        ["git", "rev-parse", "--short", "HEAD"],
        cwd=str(root),
        capture_output=True,
        text=True,
        check=False,
    )
    if completed.returncode != 0:
        raise HostCommandError(["git", "rev-parse", "--short", "HEAD"], completed.returncode, completed.stderr)
    return completed.stdout.strip()


def build_version_info(root: Path, build_ref: str, now: float | None = None) -> dict[str, str]:
    version_php = Path(root) / "version.php"
    if not version_php.is_file():
        raise MissingInputError(f"version.php not found: {version_php}")
    return {
        "buildDate": str(int(time.time() if now is None else now)),
        "buildRef": build_ref,
        "ncVersion": parse_nc_version(version_php.read_text(encoding="utf-8")),
    }


def write_version_json(root: Path, build_ref: str | None = None, now: float | None = None) -> Path:
    """
    Generate ``version.json`` in the Nextcloud root.

    Args:
        root: Nextcloud root
        build_ref: Build reference; defaults to the short git HEAD
        now: Build timestamp; defaults to the current time

    Returns:
        Path of the written file
    """
    root = Path(root)
    info = build_version_info(root, build_ref or git_short_ref(root), now)
    target = root / "version.json"
    target.write_text(json.dumps(info, indent=2) + "\n", encoding="utf-8")
    logger.info("version.json created: %s", info)
    return target


def add_config_partials(source_dir: Path, config_dir: Path) -> list[Path]:
    """Copy ``*.config.php`` partials into the host's config directory."""
    source_dir = Path(source_dir)
    if not source_dir.is_dir():
        raise MissingInputError(f"Config partials directory not found: {source_dir}")
    config_dir = Path(config_dir)
    config_dir.mkdir(parents=True, exist_ok=True)

    copied = []
    for partial in sorted(source_dir.glob("*.config.php")):
        copied.append(Path(shutil.copy2(partial, config_dir / partial.name)))
        logger.info("Copied %s", partial.name)
    return copied


def _is_excluded(relative: str, exclude: Sequence[str], removed_apps: set[str]) -> bool:
    parts = relative.split("/")
    if len(parts) >= 2 and parts[0].startswith("apps") and parts[1] in removed_apps:
        return True
    return any(fnmatch.fnmatchcase(relative, pattern) for pattern in exclude)


def _iter_files(root: Path, entry: str):
    path = root / entry
    if path.is_file():
        yield path
    elif path.is_dir():
        for child in sorted(path.rglob("*")):
            if child.is_file():
                yield child


def create_release_zip(
    root: Path,
    target: Path,
    include: Sequence[str] = DEFAULT_INCLUDE,
    exclude: Sequence[str] = DEFAULT_EXCLUDE,
    removed_apps: Sequence[str] = (),
) -> int:
    """
    Zip the deployable tree.

    Args:
        root: Nextcloud root
        target: Archive path
        include: Files and directories (relative to ``root``) to add
        exclude: zip-style exclusion globs matched against relative paths
        removed_apps: Apps whose directories are left out entirely

    Returns:
        Number of files written
    """
    root = Path(root)
    removed = set(removed_apps)
    count = 0

    with zipfile.ZipFile(target, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for entry in include:
            if not (root / entry).exists():
                logger.warning("zip: name not matched: %s", entry)
                continue
            for path in _iter_files(root, entry):
                relative = path.relative_to(root).as_posix()
                if _is_excluded(relative, exclude, removed):
                    continue
                archive.write(path, relative)
                count += 1

    logger.info("Wrote %d files to %s", count, target)
    return count

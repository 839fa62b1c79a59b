"""
External apps validation.

Checks that every configured app is a checked-out git submodule under
``apps-external/`` and, for every submodule present, infers the build
category from its ``composer.json`` / ``package.json`` and compares it with
the declared one.
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from ncw_ops.core.errors import HostCommandError, MissingDependencyError
from ncw_ops.core.validation.uniqueness import find_hardcoded_targets
from ncw_ops.schemas.config import AppCategories

logger = logging.getLogger(__name__)

BIN_PLUGIN = "bamarni/composer-bin-plugin"

# Categories accepted as declared regardless of what the files suggest
_ALWAYS_ACCEPTED = {"composer_no_scripts", "composer_no_scripts_with_npm", "nothing_to_build", "special"}


@dataclass
class SubmoduleStatus:
    flag: str
    commit: str
    path: str

    @property
    def name(self) -> str:
        return Path(self.path).name

    @property
    def problem(self) -> str | None:
        return {
            "-": "submodule not initialized",
            "U": "submodule has merge conflicts",
        }.get(self.flag)

    @property
    def has_local_changes(self) -> bool:
        return self.flag == "+"


def parse_submodule_status(output: str) -> list[SubmoduleStatus]:
    """Parse ``git submodule status`` lines such as ``-abc123 apps-external/foo``."""
    statuses = []
    for line in output.splitlines():
        if not line.strip():
            continue
        flag = line[0]
        parts = line[1:].split()
        if len(parts) < 2:
            continue
        statuses.append(SubmoduleStatus(flag=flag, commit=parts[0], path=parts[1]))
    return statuses


class GitProbe(Protocol):
    def submodule_status(self) -> list[SubmoduleStatus]: ...

    def is_submodule(self, path: str) -> bool: ...


class GitSubmodules:
    """``git submodule status`` of the repository at ``root`` (read once)."""

    def __init__(self, root: Path, git: str = "git"):
        self.root = Path(root)
        self.git = git
        if shutil.which(git) is None:
            raise MissingDependencyError(git)
        self._statuses: list[SubmoduleStatus] | None = None

    def submodule_status(self) -> list[SubmoduleStatus]:
        if self._statuses is None:
            completed = subprocess.run(
                [self.git, "submodule", "status"],
                cwd=str(self.root),
                capture_output=True,
                text=True,
                check=False,
            )
            if completed.returncode != 0:
                raise HostCommandError(
                    ["git", "submodule", "status"], completed.returncode, completed.stderr
                )
            self._statuses = parse_submodule_status(completed.stdout)
        return self._statuses

    def is_submodule(self, path: str) -> bool:
        wanted = Path(path).as_posix().rstrip("/")
        return any(status.path.rstrip("/") == wanted for status in self.submodule_status())


# ── Marker file analysis ─────────────────────────────────────────────────────


def _read_json(path: Path) -> dict:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        logger.warning("Could not parse %s", path)
        return {}
    return data if isinstance(data, dict) else {}


def needs_no_scripts(composer: dict, composer_text: str) -> bool:
    """``@composer bin`` scripts with the bin plugin only in ``require-dev``."""
    if "@composer bin" not in composer_text:
        return False
    require = composer.get("require") or {}
    require_dev = composer.get("require-dev") or {}
    return BIN_PLUGIN not in require and BIN_PLUGIN in require_dev


def has_build_script(package: dict) -> bool:
    scripts = package.get("scripts")
    if not isinstance(scripts, dict):
        return False
    value = scripts.get("build")
    if isinstance(value, str):
        return value.strip() != ""
    return bool(value)


def recommend_category(
    has_composer: bool,
    has_package: bool,
    has_build: bool,
    no_scripts: bool,
) -> tuple[str | None, str]:
    """
    Infer the build category from the marker files.

    Returns:
        (category or None when the app cannot be built, reasoning)
    """
    if not has_composer:
        return None, "No composer.json found - all apps must have composer.json"
    if no_scripts:
        if has_package and has_build:
            return (
                "composer_no_scripts_with_npm",
                "Has @composer bin command but bamarni plugin only in require-dev + needs npm build",
            )
        return (
            "composer_no_scripts",
            "Has @composer bin command but bamarni plugin only in require-dev - needs --no-scripts flag",
        )
    if not has_package:
        return "composer_only", "Has composer.json but no package.json - PHP-only app"
    if has_build:
        return (
            "full_build",
            "Has composer.json + package.json + build script - requires full build pipeline",
        )
    return (
        "composer_only",
        "Has package.json but no build script - likely dev dependencies only, treat as PHP-only",
    )


@dataclass
class AppAnalysis:
    name: str
    has_composer: bool = False
    has_package: bool = False
    has_build_script: bool = False
    needs_no_scripts: bool = False
    declared: str | None = None
    recommended: str | None = None
    reasoning: str = ""

    @property
    def configured(self) -> bool:
        return self.declared is not None

    @property
    def config_correct(self) -> bool:
        if self.declared is None or self.recommended is None:
            return False
        return self.declared == self.recommended or self.declared in _ALWAYS_ACCEPTED


@dataclass
class ExternalAppsReport:
    submodule_issues: list[tuple[str, str]] = field(default_factory=list)
    submodule_warnings: list[tuple[str, str]] = field(default_factory=list)
    missing: list[tuple[str, str]] = field(default_factory=list)
    unconfigured: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    review: list[str] = field(default_factory=list)
    analyses: list[AppAnalysis] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not (self.submodule_issues or self.missing or self.unconfigured or self.errors)


class ExternalAppsValidator:
    """
    Validate ``apps-external`` against the category lists.

    Args:
        root: Nextcloud root
        categories: Declared app categories
        makefile_text: Makefile used to detect hand-written special rules
        git: Submodule probe
        apps_dir: App folder relative to ``root``
    """

    def __init__(
        self,
        root: Path,
        categories: AppCategories,
        makefile_text: str,
        git: GitProbe,
        apps_dir: str = "apps-external",
    ):
        self.root = Path(root)
        self.categories = categories
        self.special_targets = set(find_hardcoded_targets(makefile_text))
        self.git = git
        self.apps_dir = apps_dir

    def declared_category(self, app: str) -> str | None:
        category = self.categories.category_of(app)
        if category is None and app in self.special_targets:
            return "special"
        return category

    def analyse(self, app: str) -> AppAnalysis:
        app_dir = self.root / self.apps_dir / app
        analysis = AppAnalysis(name=app, declared=self.declared_category(app))

        composer_path = app_dir / "composer.json"
        if composer_path.is_file():
            analysis.has_composer = True
            composer_text = composer_path.read_text(encoding="utf-8", errors="replace")
            analysis.needs_no_scripts = needs_no_scripts(_read_json(composer_path), composer_text)

        package_path = app_dir / "package.json"
        if package_path.is_file():
            analysis.has_package = True
            analysis.has_build_script = has_build_script(_read_json(package_path))

        analysis.recommended, analysis.reasoning = recommend_category(
            analysis.has_composer,
            analysis.has_package,
            analysis.has_build_script,
            analysis.needs_no_scripts,
        )
        return analysis

    def check_submodules(self, report: ExternalAppsReport) -> None:
        logger.info("Checking git submodule status...")
        for status in self.git.submodule_status():
            if status.problem:
                logger.error("%s: %s (%s)", status.name, status.problem, status.commit)
                report.submodule_issues.append((status.name, status.problem))
            elif status.has_local_changes:
                logger.warning("%s: submodule checkout differs from the recorded commit", status.name)
                report.submodule_warnings.append((status.name, "uncommitted changes"))

    def check_configured_apps(self, report: ExternalAppsReport) -> None:
        logger.info("Checking configured apps for missing submodules...")
        for app in dict.fromkeys(self.categories.all_apps()):
            relative = f"{self.apps_dir}/{app}"
            if not (self.root / relative).is_dir():
                report.missing.append((app, "configured but directory does not exist"))
            elif not self.git.is_submodule(relative):
                report.missing.append((app, "configured but not a git submodule"))

    def check_present_apps(self, report: ExternalAppsReport) -> None:
        logger.info("Checking existing submodules for proper configuration...")
        apps_path = self.root / self.apps_dir
        if not apps_path.is_dir():
            return

        for app_dir in sorted(p for p in apps_path.iterdir() if p.is_dir()):
            if not self.git.is_submodule(f"{self.apps_dir}/{app_dir.name}"):
                logger.info("Skipping %s (not a git submodule)", app_dir.name)
                continue

            analysis = self.analyse(app_dir.name)
            report.analyses.append(analysis)

            if analysis.recommended is None:
                report.errors.append(analysis.name)
            if not analysis.configured:
                report.unconfigured.append(analysis.name)
            elif analysis.recommended is not None and not analysis.config_correct:
                report.review.append(analysis.name)

    def validate(self) -> ExternalAppsReport:
        report = ExternalAppsReport()
        self.check_submodules(report)
        self.check_configured_apps(report)
        self.check_present_apps(report)
        return report

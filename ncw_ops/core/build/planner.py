"""
Per-app dependency installation.

Every category maps to a fixed sequence of composer/npm invocations run
inside ``apps-external/<app>``; special apps get their commands from the
``special_builds`` section of the settings.
"""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from ncw_ops.core.errors import HostCommandError, MissingDependencyError, MissingInputError
from ncw_ops.schemas.config import AppCategories

logger = logging.getLogger(__name__)

COMPOSER_INSTALL = ["composer", "install", "--no-dev", "-o"]
COMPOSER_INSTALL_NO_SCRIPTS = [*COMPOSER_INSTALL, "--no-scripts"]
NPM_CI = ["npm", "ci"]
NPM_BUILD = ["npm", "run", "build"]

CATEGORY_COMMANDS: dict[str, list[list[str]]] = {
    "full_build": [COMPOSER_INSTALL, NPM_CI, NPM_BUILD],
    "composer_only": [COMPOSER_INSTALL],
    "composer_no_scripts": [COMPOSER_INSTALL_NO_SCRIPTS],
    "composer_no_scripts_with_npm": [COMPOSER_INSTALL_NO_SCRIPTS, NPM_CI, NPM_BUILD],
    "nothing_to_build": [],
}


@dataclass
class BuildPlan:
    app: str
    category: str
    directory: Path
    commands: list[list[str]] = field(default_factory=list)

    @property
    def target(self) -> str:
        return f"build_{self.app}_app"


class BuildPlanner:
    """
    Turn the category lists into build plans.

    Args:
        categories: Declared app categories
        root: Nextcloud root
        apps_dir: Folder holding the external apps, relative to ``root``
        special_builds: app -> shell command lines for special apps
    """

    def __init__(
        self,
        categories: AppCategories,
        root: Path,
        apps_dir: str = "apps-external",
        special_builds: dict[str, list[str]] | None = None,
    ):
        self.categories = categories
        self.root = Path(root)
        self.apps_dir = apps_dir
        self.special_builds = special_builds or {}

    def plan(self, app: str) -> BuildPlan:
        category = self.categories.category_of(app)
        if category is None:
            raise MissingInputError(f"App '{app}' is not in any build category")

        if category == "special":
            lines = self.special_builds.get(app)
            if lines is None:
                raise MissingInputError(f"Special app '{app}' has no build commands configured")
            commands = [shlex.split(line) for line in lines]
        else:
            commands = [list(command) for command in CATEGORY_COMMANDS[category]]

        return BuildPlan(
            app=app,
            category=category,
            directory=self.root / self.apps_dir / app,
            commands=commands,
        )

    def plan_all(self) -> list[BuildPlan]:
        return [self.plan(app) for app in dict.fromkeys(self.categories.all_apps())]

    def matrix(self) -> list[dict[str, str]]:
        """One entry per app, for CI job matrices."""
        return [
            {
                "name": plan.app,
                "category": plan.category,
                "path": f"{self.apps_dir}/{plan.app}",
            }
            for plan in self.plan_all()
        ]


class CommandRunner:
    """Execute build plans; stops at the first failing command."""

    def __init__(
        self,
        dry_run: bool = False,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ):
        self.dry_run = dry_run
        self._runner = runner

    def execute(self, plan: BuildPlan) -> None:
        logger.info("Building %s (%s)...", plan.app, plan.category)
        if not plan.commands:
            logger.info("Nothing to build for %s", plan.app)
            return
        if not plan.directory.is_dir():
            raise MissingInputError(f"App directory not found: {plan.directory}")

        for command in plan.commands:
            if shutil.which(command[0]) is None:
                raise MissingDependencyError(command[0], f"needed to build {plan.app}")

            logger.info("[%s] %s", plan.app, shlex.join(command))
            if self.dry_run:
                continue

            completed = self._runner(command, cwd=str(plan.directory), check=False)
            if completed.returncode != 0:
                raise HostCommandError(command, completed.returncode)

        logger.info("%s built successfully", plan.app)

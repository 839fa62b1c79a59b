"""
Phase Orchestrator.

Coordinates the two disjoint manifest mutation phases and the surrounding
steps:
1. Build phase (image build): unship disabled apps, register app folders
2. Runtime phase (init container): app states, always-enabled enforcement,
   locking always-enabled apps in shipped.json
3. Configuration of the installed instance
4. Validation of the app categorisation
"""

from __future__ import annotations

import logging
from typing import Any

from rich.console import Console
from rich.table import Table

from ncw_ops.core.analysis.reporter import ValidationReporter
from ncw_ops.core.applists import read_app_list
from ncw_ops.core.configure import Configurator
from ncw_ops.core.enforcement import AlwaysEnabledEnforcer, AppStateManager
from ncw_ops.core.host.occ import HostAdmin
from ncw_ops.core.manifest import ManifestReconciler, ManifestStore
from ncw_ops.core.validation import (
    ExternalAppsValidator,
    GitSubmodules,
    validate_app_list_uniqueness,
)
from ncw_ops.core.validation.external_apps import GitProbe
from ncw_ops.schemas import OpsSettings
from ncw_ops.services import manifest_reconciler, occ_client, read_app_lists, read_makefile

logger = logging.getLogger(__name__)
console = Console()


class OpsOrchestrator:
    """
    Orchestrate the customization phases of a Nextcloud Workspace instance.

    Collaborators are created from the settings on first use unless they
    are injected, which is how the tests run without PHP or git.
    """

    def __init__(
        self,
        config: dict[str, Any],
        host: HostAdmin | None = None,
        store: ManifestStore | None = None,
        git: GitProbe | None = None,
        env: dict[str, str] | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Configuration dictionary as returned by ``load_config``
            host: Host administration capability (default: ``occ`` client)
            store: Manifest store (default: ``core/shipped.json`` on disk)
            git: Submodule probe (default: ``git submodule status``)
            env: Environment for the configurator (default: ``os.environ``)
        """
        self.config = config
        self.settings = OpsSettings.from_config(config)
        self.lists = read_app_lists(self.settings)

        self._host = host
        self._git = git
        self.env = env
        self.reconciler = ManifestReconciler(store) if store is not None else manifest_reconciler(self.settings)
        self.reporter = ValidationReporter(config.get("report_dir"))

        self.results: dict[str, Any] = {}

    @property
    def host(self) -> HostAdmin:
        if self._host is None:
            self._host = occ_client(self.settings)
        return self._host

    @property
    def git(self) -> GitProbe:
        if self._git is None:
            self._git = GitSubmodules(self.settings.nextcloud_root)
        return self._git

    # ── Build phase ──────────────────────────────────────────────────────

    def run_disable_apps(self):
        disabled = read_app_list(self.settings.list_path("disabled_apps"), required=True)
        result = self.reconciler.process_disabled_apps(disabled)
        self.results["apps_disable"] = result
        return result

    def run_ship_app_folders(self, folders: list[str] | None = None):
        result = self.reconciler.ship_apps_from_directories(
            self.settings.nextcloud_root,
            folders or self.settings.shipped_app_folders,
        )
        self.results["shipped_app_folders"] = result
        return result

    def run_build_phase(self) -> dict:
        """
        Image-build manifest edits.

        Returns:
            Results of both steps
        """
        console.print("\n[cyan]Build phase: unshipping disabled apps...[/cyan]")
        self.run_disable_apps()
        console.print("\n[cyan]Build phase: registering app folders in shippedApps...[/cyan]")
        self.run_ship_app_folders()
        return {key: self.results[key] for key in ("apps_disable", "shipped_app_folders")}

    # ── Runtime phase ────────────────────────────────────────────────────

    def run_app_states(self):
        summary = AppStateManager(self.host).apply(
            disabled_apps=self.lists.disabled,
            enabled_core_apps=self.lists.enabled_core,
            always_enabled_apps=self.lists.always_enabled,
            removed_apps=self.lists.removed,
        )
        self.results["app_states"] = summary
        return summary

    def run_enforcement(self):
        enforcer = AlwaysEnabledEnforcer(self.host, self.reconciler, disabled_apps=self.lists.disabled)
        summary = enforcer.enforce(self._always_enabled_apps())
        self.results["enforcement"] = summary
        return summary

    def _always_enabled_apps(self) -> list[str]:
        path = self.settings.list_path("always_enabled_apps")
        if not path.is_file():
            logger.warning("Always-enabled apps list not found at %s, nothing to enforce", path)
        return self.lists.always_enabled

    def run_lock_always_enabled(self):
        result = self.reconciler.lock_always_enabled_apps(self._always_enabled_apps())
        self.results["shipped_json"] = result
        return result

    def run_runtime_phase(self) -> dict:
        """
        Startup/upgrade sequence. Apps are enabled first (so their tables
        exist) and only then locked in shipped.json.
        """
        console.print("\n[cyan]Runtime phase: ensuring app states...[/cyan]")
        self.run_app_states()
        console.print("\n[cyan]Runtime phase: enforcing always-enabled apps...[/cyan]")
        self.run_enforcement()
        console.print("\n[cyan]Runtime phase: locking apps in shipped.json...[/cyan]")
        self.run_lock_always_enabled()
        return {key: self.results[key] for key in ("app_states", "enforcement", "shipped_json")}

    # ── Configuration ────────────────────────────────────────────────────

    def run_configure(self):
        result = Configurator(self.host, self.settings.configure, env=self.env).run()
        self.results["configure"] = result
        return result

    # ── Validation ───────────────────────────────────────────────────────

    def run_uniqueness_validation(self, makefile_text: str | None = None):
        text = read_makefile(self.settings) if makefile_text is None else makefile_text
        report = validate_app_list_uniqueness(
            self.settings.app_categories,
            text,
            self.settings.validation.excluded_hardcoded_targets,
        )
        self.results["uniqueness"] = report
        return report

    def run_external_apps_validation(self, makefile_text: str | None = None):
        text = read_makefile(self.settings) if makefile_text is None else makefile_text
        validator = ExternalAppsValidator(
            self.settings.nextcloud_root,
            self.settings.app_categories,
            text,
            self.git,
            apps_dir=self.settings.paths.external_apps_dir,
        )
        report = validator.validate()
        self.results["external_apps"] = report
        return report

    def run_validation(self, makefile_text: str | None = None) -> dict:
        console.print("\n[cyan]Validating app list uniqueness...[/cyan]")
        self.run_uniqueness_validation(makefile_text)
        console.print("\n[cyan]Validating external apps...[/cyan]")
        self.run_external_apps_validation(makefile_text)
        return {key: self.results[key] for key in ("uniqueness", "external_apps")}

    # ── Summary ──────────────────────────────────────────────────────────

    def print_summary(self, results: dict | None = None) -> None:
        """Print a table with one row per executed step."""
        results = self.results if results is None else results

        table = Table(title="ncw-ops summary")
        table.add_column("Step", style="cyan")
        table.add_column("Result")

        for step, result in results.items():
            table.add_row(step, _describe(result))

        console.print(table)


def _describe(result: Any) -> str:
    if hasattr(result, "ok"):
        return "[green]ok[/green]" if result.ok else "[red]failed[/red]"
    if hasattr(result, "changed") and hasattr(result, "unchanged"):
        return f"{len(result.changed)} changed, {len(result.unchanged)} unchanged"
    if hasattr(result, "disabled") and hasattr(result, "enabled"):
        return f"{len(result.disabled)} disabled, {len(result.enabled)} enabled"
    if hasattr(result, "applied"):
        return f"applied: {', '.join(result.applied) or '-'}; skipped: {', '.join(result.skipped) or '-'}"
    return str(result)

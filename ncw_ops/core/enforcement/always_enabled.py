"""
Runtime always-enabled apps enforcement.

Runs on every pod start and after every upgrade. Apps from
``always-enabled-apps.list`` that are installed but disabled are enabled
through the host CLI, then every app that ends up enabled is added to the
manifest's ``alwaysEnabled`` array so the host refuses to disable it.
Running it twice yields the same state as running it once.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from ncw_ops.core.errors import HostCommandError, MissingInputError
from ncw_ops.core.host.occ import HostAdmin
from ncw_ops.core.manifest.reconciler import ManifestReconciler

logger = logging.getLogger(__name__)


@dataclass
class EnforcementSummary:
    total: int = 0
    enabled: list[str] = field(default_factory=list)
    already_enabled: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    added_to_always_enabled: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def as_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "added_to_always_enabled": len(self.added_to_always_enabled),
            "already_enabled": len(self.already_enabled),
            "newly_enabled": len(self.enabled),
            "not_installed": len(self.missing),
            "failed": len(self.failed),
            "skipped": len(self.skipped),
        }


class AlwaysEnabledEnforcer:
    """
    Force-enable a fixed set of apps and lock them in the manifest.

    Args:
        host: Host administration capability
        reconciler: Manifest reconciler bound to ``core/shipped.json``
        disabled_apps: Apps an operator asked to keep disabable; these are
            never force-enabled even if they also appear in the list
    """

    def __init__(
        self,
        host: HostAdmin,
        reconciler: ManifestReconciler,
        disabled_apps: Sequence[str] = (),
    ):
        self.host = host
        self.reconciler = reconciler
        self.disabled_apps = set(disabled_apps)

    def enforce(self, apps: Sequence[str]) -> EnforcementSummary:
        summary = EnforcementSummary(total=len(apps))

        if not self.host.is_installed():
            raise MissingInputError("Nextcloud is not installed. Please install Nextcloud first.")

        if not apps:
            logger.info("No apps to enforce")
            return summary

        logger.info("Found %d apps to enforce", len(apps))
        listing = self.host.list_apps()

        for app in apps:
            if app in self.disabled_apps:
                logger.warning("App '%s' is also in the disabled apps list, not enforcing it", app)
                summary.skipped.append(app)
                continue

            if not listing.is_installed(app):
                logger.warning("App '%s' is not installed", app)
                summary.missing.append(app)
                continue

            if listing.is_enabled(app):
                logger.debug("App '%s' is already enabled", app)
                summary.already_enabled.append(app)
                continue

            # An administrator may have disabled it on purpose; make the override visible.
            logger.warning("App '%s' is disabled, force-enabling it (always-enabled policy)", app)
            try:
                self.host.enable_app(app)
            except HostCommandError as exc:
                logger.warning("Failed to enable app '%s': %s", app, exc)
                summary.failed.append(app)
                continue
            logger.info("App '%s' enabled successfully", app)
            summary.enabled.append(app)

        in_place = [app for app in apps if app in summary.already_enabled or app in summary.enabled]
        if in_place:
            result = self.reconciler.add_always_enabled_apps(in_place)
            summary.added_to_always_enabled = result.changed

        self.log_summary(summary)
        return summary

    @staticmethod
    def log_summary(summary: EnforcementSummary) -> None:
        logger.info("Always-enabled apps enforcement summary")
        logger.info("Total apps in list: %d", summary.total)
        logger.info("Added to alwaysEnabled: %d", len(summary.added_to_always_enabled))
        logger.info("Already enabled: %d", len(summary.already_enabled))
        logger.info("Newly enabled: %d", len(summary.enabled))
        if summary.missing:
            logger.warning("Not installed: %d (%s)", len(summary.missing), ", ".join(summary.missing))
        if summary.failed:
            logger.warning("Failed to enable: %d (%s)", len(summary.failed), ", ".join(summary.failed))

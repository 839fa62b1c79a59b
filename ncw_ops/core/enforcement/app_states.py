"""
Runtime app-state reconciliation (disable removed/disabled apps, enable
core and always-enabled apps).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from ncw_ops.core.errors import HostCommandError
from ncw_ops.core.host.occ import AppListing, HostAdmin

logger = logging.getLogger(__name__)


@dataclass
class AppStateSummary:
    disabled: list[str] = field(default_factory=list)
    enabled: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


class AppStateManager:
    """Bring the instance's enabled/disabled app sets in line with the lists."""

    def __init__(self, host: HostAdmin):
        self.host = host

    def _disable(self, app: str, listing: AppListing, summary: AppStateSummary) -> None:
        # Failing to disable is fatal: the HostCommandError propagates.
        self.host.disable_app(app)
        listing.disabled[app] = listing.enabled.pop(app, "")
        summary.disabled.append(app)
        logger.info("App '%s' disabled", app)

    def _enable(self, app: str, listing: AppListing, summary: AppStateSummary) -> None:
        try:
            self.host.enable_app(app)
        except HostCommandError as exc:
            logger.warning("Enabling app '%s' failed: %s", app, exc)
            summary.failed.append(app)
            return
        listing.enabled[app] = listing.disabled.pop(app, "")
        summary.enabled.append(app)
        logger.info("App '%s' enabled", app)

    def apply(
        self,
        disabled_apps: Sequence[str] = (),
        enabled_core_apps: Sequence[str] = (),
        always_enabled_apps: Sequence[str] = (),
        removed_apps: Sequence[str] = (),
    ) -> AppStateSummary:
        """
        Apply the desired app states.

        Removed apps go first, then the disabled list; enabling runs last and
        never touches an app from the disabled list.

        Args:
            disabled_apps: Apps that must not be enabled
            enabled_core_apps: Core apps that must be enabled
            always_enabled_apps: External apps that must be enabled
            removed_apps: Apps stripped from the distribution

        Returns:
            Apps disabled, enabled, skipped and failed
        """
        summary = AppStateSummary()
        listing = self.host.list_apps()

        if removed_apps:
            logger.info("Disabling removed apps...")
        for app in removed_apps:
            if listing.is_enabled(app):
                self._disable(app, listing, summary)

        for app in disabled_apps:
            if listing.is_enabled(app):
                logger.info("App '%s' is currently enabled, disabling", app)
                self._disable(app, listing, summary)
            else:
                logger.debug("App '%s' already disabled, skip", app)

        blocked = set(disabled_apps)
        for app in [*enabled_core_apps, *always_enabled_apps]:
            if app in blocked:
                logger.info("App '%s' is in the disabled apps list, skipping", app)
                summary.skipped.append(app)
                continue
            if app in listing.disabled:
                logger.info("App '%s' is currently disabled, enabling", app)
                self._enable(app, listing, summary)
            else:
                logger.debug("App '%s' already enabled, skip", app)

        logger.info("Disabled %d apps.", len(summary.disabled))
        logger.info("Enabled %d apps.", len(summary.enabled))
        return summary

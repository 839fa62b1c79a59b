"""
Shipped manifest reconciliation.

Idempotent set-union and set-difference of app identifiers over the
``shippedApps`` / ``defaultEnabled`` / ``alwaysEnabled`` arrays. The
manifest is validated before and after each batch; a malformed document
aborts the whole run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from ncw_ops.core.errors import MissingInputError
from ncw_ops.core.manifest.store import ManifestStore
from ncw_ops.schemas.manifest import (
    ALWAYS_ENABLED,
    DEFAULT_ENABLED,
    SHIPPED_APPS,
    ShippedManifest,
)

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Apps whose manifest entries changed, and those already in place."""

    changed: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.changed) + len(self.unchanged)

    def record(self, app: str, changed: bool) -> None:
        (self.changed if changed else self.unchanged).append(app)


class ManifestReconciler:
    """
    Apply app-level edits to the shipped manifest.

    Single-app operations return whether the document changed; the store is
    only written when it did.
    """

    def __init__(self, store: ManifestStore):
        self.store = store

    def _mutate(self, edit: Callable[[ShippedManifest], bool]) -> bool:
        manifest = self.store.load()
        changed = edit(manifest)
        if changed:
            self.store.save(manifest)
        return changed

    # ── Single-app operations ─────────────────────────────────────────────

    def ship_app(self, app: str) -> bool:
        """Shipped, default enabled and always enabled."""

        def edit(manifest: ShippedManifest) -> bool:
            added = [manifest.add(name, app) for name in (SHIPPED_APPS, DEFAULT_ENABLED, ALWAYS_ENABLED)]
            return any(added)

        changed = self._mutate(edit)
        logger.info("Shipped app '%s' (shipped, default enabled and always enabled)", app)
        return changed

    def unship_app(self, app: str) -> bool:
        """Remove from ``defaultEnabled`` and ``alwaysEnabled``; ``shippedApps`` is kept."""

        def edit(manifest: ShippedManifest) -> bool:
            removed = manifest.remove(DEFAULT_ENABLED, app) + manifest.remove(ALWAYS_ENABLED, app)
            return removed > 0

        changed = self._mutate(edit)
        logger.info("Unshipped app '%s'", app)
        return changed

    def add_to_always_enabled(self, app: str) -> bool:
        return self._mutate(lambda manifest: manifest.add(ALWAYS_ENABLED, app))

    def add_shipped_app(self, app: str) -> bool:
        return self._mutate(lambda manifest: manifest.add(SHIPPED_APPS, app))

    def lock_app(self, app: str) -> bool:
        """Hide from the UI and prevent disabling (``defaultEnabled`` untouched)."""

        def edit(manifest: ShippedManifest) -> bool:
            shipped = manifest.add(SHIPPED_APPS, app)
            always = manifest.add(ALWAYS_ENABLED, app)
            return shipped or always

        return self._mutate(edit)

    # ── Batches ───────────────────────────────────────────────────────────

    def _batch(self, apps: Iterable[str], operation: Callable[[str], bool]) -> ReconcileResult:
        self.store.validate()
        result = ReconcileResult()
        for app in apps:
            result.record(app, operation(app))
        self.store.validate()
        return result

    def process_disabled_apps(self, apps: Sequence[str]) -> ReconcileResult:
        """Build time: let administrators disable the listed apps."""
        if apps:
            logger.info("Removing %d apps from the default/always enabled lists...", len(apps))
        result = self._batch(apps, self.unship_app)
        logger.info("Processed %d disabled apps (%d changed)", result.total, len(result.changed))
        return result

    def add_always_enabled_apps(self, apps: Sequence[str]) -> ReconcileResult:
        """Union every app into ``alwaysEnabled`` only."""
        return self._batch(apps, self.add_to_always_enabled)

    def lock_always_enabled_apps(self, apps: Sequence[str]) -> ReconcileResult:
        """Runtime: lock already enabled apps into ``shippedApps`` and ``alwaysEnabled``."""
        result = ReconcileResult()
        if not apps:
            logger.info("No apps to add to shipped.json")
            return result

        result = self._batch(apps, self.lock_app)
        for app in result.changed:
            logger.info("Added %s to shipped.json arrays", app)
        logger.info(
            "Locked %d apps in shipped.json; they can no longer be disabled by users",
            result.total,
        )
        return result

    def ship_apps_from_directories(self, root: Path, folders: Sequence[str]) -> ReconcileResult:
        """
        Register every app directory below the given folders in ``shippedApps``.

        New entries are appended at the end of the array so diffs of the
        manifest stay small.

        Args:
            root: Nextcloud root the folders are relative to
            folders: App folder names such as ``apps-external``

        Returns:
            Apps added and apps already present
        """
        if not folders:
            raise MissingInputError("At least one app folder is required")

        root = Path(root)
        self.store.validate()
        result = ReconcileResult()

        for folder in folders:
            folder_path = root / folder
            if not folder_path.is_dir():
                logger.warning("App folder does not exist: %s", folder_path)
                continue

            logger.info("Processing apps from '%s'...", folder)
            added = skipped = 0
            for app_path in sorted(folder_path.iterdir()):
                # hidden entries (.github, .git) are never apps
                if app_path.name.startswith(".") or not app_path.is_dir():
                    continue
                changed = self.add_shipped_app(app_path.name)
                result.record(app_path.name, changed)
                if changed:
                    added += 1
                else:
                    logger.debug("App '%s' already in shippedApps, skipping", app_path.name)
                    skipped += 1
            logger.info(
                "Processed %s: %d apps added, %d apps skipped (already present)",
                folder,
                added,
                skipped,
            )

        self.store.validate()
        return result

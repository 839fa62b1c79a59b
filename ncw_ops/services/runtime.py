"""Runtime wiring – turns resolved settings into real stores and clients.

The core modules only see injected collaborators; this is the one place that
knows where ``shipped.json``, ``occ`` and the list files live.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ncw_ops.core.applists import read_app_list
from ncw_ops.core.errors import MissingInputError
from ncw_ops.core.host.occ import OccClient
from ncw_ops.core.manifest import FileManifestStore, ManifestReconciler
from ncw_ops.schemas import OpsSettings

logger = logging.getLogger(__name__)


@dataclass
class AppLists:
    disabled: list[str] = field(default_factory=list)
    always_enabled: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    enabled_core: list[str] = field(default_factory=list)


def read_app_lists(settings: OpsSettings) -> AppLists:
    lists = AppLists(
        disabled=read_app_list(settings.list_path("disabled_apps")),
        always_enabled=read_app_list(settings.list_path("always_enabled_apps")),
        removed=read_app_list(settings.list_path("removed_apps")),
        enabled_core=read_app_list(settings.list_path("enabled_core_apps")),
    )
    logger.debug("Loaded app lists: %s", lists)
    return lists


def manifest_reconciler(settings: OpsSettings) -> ManifestReconciler:
    return ManifestReconciler(FileManifestStore(settings.shipped_json))


def occ_client(settings: OpsSettings) -> OccClient:
    return OccClient(settings.nextcloud_root, occ_path=settings.occ)


def read_makefile(settings: OpsSettings) -> str:
    if not settings.makefile.is_file():
        raise MissingInputError(f"Makefile not found: {settings.makefile}")
    return settings.makefile.read_text(encoding="utf-8")

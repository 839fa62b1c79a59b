"""Pydantic models for the YAML settings file."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

# Order matters: it is the order the Makefile declares the lists in and the
# order the validators report them in.
CATEGORY_NAMES = (
    "full_build",
    "composer_only",
    "composer_no_scripts",
    "composer_no_scripts_with_npm",
    "nothing_to_build",
    "special",
)


def category_label(category: str) -> str:
    """``composer_only`` -> ``COMPOSER_ONLY_APPS`` (the Makefile variable name)."""
    if category == "special":
        return "SPECIAL_BUILD_APPS"
    return f"{category.upper()}_APPS"


class PathsIn(BaseModel):
    nextcloud_root: str = ".."
    shipped_json: str = "core/shipped.json"
    occ: str = "occ"
    external_apps_dir: str = "apps-external"
    makefile: str = "IONOS/Makefile"
    configs_dir: str = "IONOS/configs"


class ListsIn(BaseModel):
    disabled_apps: str = "disabled-apps.list"
    always_enabled_apps: str = "always-enabled-apps.list"
    removed_apps: str = "removed-apps.txt"
    enabled_core_apps: str = "enabled-core-apps.list"


class AppCategories(BaseModel):
    """The six disjoint build strategies of external apps."""

    full_build: list[str] = Field(default_factory=list)
    composer_only: list[str] = Field(default_factory=list)
    composer_no_scripts: list[str] = Field(default_factory=list)
    composer_no_scripts_with_npm: list[str] = Field(default_factory=list)
    nothing_to_build: list[str] = Field(default_factory=list)
    special: list[str] = Field(default_factory=list)

    def items(self) -> list[tuple[str, list[str]]]:
        return [(name, getattr(self, name)) for name in CATEGORY_NAMES]

    def all_apps(self) -> list[str]:
        """Every configured app in declaration order, duplicates included."""
        return [app for _, apps in self.items() for app in apps]

    def category_of(self, app: str) -> str | None:
        for name, apps in self.items():
            if app in apps:
                return name
        return None


class ValidationIn(BaseModel):
    excluded_hardcoded_targets: list[str] = Field(default_factory=lambda: ["notify_push", "theming"])


class ThemingIn(BaseModel):
    primary_color: str = "#003D8F"
    background_color: str = "#ffffff"


class AdminDelegationIn(BaseModel):
    group: str = ""
    settings_classes: list[str] = Field(default_factory=list)


class ConfigureIn(BaseModel):
    base_apps: list[str] = Field(
        default_factory=lambda: [
            "calendar",
            "activity",
            "contacts",
            "mail",
            "tasks",
            "spreed",
            "ncw_apps_menu",
        ]
    )
    late_apps: list[str] = Field(default_factory=lambda: ["groupfolders"])
    theming: ThemingIn = ThemingIn()
    admin_delegation: AdminDelegationIn = AdminDelegationIn()
    task_types: dict[str, bool] = Field(default_factory=dict)


class PackagingIn(BaseModel):
    package_name: str = "ncw-server.zip"
    include: list[str] = Field(default_factory=list)
    exclude: list[str] = Field(default_factory=list)


class OpsSettings(BaseModel):
    """Typed view of the configuration dictionary returned by ``load_config``."""

    config_dir: str = "."
    paths: PathsIn = PathsIn()
    lists: ListsIn = ListsIn()
    app_categories: AppCategories = AppCategories()
    validation: ValidationIn = ValidationIn()
    shipped_app_folders: list[str] = Field(default_factory=lambda: ["apps-external"])
    special_builds: dict[str, list[str]] = Field(default_factory=dict)
    configure: ConfigureIn = ConfigureIn()
    packaging: PackagingIn = PackagingIn()

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "OpsSettings":
        data = {key: value for key, value in config.items() if value is not None}
        return cls.model_validate(data)

    # ── Resolved paths ────────────────────────────────────────────────────

    @property
    def base_dir(self) -> Path:
        return Path(self.config_dir)

    @property
    def nextcloud_root(self) -> Path:
        return (self.base_dir / self.paths.nextcloud_root).resolve()

    @property
    def shipped_json(self) -> Path:
        return self.nextcloud_root / self.paths.shipped_json

    @property
    def occ(self) -> Path:
        return self.nextcloud_root / self.paths.occ

    @property
    def makefile(self) -> Path:
        return self.nextcloud_root / self.paths.makefile

    @property
    def configs_dir(self) -> Path:
        return self.nextcloud_root / self.paths.configs_dir

    def list_path(self, name: str) -> Path:
        return self.base_dir / getattr(self.lists, name)

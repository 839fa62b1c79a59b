"""Schema package – re-exports all public symbols for convenient imports."""

from __future__ import annotations

from ncw_ops.schemas.config import (
    CATEGORY_NAMES,
    AppCategories,
    ConfigureIn,
    OpsSettings,
    PackagingIn,
    category_label,
)
from ncw_ops.schemas.manifest import (
    ALWAYS_ENABLED,
    DEFAULT_ENABLED,
    MANIFEST_FIELDS,
    SHIPPED_APPS,
    ShippedManifest,
)

__all__ = [
    "ALWAYS_ENABLED",
    "AppCategories",
    "CATEGORY_NAMES",
    "ConfigureIn",
    "DEFAULT_ENABLED",
    "MANIFEST_FIELDS",
    "OpsSettings",
    "PackagingIn",
    "SHIPPED_APPS",
    "ShippedManifest",
    "category_label",
]

"""
App list uniqueness validation.

Each external app belongs to exactly one build category. Apps in the five
dynamic categories are built by the generic ``build_%_app`` rule and must not
have a hand-written ``build_<app>_app`` target; apps in the special category
must have one.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from ncw_ops.schemas.config import AppCategories, category_label

logger = logging.getLogger(__name__)

HARDCODED_TARGET = re.compile(r"^build_([a-z_]+)_app:", re.MULTILINE)
DEFAULT_EXCLUDED_TARGETS = ("notify_push", "theming")


def find_hardcoded_targets(makefile_text: str) -> list[str]:
    """App names of every ``build_<app>_app:`` rule, in file order."""
    targets = []
    for match in HARDCODED_TARGET.finditer(makefile_text):
        if match.group(1) not in targets:
            targets.append(match.group(1))
    return targets


@dataclass
class DuplicateEntry:
    app: str
    categories: list[str]

    def describe(self) -> str:
        labels = " ".join(category_label(name) for name in self.categories)
        return f'App "{self.app}" appears in multiple lists: {labels}'


@dataclass
class UniquenessReport:
    duplicates: list[DuplicateEntry] = field(default_factory=list)
    repeated: list[tuple[str, str]] = field(default_factory=list)
    conflicting_targets: list[str] = field(default_factory=list)
    missing_special_targets: list[str] = field(default_factory=list)
    hardcoded_targets: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not (
            self.duplicates
            or self.repeated
            or self.conflicting_targets
            or self.missing_special_targets
        )


def validate_app_list_uniqueness(
    categories: AppCategories,
    makefile_text: str,
    excluded_targets: Iterable[str] = DEFAULT_EXCLUDED_TARGETS,
) -> UniquenessReport:
    """
    Cross-check the category lists against each other and the Makefile.

    Args:
        categories: The six category lists
        makefile_text: Contents of the Makefile holding hand-written rules
        excluded_targets: Hand-written targets exempt from the conflict check

    Returns:
        Report listing every problem found
    """
    report = UniquenessReport(hardcoded_targets=find_hardcoded_targets(makefile_text))

    logger.info("Checking for duplicate apps across lists...")
    memberships: dict[str, list[str]] = {}
    for name, apps in categories.items():
        seen_here = set()
        for app in apps:
            if app in seen_here:
                report.repeated.append((app, name))
                continue
            seen_here.add(app)
            memberships.setdefault(app, []).append(name)

    for app, names in memberships.items():
        if len(names) > 1:
            report.duplicates.append(DuplicateEntry(app=app, categories=names))

    logger.info("Checking for hardcoded build targets that conflict with app lists...")
    excluded = set(excluded_targets)
    dynamic_apps = {
        app for name, apps in categories.items() if name != "special" for app in apps
    }
    for target in report.hardcoded_targets:
        if target in excluded:
            continue
        if target in dynamic_apps:
            report.conflicting_targets.append(target)

    logger.info("Checking that special build apps have corresponding hardcoded targets...")
    for app in categories.special:
        if app not in report.hardcoded_targets:
            report.missing_special_targets.append(app)

    return report

from ncw_ops.core.validation.external_apps import (
    AppAnalysis,
    ExternalAppsReport,
    ExternalAppsValidator,
    GitSubmodules,
    SubmoduleStatus,
    parse_submodule_status,
    recommend_category,
)
from ncw_ops.core.validation.shell_config import ShellConfigViolation, find_system_config_violations
from ncw_ops.core.validation.uniqueness import (
    DuplicateEntry,
    UniquenessReport,
    find_hardcoded_targets,
    validate_app_list_uniqueness,
)

__all__ = [
    "AppAnalysis",
    "DuplicateEntry",
    "ExternalAppsReport",
    "ExternalAppsValidator",
    "GitSubmodules",
    "ShellConfigViolation",
    "SubmoduleStatus",
    "UniquenessReport",
    "find_hardcoded_targets",
    "find_system_config_violations",
    "parse_submodule_status",
    "recommend_category",
    "validate_app_list_uniqueness",
]

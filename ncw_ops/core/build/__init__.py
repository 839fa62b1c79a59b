from ncw_ops.core.build.packaging import (
    DEFAULT_EXCLUDE,
    DEFAULT_INCLUDE,
    add_config_partials,
    build_version_info,
    create_release_zip,
    parse_nc_version,
    write_version_json,
)
from ncw_ops.core.build.planner import BuildPlan, BuildPlanner, CommandRunner

__all__ = [
    "BuildPlan",
    "BuildPlanner",
    "CommandRunner",
    "DEFAULT_EXCLUDE",
    "DEFAULT_INCLUDE",
    "add_config_partials",
    "build_version_info",
    "create_release_zip",
    "parse_nc_version",
    "write_version_json",
]

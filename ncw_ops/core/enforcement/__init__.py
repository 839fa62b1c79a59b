from ncw_ops.core.enforcement.always_enabled import AlwaysEnabledEnforcer, EnforcementSummary
from ncw_ops.core.enforcement.app_states import AppStateManager, AppStateSummary

__all__ = [
    "AlwaysEnabledEnforcer",
    "AppStateManager",
    "AppStateSummary",
    "EnforcementSummary",
]

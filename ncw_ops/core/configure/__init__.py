from ncw_ops.core.configure.configurator import (
    ConfigureResult,
    Configurator,
    parse_admin_delegations,
)

__all__ = ["ConfigureResult", "Configurator", "parse_admin_delegations"]

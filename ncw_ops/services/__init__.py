"""Services package – re-exports all public service functions."""

from __future__ import annotations

from ncw_ops.services.runtime import (
    AppLists,
    manifest_reconciler,
    occ_client,
    read_app_lists,
    read_makefile,
)

__all__ = [
    "AppLists",
    "manifest_reconciler",
    "occ_client",
    "read_app_lists",
    "read_makefile",
]

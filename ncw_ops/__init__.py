"""Top-level ncw_ops package.

Sub-packages
------------
ncw_ops.cli
    click entry point (``ncw-ops``) and the dependency doctor
ncw_ops.core
    Manifest reconciliation, host administration, enforcement,
    configuration, validation, build and packaging logic, and the user
    and mail-account support actions
ncw_ops.schemas
    Pydantic models for the shipped manifest and the YAML settings
ncw_ops.services
    Wiring of real file paths and the ``occ`` client into the core
"""

from __future__ import annotations

__version__ = "0.1.0"

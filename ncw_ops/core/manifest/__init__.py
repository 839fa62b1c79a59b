from ncw_ops.core.manifest.reconciler import ManifestReconciler, ReconcileResult
from ncw_ops.core.manifest.store import (
    FileManifestStore,
    InMemoryManifestStore,
    ManifestStore,
    parse_manifest,
)

__all__ = [
    "FileManifestStore",
    "InMemoryManifestStore",
    "ManifestReconciler",
    "ManifestStore",
    "ReconcileResult",
    "parse_manifest",
]

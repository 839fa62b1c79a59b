"""
Shipped manifest persistence.

Writes are atomic from a reader's point of view: the new document goes to
``shipped.json.tmp``, is re-parsed, and only then renamed over the original.
There is no locking; build steps and the init container are single writers.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError

from ncw_ops.core.errors import ManifestIntegrityError, MissingInputError
from ncw_ops.schemas.manifest import ShippedManifest

logger = logging.getLogger(__name__)


class ManifestStore(Protocol):
    def load(self) -> ShippedManifest: ...

    def save(self, manifest: ShippedManifest) -> None: ...

    def validate(self) -> None: ...


def parse_manifest(text: str, source: str) -> ShippedManifest:
    """
    Parse manifest text, turning every kind of malformation into one error.

    Raises:
        ManifestIntegrityError: If the text is not a JSON object with string
            arrays in the three app fields
    """
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ManifestIntegrityError(f"Invalid JSON in {source}: {exc}") from exc

    if not isinstance(document, dict):
        raise ManifestIntegrityError(f"Invalid JSON in {source}: top level is not an object")

    try:
        return ShippedManifest.from_document(document)
    except ValidationError as exc:
        raise ManifestIntegrityError(f"Unexpected manifest structure in {source}: {exc}") from exc


class FileManifestStore:
    """``core/shipped.json`` on disk."""

    def __init__(self, path: Path):
        self.path = Path(path)

    @property
    def temp_path(self) -> Path:
        return self.path.with_name(self.path.name + ".tmp")

    def load(self) -> ShippedManifest:
        if not self.path.is_file():
            raise MissingInputError(f"shipped.json not found: {self.path}")
        return parse_manifest(self.path.read_text(encoding="utf-8"), str(self.path))

    def validate(self) -> None:
        self.load()

    def save(self, manifest: ShippedManifest) -> None:
        temp_path = self.temp_path
        temp_path.write_text(manifest.to_json(), encoding="utf-8")

        try:
            parse_manifest(temp_path.read_text(encoding="utf-8"), str(temp_path))
        except ManifestIntegrityError:
            temp_path.unlink(missing_ok=True)
            logger.error("Refusing to replace %s with an invalid document", self.path)
            raise

        os.replace(temp_path, self.path)
        logger.debug("Wrote %s", self.path)


class InMemoryManifestStore:
    """
    Manifest held in a plain mapping.

    Saving round-trips through the same JSON serialisation as the file
    store, so tests see exactly what would have been written.
    """

    def __init__(self, document: dict[str, Any] | None = None):
        if document is None:
            document = {"shippedApps": [], "defaultEnabled": [], "alwaysEnabled": []}
        self.document = copy.deepcopy(document)
        self.writes = 0

    def load(self) -> ShippedManifest:
        return parse_manifest(json.dumps(self.document), "<memory>")

    def validate(self) -> None:
        self.load()

    def save(self, manifest: ShippedManifest) -> None:
        self.document = parse_manifest(manifest.to_json(), "<memory>").to_document()
        self.writes += 1

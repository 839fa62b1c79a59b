"""Pydantic model of the host's ``core/shipped.json`` manifest."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

SHIPPED_APPS = "shippedApps"
DEFAULT_ENABLED = "defaultEnabled"
ALWAYS_ENABLED = "alwaysEnabled"

MANIFEST_FIELDS = (SHIPPED_APPS, DEFAULT_ENABLED, ALWAYS_ENABLED)

_ATTRIBUTES = {
    SHIPPED_APPS: "shipped_apps",
    DEFAULT_ENABLED: "default_enabled",
    ALWAYS_ENABLED: "always_enabled",
}


class ShippedManifest(BaseModel):
    """
    The three app arrays of the shipped manifest plus any vendor keys.

    ``shippedApps`` hides apps from the app management UI, ``defaultEnabled``
    is only read on fresh installs and ``alwaysEnabled`` is checked on every
    enable/disable operation. Unknown keys (``core-version``, ...) are kept as
    pydantic extras and written back in their original order.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    shipped_apps: list[str] = Field(default_factory=list, alias=SHIPPED_APPS)
    default_enabled: list[str] = Field(default_factory=list, alias=DEFAULT_ENABLED)
    always_enabled: list[str] = Field(default_factory=list, alias=ALWAYS_ENABLED)

    _key_order: list[str] = PrivateAttr(default_factory=list)

    # ── Construction / serialisation ──────────────────────────────────────

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "ShippedManifest":
        manifest = cls.model_validate(document)
        manifest._key_order = list(document)
        return manifest

    def to_document(self) -> dict[str, Any]:
        data = self.model_dump(by_alias=True)
        ordered = {key: data[key] for key in self._key_order if key in data}
        ordered.update({key: value for key, value in data.items() if key not in ordered})
        return ordered

    def to_json(self) -> str:
        return json.dumps(self.to_document(), indent=4, ensure_ascii=False) + "\n"

    # ── Set algebra ───────────────────────────────────────────────────────

    def entries(self, field: str) -> list[str]:
        try:
            return getattr(self, _ATTRIBUTES[field])
        except KeyError:
            raise ValueError(f"Unknown manifest field: {field}") from None

    def contains(self, field: str, app: str) -> bool:
        return app in self.entries(field)

    def add(self, field: str, app: str) -> bool:
        """Append ``app`` to ``field`` unless present. Returns True if added."""
        entries = self.entries(field)
        if app in entries:
            return False
        entries.append(app)
        return True

    def remove(self, field: str, app: str) -> int:
        """Drop every occurrence of ``app`` from ``field``; returns how many."""
        entries = self.entries(field)
        kept = [entry for entry in entries if entry != app]
        removed = len(entries) - len(kept)
        if removed:
            entries[:] = kept
        return removed

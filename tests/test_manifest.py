"""
Unit tests for the shipped manifest model.
"""

from __future__ import annotations

import json

import pytest

from ncw_ops.schemas import ALWAYS_ENABLED, DEFAULT_ENABLED, SHIPPED_APPS, ShippedManifest


@pytest.fixture
def manifest(manifest_doc: dict) -> ShippedManifest:
    return ShippedManifest.from_document(manifest_doc)


class TestShippedManifest:
    def test_add_is_idempotent(self, manifest: ShippedManifest) -> None:
        assert manifest.add(ALWAYS_ENABLED, "notify_push") is True
        assert manifest.add(ALWAYS_ENABLED, "notify_push") is False
        assert manifest.entries(ALWAYS_ENABLED).count("notify_push") == 1

    def test_add_appends_in_call_order(self, manifest: ShippedManifest) -> None:
        for app in ("zeta", "alpha", "mid"):
            manifest.add(SHIPPED_APPS, app)
        assert manifest.entries(SHIPPED_APPS)[-3:] == ["zeta", "alpha", "mid"]

    def test_remove_drops_every_occurrence(self) -> None:
        manifest = ShippedManifest.from_document({"defaultEnabled": ["a", "b", "a", "c", "a"]})
        assert manifest.remove(DEFAULT_ENABLED, "a") == 3
        assert manifest.entries(DEFAULT_ENABLED) == ["b", "c"]
        assert manifest.remove(DEFAULT_ENABLED, "a") == 0

    def test_contains(self, manifest: ShippedManifest) -> None:
        assert manifest.contains(SHIPPED_APPS, "viewer")
        assert not manifest.contains(ALWAYS_ENABLED, "viewer")

    def test_unknown_field_raises(self, manifest: ShippedManifest) -> None:
        with pytest.raises(ValueError):
            manifest.add("recommendedApps", "mail")

    def test_extra_keys_are_preserved_in_order(self, manifest: ShippedManifest) -> None:
        manifest.add(SHIPPED_APPS, "notify_push")
        document = json.loads(manifest.to_json())

        assert list(document) == ["shippedApps", "defaultEnabled", "alwaysEnabled", "recommendedApps"]
        assert document["recommendedApps"] == ["calendar"]

    def test_to_json_format(self) -> None:
        manifest = ShippedManifest.from_document({"shippedApps": ["files"]})
        text = manifest.to_json()
        assert text.endswith("}\n")
        assert '    "shippedApps": [\n        "files"\n    ]' in text

    def test_missing_fields_default_to_empty(self) -> None:
        manifest = ShippedManifest.from_document({"core-version": "31"})
        assert manifest.entries(ALWAYS_ENABLED) == []

"""
Unit tests for app list file parsing.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from ncw_ops.core.applists import parse_app_list, read_app_list
from ncw_ops.core.errors import MissingInputError


class TestParseAppList:
    def test_comments_and_blank_lines_are_skipped(self) -> None:
        lines = ["# comment", "", "app1", "  ", "app2"]
        assert parse_app_list(lines) == ["app1", "app2"]

    def test_whitespace_is_stripped(self) -> None:
        assert parse_app_list(["  spreed\t", "\tmail  \n"]) == ["spreed", "mail"]

    def test_indented_comment(self) -> None:
        assert parse_app_list(["   # not an app", "files"]) == ["files"]

    def test_order_is_kept(self) -> None:
        assert parse_app_list(["b", "a", "c"]) == ["b", "a", "c"]


class TestReadAppList:
    def test_reads_file(self, tmp_path: Path) -> None:
        path = tmp_path / "disabled-apps.list"
        path.write_text("# Disabled apps\nfirstrunwizard\n\nsupport\n")
        assert read_app_list(path) == ["firstrunwizard", "support"]

    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        assert read_app_list(tmp_path / "missing.list") == []

    def test_missing_required_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(MissingInputError, match="missing.list"):
            read_app_list(tmp_path / "missing.list", required=True)

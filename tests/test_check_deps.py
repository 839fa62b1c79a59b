"""
Unit tests for the dependency doctor.
"""

from __future__ import annotations

from unittest.mock import patch

from ncw_ops.cli import check_deps


class TestCheckDeps:
    def test_all_present(self, capsys) -> None:
        with patch("ncw_ops.cli.check_deps.shutil.which", return_value="/usr/bin/tool"):
            assert check_deps.main() == 0
        assert "All dependencies present" in capsys.readouterr().out

    def test_missing_binary(self, capsys) -> None:
        with patch("ncw_ops.cli.check_deps.shutil.which", side_effect=lambda name: None if name == "composer" else "/usr/bin/x"):
            assert check_deps.main() == 1
        out = capsys.readouterr().out
        assert "composer" in out
        assert "MISSING" in out

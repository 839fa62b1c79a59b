"""
Unit tests for the occ client (subprocess mocked).
"""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from ncw_ops.core.errors import (
    HostCommandError,
    HostResponseError,
    MissingDependencyError,
    MissingInputError,
)
from ncw_ops.core.host.occ import OccClient


def completed(stdout: str = "", returncode: int = 0, stderr: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def occ_root(tmp_path: Path) -> Path:
    (tmp_path / "occ").write_text("<?php\n")
    return tmp_path


@pytest.fixture
def runner() -> MagicMock:
    return MagicMock(return_value=completed())


@pytest.fixture
def client(occ_root: Path, runner: MagicMock) -> OccClient:
    with patch("ncw_ops.core.host.occ.shutil.which", return_value="/usr/bin/php"):
        return OccClient(occ_root, runner=runner)


def last_args(runner: MagicMock) -> list[str]:
    return runner.call_args.args[0][2:]


class TestOccClient:
    def test_missing_php(self, occ_root: Path) -> None:
        with patch("ncw_ops.core.host.occ.shutil.which", return_value=None):
            with pytest.raises(MissingDependencyError):
                OccClient(occ_root)

    def test_missing_occ(self, tmp_path: Path) -> None:
        with patch("ncw_ops.core.host.occ.shutil.which", return_value="/usr/bin/php"):
            with pytest.raises(MissingInputError):
                OccClient(tmp_path)

    def test_is_installed(self, client: OccClient, runner: MagicMock) -> None:
        runner.return_value = completed(json.dumps({"installed": True, "version": "31.0.0"}))
        assert client.is_installed() is True
        assert last_args(runner) == ["status", "--output=json"]

    def test_list_apps_normalises_empty_php_array(self, client: OccClient, runner: MagicMock) -> None:
        runner.return_value = completed(json.dumps({"enabled": {"files": "2.0.0"}, "disabled": []}))
        listing = client.list_apps()

        assert listing.enabled == {"files": "2.0.0"}
        assert listing.disabled == {}
        assert listing.is_installed("files")
        assert not listing.is_installed("notify_push")

    def test_invalid_json(self, client: OccClient, runner: MagicMock) -> None:
        runner.return_value = completed("An unhandled exception has been thrown")
        with pytest.raises(HostResponseError):
            client.status()

    def test_non_zero_exit(self, client: OccClient, runner: MagicMock) -> None:
        runner.return_value = completed("", returncode=1, stderr="App not found")
        with pytest.raises(HostCommandError) as exc_info:
            client.enable_app("ghost")

        assert exc_info.value.returncode == 1
        assert "App not found" in exc_info.value.output
        assert exc_info.value.args_list == ["occ", "app:enable", "ghost"]

    def test_set_app_config_sensitive_is_masked(self, client: OccClient, runner: MagicMock) -> None:
        client.set_app_config("integration_openai", "api_key", "s3cret", sensitive=True)
        assert last_args(runner) == [
            "config:app:set",
            "integration_openai",
            "api_key",
            "--value=s3cret",
            "--sensitive",
        ]

        runner.return_value = completed("", returncode=2, stderr="bad value s3cret")
        with pytest.raises(HostCommandError) as exc_info:
            client.set_app_config("integration_openai", "api_key", "s3cret", sensitive=True)
        assert "s3cret" not in str(exc_info.value)

    def test_set_app_config_with_type(self, client: OccClient, runner: MagicMock) -> None:
        client.set_app_config("viewer", "always_show_viewer", "yes", value_type="string")
        assert last_args(runner)[-1] == "--type=string"

    def test_get_app_config_unset_returns_none(self, client: OccClient, runner: MagicMock) -> None:
        runner.return_value = completed("", returncode=1)
        assert client.get_app_config("theming", "url") is None

    def test_get_system_config(self, client: OccClient, runner: MagicMock) -> None:
        runner.return_value = completed("https://www.ionos.de\n")
        assert client.get_system_config("ionos_homepage") == "https://www.ionos.de"

    def test_runs_in_nextcloud_root(self, client: OccClient, runner: MagicMock, occ_root: Path) -> None:
        client.run("maintenance:mode", "--off")
        assert runner.call_args.kwargs["cwd"] == str(occ_root)
        assert runner.call_args.args[0][:2] == ["php", str(occ_root / "occ")]

    def test_user_exists(self, client: OccClient, runner: MagicMock) -> None:
        assert client.user_exists("admin") is True
        assert last_args(runner) == ["user:info", "admin"]

        runner.return_value = completed("user not found", returncode=1)
        assert client.user_exists("ghost") is False

    def test_user_setting(self, client: OccClient, runner: MagicMock) -> None:
        runner.return_value = completed("admin@example.com\n")
        assert client.get_user_setting("admin", "settings", "email") == "admin@example.com"

        runner.return_value = completed("", returncode=1)
        assert client.get_user_setting("admin", "settings", "email") is None

        runner.return_value = completed()
        client.set_user_setting("admin", "settings", "email", "new@example.com")
        assert last_args(runner) == ["user:setting", "admin", "settings", "email", "new@example.com"]

    def test_send_welcome_mail_failure(self, client: OccClient, runner: MagicMock) -> None:
        runner.return_value = completed("", returncode=1, stderr="Could not send mail")
        with pytest.raises(HostCommandError) as exc_info:
            client.send_welcome_mail("admin")
        assert exc_info.value.args_list == ["occ", "user:welcome", "admin"]

    def test_export_mail_accounts(self, client: OccClient, runner: MagicMock) -> None:
        accounts = [{"id": 1, "email": "a@example.com", "imap": {"user": "a"}, "smtp": {"user": "a"}}]
        runner.return_value = completed(json.dumps(accounts))

        assert client.export_mail_accounts("alice") == accounts
        assert last_args(runner) == ["mail:account:export", "alice", "--output=json"]

    @pytest.mark.parametrize("output", ["", "[]", "{}"])
    def test_export_mail_accounts_empty(self, client: OccClient, runner: MagicMock, output: str) -> None:
        runner.return_value = completed(output)
        assert client.export_mail_accounts("alice") == []

    def test_export_mail_accounts_keyed_object(self, client: OccClient, runner: MagicMock) -> None:
        runner.return_value = completed(json.dumps({"0": {"id": 4}, "1": {"id": 5}}))
        assert [account["id"] for account in client.export_mail_accounts("alice")] == [4, 5]

    def test_export_mail_accounts_unexpected(self, client: OccClient, runner: MagicMock) -> None:
        runner.return_value = completed('"nope"')
        with pytest.raises(HostResponseError):
            client.export_mail_accounts("alice")

    def test_update_mail_account_only_given_fields(self, client: OccClient, runner: MagicMock) -> None:
        client.update_mail_account(7, email="new@example.com", smtp_user="new@example.com")
        assert last_args(runner) == [
            "mail:account:update",
            "7",
            "--email=new@example.com",
            "--smtp-user=new@example.com",
        ]

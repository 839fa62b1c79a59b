"""
Integration tests for the ncw-ops command line interface.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from click.testing import CliRunner

from ncw_ops.cli.main import main
from ncw_ops.core.utils.config import load_config, save_config


@pytest.fixture
def config_file(ops_config: dict) -> Path:
    path = Path(ops_config["config_dir"]) / "ncw-ops.yaml"
    save_config(ops_config, str(path))
    return path


@pytest.fixture
def invoke(config_file: Path, fake_host):
    runner = CliRunner()

    def _invoke(*args: str, **obj):
        obj.setdefault("host", fake_host)
        return runner.invoke(main, ["--config", str(config_file), *args], obj=obj)

    return _invoke


class TestCli:
    def test_help_lists_commands(self) -> None:
        result = CliRunner().invoke(main, ["--help"])
        assert result.exit_code == 0
        for command in ("apps-disable", "enforce-always-enabled", "validate-external-apps", "zip"):
            assert command in result.output

    def test_missing_config(self, tmp_path: Path) -> None:
        result = CliRunner().invoke(main, ["--config", str(tmp_path / "nope.yaml"), "apps-disable"])
        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_apps_disable(self, invoke, manifest_path: Path) -> None:
        result = invoke("apps-disable")

        assert result.exit_code == 0, result.output
        assert "survey_client" not in json.loads(manifest_path.read_text())["defaultEnabled"]

    def test_update_shipped_json(self, invoke, manifest_path: Path) -> None:
        result = invoke("update-shipped-json")

        assert result.exit_code == 0, result.output
        data = json.loads(manifest_path.read_text())
        assert data["alwaysEnabled"][-1] == "notify_push"
        assert data["shippedApps"][-1] == "notify_push"

    def test_enforce_always_enabled(self, invoke, fake_host) -> None:
        result = invoke("enforce-always-enabled")

        assert result.exit_code == 0, result.output
        assert fake_host.calls_to("enable_app") == [("enable_app", "notify_push")]

    def test_enforce_always_enabled_failure_exits_1(self, invoke, fake_host) -> None:
        fake_host.fail_enable.add("notify_push")
        result = invoke("enforce-always-enabled")

        assert result.exit_code == 1
        assert "1 app(s) failed to enable: notify_push" in result.output
        assert "['notify_push']" not in result.output

    def test_apps_disable_without_list_file(
        self, invoke, nextcloud_root: Path, manifest_path: Path
    ) -> None:
        (nextcloud_root / "IONOS" / "disabled-apps.list").unlink()
        before = manifest_path.read_bytes()

        result = invoke("apps-disable")

        assert result.exit_code == 1
        assert "disabled-apps.list" in result.output
        assert manifest_path.read_bytes() == before

    def test_invalid_settings_is_configuration_error(self, ops_config: dict) -> None:
        ops_config["app_categories"]["full_build"] = "ncw_apps_menu"
        path = Path(ops_config["config_dir"]) / "bad.yaml"
        save_config(ops_config, str(path))

        result = CliRunner().invoke(main, ["--config", str(path), "matrix"])

        assert result.exit_code == 1
        assert "Configuration error" in result.output
        assert "full_build" in result.output

    def test_yaml_syntax_error_is_configuration_error(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.yaml"
        path.write_text("paths: [unclosed\n")

        result = CliRunner().invoke(main, ["--config", str(path), "matrix"])

        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_unexpected_error_exits_1(self, config_file: Path) -> None:
        orchestrator = MagicMock()
        orchestrator.run_disable_apps.side_effect = OSError("No space left on device")

        result = CliRunner().invoke(
            main, ["--config", str(config_file), "apps-disable"], obj={"orchestrator": orchestrator}
        )

        assert result.exit_code == 1
        assert "Unexpected error" in result.output
        assert "No space left on device" in result.output

    def test_unexpected_error_is_raised_with_debug(self, config_file: Path) -> None:
        orchestrator = MagicMock()
        orchestrator.run_disable_apps.side_effect = OSError("No space left on device")

        result = CliRunner().invoke(
            main,
            ["--config", str(config_file), "--debug", "apps-disable"],
            obj={"orchestrator": orchestrator},
        )

        assert isinstance(result.exception, OSError)

    def test_corrupt_manifest_exits_1(self, invoke, manifest_path: Path) -> None:
        manifest_path.write_text("{not json")
        result = invoke("apps-disable")

        assert result.exit_code == 1
        assert manifest_path.read_text() == "{not json"

    def test_validate_app_list_uniqueness(self, invoke) -> None:
        result = invoke("validate-app-list-uniqueness")
        assert result.exit_code == 0, result.output
        assert "uniquely categorized" in result.output

    def test_validate_app_list_uniqueness_failure(self, ops_config: dict, fake_host) -> None:
        ops_config["app_categories"]["nothing_to_build"] = ["groupfolders"]
        path = Path(ops_config["config_dir"]) / "dup.yaml"
        save_config(ops_config, str(path))

        result = CliRunner().invoke(
            main, ["--config", str(path), "validate-app-list-uniqueness"], obj={"host": fake_host}
        )
        assert result.exit_code == 1
        assert "Validation failed" in result.output

    def test_matrix_json(self, invoke) -> None:
        result = invoke("matrix", "--json")

        assert result.exit_code == 0, result.output
        entries = json.loads(result.output)
        assert entries[0] == {
            "name": "ncw_apps_menu",
            "category": "full_build",
            "path": "apps-external/ncw_apps_menu",
        }

    def test_build_unknown_app(self, invoke) -> None:
        result = invoke("build", "deck")
        assert result.exit_code == 1
        assert "not in any build category" in result.output

    def test_check_shell_config(self, invoke, tmp_path: Path) -> None:
        scripts = tmp_path / "scripts"
        scripts.mkdir()
        (scripts / "bad.sh").write_text("php occ config:system:set loglevel --value=0\n")

        result = invoke("check-shell-config", "--root", str(scripts))
        assert result.exit_code == 1

    def test_runtime_phase(self, invoke, manifest_path: Path) -> None:
        result = invoke("runtime-phase")

        assert result.exit_code == 0, result.output
        assert "notify_push" in json.loads(manifest_path.read_text())["alwaysEnabled"]

    def test_report_dir(self, invoke, tmp_path: Path) -> None:
        reports = tmp_path / "reports"
        result = invoke("--report-dir", str(reports), "validate-app-list-uniqueness")

        assert result.exit_code == 0, result.output
        assert "uniquely categorized" in (reports / "app_list_uniqueness.txt").read_text()
        assert json.loads((reports / "app_list_uniqueness.json").read_text())["ok"] is True

    def test_init_config(self, tmp_path: Path) -> None:
        path = tmp_path / "ncw-ops.yaml"
        result = CliRunner().invoke(main, ["init-config", str(path)])

        assert result.exit_code == 0, result.output
        loaded = load_config(str(path))
        assert loaded["paths"]["configs_dir"] == "IONOS/configs"
        assert loaded["lists"]["disabled_apps"] == "disabled-apps.list"

    def test_init_config_keeps_existing_file(self, tmp_path: Path) -> None:
        path = tmp_path / "ncw-ops.yaml"
        path.write_text("paths: {}\n")

        result = CliRunner().invoke(main, ["init-config", str(path)])
        assert result.exit_code == 1
        assert path.read_text() == "paths: {}\n"

        result = CliRunner().invoke(main, ["init-config", "--force", str(path)])
        assert result.exit_code == 0, result.output
        assert "app_categories" in path.read_text()


class TestAdminCli:
    def test_update_user_email(self, invoke, support_host) -> None:
        result = invoke("admin", "update-user-email", "admin", "admin@example.com", host=support_host)

        assert result.exit_code == 0, result.output
        assert "Email address updated" in result.output
        assert support_host.users["admin"]["settings.email"] == "admin@example.com"

    def test_update_user_email_unchanged(self, invoke, support_host) -> None:
        result = invoke("admin", "update-user-email", "john.doe", "john@example.com", host=support_host)

        assert result.exit_code == 0, result.output
        assert "No changes needed" in result.output
        assert support_host.calls_to("set_user_setting") == []

    def test_update_user_email_dry_run(self, invoke, support_host) -> None:
        result = invoke(
            "admin", "update-user-email", "--dry-run", "-w", "admin", "admin@example.com", host=support_host
        )

        assert result.exit_code == 0, result.output
        assert "[DRY RUN] Would execute: php occ user:setting" in result.output
        assert "user:welcome" in result.output
        assert support_host.users["admin"]["settings.email"] == "admin@exmaple.com"

    def test_update_user_email_quiet(self, invoke, support_host) -> None:
        result = invoke(
            "admin", "update-user-email", "--quiet", "admin", "admin@example.com", host=support_host
        )

        assert result.exit_code == 0, result.output
        assert "Email address updated" not in result.output
        assert support_host.users["admin"]["settings.email"] == "admin@example.com"

    def test_unknown_user_exits_1(self, invoke, support_host) -> None:
        result = invoke("admin", "resend-welcome", "ghost", host=support_host)

        assert result.exit_code == 1
        assert "does not exist" in result.output

    def test_resend_welcome(self, invoke, support_host) -> None:
        result = invoke("admin", "resend-welcome", "john.doe", host=support_host)

        assert result.exit_code == 0, result.output
        assert support_host.calls_to("send_welcome_mail") == [("send_welcome_mail", "john.doe")]

    def test_update_mail_accounts(self, invoke, support_host) -> None:
        result = invoke(
            "admin",
            "update-mail-accounts",
            "john.doe",
            "john@example.com",
            "john@parked.example.com",
            host=support_host,
        )

        assert result.exit_code == 0, result.output
        assert "All mail accounts updated successfully" in result.output
        assert len(support_host.calls_to("update_mail_account")) == 2

    def test_update_mail_accounts_invalid_address_exits_2(self, invoke, support_host) -> None:
        result = invoke(
            "admin", "update-mail-accounts", "john.doe", "john-at-example", "john@new.com", host=support_host
        )

        assert result.exit_code == 2
        assert "Invalid old email address format" in result.output
        assert support_host.calls == []

    def test_missing_argument_is_usage_error(self, invoke, support_host) -> None:
        result = invoke("admin", "update-user-email", "admin", host=support_host)
        assert result.exit_code == 2

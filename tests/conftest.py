"""Shared pytest fixtures for the test suite.

Import any of these in a test file by simply declaring the fixture name as a
parameter — pytest discovers them automatically from this conftest.py.

Fixture overview
----------------
fake_host        — in-memory FakeHostAdmin with a small set of installed apps
make_host        — the FakeHostAdmin class, for tests that need another app set
manifest_doc     — a vendor-like shipped.json document (with an extra key)
manifest_path    — that document written to ``<tmp>/nextcloud/core/shipped.json``
nextcloud_root   — the temporary Nextcloud root holding ``manifest_path``
ops_config       — configuration dict pointing every path into ``nextcloud_root``
default_config_path — the shipped ``configs/default_config.yaml``
support_host     — host with users and mail accounts for the admin commands
"""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any

import pytest

from ncw_ops.core.errors import HostCommandError
from ncw_ops.core.host.occ import AppListing

REPO_ROOT = Path(__file__).resolve().parents[1]


class FakeHostAdmin:
    """
    In-memory stand-in for the ``occ`` client.

    Every call is appended to ``calls`` as a tuple so tests can assert on the
    exact host interaction. Apps listed in ``fail_enable``/``fail_disable``
    raise :class:`HostCommandError` like a failing ``occ`` would.

    User settings are stored under ``"<app>.<key>"``; mail accounts have the
    shape of ``occ mail:account:export --output=json``.
    """

    def __init__(
        self,
        enabled: dict[str, str] | None = None,
        disabled: dict[str, str] | None = None,
        installed: bool = True,
        system_config: dict[str, str] | None = None,
        run_outputs: dict[str, str] | None = None,
        users: dict[str, dict[str, str]] | None = None,
        mail_accounts: dict[str, list[dict]] | None = None,
    ):
        self.enabled = dict(enabled or {})
        self.disabled = dict(disabled or {})
        self.installed = installed
        self.system_config = dict(system_config or {})
        self.run_outputs = dict(run_outputs or {})
        self.app_config: dict[tuple[str, str], str] = {}
        self.theming: dict[str, str] = {}
        self.fail_enable: set[str] = set()
        self.fail_disable: set[str] = set()
        self.users = {user: dict(settings) for user, settings in (users or {}).items()}
        self.mail_accounts = copy.deepcopy(mail_accounts or {})
        self.fail_welcome: set[str] = set()
        self.fail_mail_update: set[int] = set()
        self.calls: list[tuple] = []

    def calls_to(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]

    def status(self) -> dict[str, Any]:
        self.calls.append(("status",))
        return {"installed": self.installed}

    def is_installed(self) -> bool:
        return self.status()["installed"]

    def list_apps(self) -> AppListing:
        self.calls.append(("list_apps",))
        return AppListing(enabled=dict(self.enabled), disabled=dict(self.disabled))

    def enable_app(self, app: str) -> None:
        self.calls.append(("enable_app", app))
        if app in self.fail_enable:
            raise HostCommandError(["occ", "app:enable", app], 1, f"{app} cannot be enabled")
        self.enabled[app] = self.disabled.pop(app, "1.0.0")

    def disable_app(self, app: str) -> None:
        self.calls.append(("disable_app", app))
        if app in self.fail_disable:
            raise HostCommandError(["occ", "app:disable", app], 1, f"{app} cannot be disabled")
        if app in self.enabled:
            self.disabled[app] = self.enabled.pop(app)

    def set_app_config(self, app, key, value, value_type=None, sensitive=False) -> None:
        self.calls.append(("set_app_config", app, key, value, value_type, sensitive))
        self.app_config[(app, key)] = value

    def get_app_config(self, app, key):
        return self.app_config.get((app, key))

    def delete_app_config(self, app, key) -> None:
        self.calls.append(("delete_app_config", app, key))
        self.app_config.pop((app, key), None)

    def get_system_config(self, key):
        return self.system_config.get(key)

    def set_system_config(self, key, value) -> None:
        self.calls.append(("set_system_config", key, value))
        self.system_config[key] = value

    def theming_config(self, key, value) -> None:
        self.calls.append(("theming_config", key, value))
        self.theming[key] = value

    def user_exists(self, user: str) -> bool:
        self.calls.append(("user_exists", user))
        return user in self.users

    def get_user_setting(self, user, app, key):
        return self.users.get(user, {}).get(f"{app}.{key}")

    def set_user_setting(self, user, app, key, value) -> None:
        self.calls.append(("set_user_setting", user, app, key, value))
        self.users.setdefault(user, {})[f"{app}.{key}"] = value

    def send_welcome_mail(self, user: str) -> None:
        self.calls.append(("send_welcome_mail", user))
        if user in self.fail_welcome:
            raise HostCommandError(["occ", "user:welcome", user], 1, "Mail delivery failed")

    def export_mail_accounts(self, user: str) -> list[dict]:
        self.calls.append(("export_mail_accounts", user))
        return copy.deepcopy(self.mail_accounts.get(user, []))

    def update_mail_account(self, account_id, email=None, imap_user=None, smtp_user=None) -> None:
        self.calls.append(("update_mail_account", account_id, email, imap_user, smtp_user))
        if account_id in self.fail_mail_update:
            raise HostCommandError(["occ", "mail:account:update", str(account_id)], 1, "update failed")
        for accounts in self.mail_accounts.values():
            for account in accounts:
                if account["id"] == account_id:
                    if email is not None:
                        account["email"] = email
                    if imap_user is not None:
                        account["imap"]["user"] = imap_user
                    if smtp_user is not None:
                        account["smtp"]["user"] = smtp_user

    def run(self, *args: str) -> str:
        self.calls.append(("run", *args))
        return self.run_outputs.get(args[0], "")


# ── Host ─────────────────────────────────────────────────────────────────────


@pytest.fixture
def fake_host() -> FakeHostAdmin:
    """Installed instance: files/viewer enabled, notify_push installed but disabled."""
    return FakeHostAdmin(
        enabled={"files": "2.0.0", "viewer": "3.0.0", "survey_client": "1.0.0"},
        disabled={"notify_push": "1.0.0", "calendar": "5.0.0"},
    )


# ── Manifest ─────────────────────────────────────────────────────────────────


@pytest.fixture
def manifest_doc() -> dict:
    """Vendor-like shipped.json content, including a key this package never touches."""
    return {
        "shippedApps": ["files", "viewer", "survey_client"],
        "defaultEnabled": ["files", "viewer", "survey_client"],
        "alwaysEnabled": ["files"],
        "recommendedApps": ["calendar"],
    }


@pytest.fixture
def nextcloud_root(tmp_path: Path, manifest_doc: dict) -> Path:
    root = tmp_path / "nextcloud"
    (root / "core").mkdir(parents=True)
    (root / "core" / "shipped.json").write_text(json.dumps(manifest_doc, indent=4) + "\n")
    return root


@pytest.fixture
def manifest_path(nextcloud_root: Path) -> Path:
    return nextcloud_root / "core" / "shipped.json"


# ── Configuration ────────────────────────────────────────────────────────────


@pytest.fixture
def ops_config(tmp_path: Path, nextcloud_root: Path) -> dict:
    """
    Configuration dict with list files and Makefile inside the temp tree.

    Mirrors what ``load_config`` returns: ``config_dir`` is the base of every
    relative path.
    """
    ionos = nextcloud_root / "IONOS"
    ionos.mkdir()
    (ionos / "disabled-apps.list").write_text("# disabled\nsurvey_client\n\n")
    (ionos / "always-enabled-apps.list").write_text("notify_push\n")
    (ionos / "removed-apps.txt").write_text("")
    (ionos / "enabled-core-apps.list").write_text("files\n")
    (ionos / "Makefile").write_text(
        "build_richdocuments_app: ## special\n\tncw-ops build richdocuments\n"
        "build_%_app:\n\tncw-ops build $*\n"
    )

    return {
        "config_dir": str(ionos),
        "paths": {"nextcloud_root": ".."},
        "lists": {},
        "app_categories": {
            "full_build": ["ncw_apps_menu"],
            "composer_only": ["groupfolders"],
            "special": ["richdocuments"],
        },
        "special_builds": {"richdocuments": ["composer install --no-dev -o"]},
    }


@pytest.fixture
def default_config_path() -> Path:
    return REPO_ROOT / "configs" / "default_config.yaml"


@pytest.fixture
def make_host():
    """Factory for hosts with a custom app set: ``make_host(enabled={...}, installed=False)``."""
    return FakeHostAdmin


@pytest.fixture
def support_host() -> FakeHostAdmin:
    """
    Users ``admin`` (address with a typo) and ``john.doe`` (two mail accounts,
    one on a parked domain) plus ``nomail`` without any mail account.
    """
    return FakeHostAdmin(
        enabled={"files": "2.0.0", "mail": "4.0.0"},
        users={
            "admin": {"settings.email": "admin@exmaple.com"},
            "john.doe": {"settings.email": "john@example.com"},
            "nomail": {},
        },
        mail_accounts={
            "john.doe": [
                {
                    "id": 7,
                    "email": "john@example.com",
                    "imap": {"user": "john@example.com", "host": "imap.example.com"},
                    "smtp": {"user": "john@example.com", "host": "smtp.example.com"},
                },
                {
                    "id": 9,
                    "email": "john@example.com",
                    "imap": {"user": "john.imap", "host": "imap.other.com"},
                    "smtp": {"user": "john.smtp", "host": "smtp.other.com"},
                },
                {
                    "id": 12,
                    "email": "john@private.org",
                    "imap": {"user": "john@private.org", "host": "imap.private.org"},
                    "smtp": {"user": "john@private.org", "host": "smtp.private.org"},
                },
            ],
        },
    )

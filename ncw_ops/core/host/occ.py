"""
Host administration capability.

Everything the tooling asks of the Nextcloud installation goes through the
:class:`HostAdmin` protocol. :class:`OccClient` implements it by running
``php occ``; tests substitute an in-memory fake.
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from ncw_ops.core.errors import (
    HostCommandError,
    HostResponseError,
    MissingDependencyError,
    MissingInputError,
)

logger = logging.getLogger(__name__)

_REDACTED = "***"


@dataclass
class AppListing:
    """Result of ``occ app:list``: app id -> version for both states."""

    enabled: dict[str, str] = field(default_factory=dict)
    disabled: dict[str, str] = field(default_factory=dict)

    def is_installed(self, app: str) -> bool:
        return app in self.enabled or app in self.disabled

    def is_enabled(self, app: str) -> bool:
        return app in self.enabled


class HostAdmin(Protocol):
    def status(self) -> dict[str, Any]: ...

    def is_installed(self) -> bool: ...

    def list_apps(self) -> AppListing: ...

    def enable_app(self, app: str) -> None: ...

    def disable_app(self, app: str) -> None: ...

    def set_app_config(
        self,
        app: str,
        key: str,
        value: str,
        value_type: str | None = None,
        sensitive: bool = False,
    ) -> None: ...

    def get_app_config(self, app: str, key: str) -> str | None: ...

    def delete_app_config(self, app: str, key: str) -> None: ...

    def get_system_config(self, key: str) -> str | None: ...

    def set_system_config(self, key: str, value: str) -> None: ...

    def theming_config(self, key: str, value: str) -> None: ...

    def user_exists(self, user: str) -> bool: ...

    def get_user_setting(self, user: str, app: str, key: str) -> str | None: ...

    def set_user_setting(self, user: str, app: str, key: str, value: str) -> None: ...

    def send_welcome_mail(self, user: str) -> None: ...

    def export_mail_accounts(self, user: str) -> list[dict[str, Any]]: ...

    def update_mail_account(
        self,
        account_id: int,
        email: str | None = None,
        imap_user: str | None = None,
        smtp_user: str | None = None,
    ) -> None: ...

    def run(self, *args: str) -> str: ...


def _normalise_app_map(value: Any) -> dict[str, str]:
    # PHP serialises an empty associative array as [].
    if isinstance(value, dict):
        return {str(app): str(version) for app, version in value.items()}
    if isinstance(value, list):
        return {str(app): "" for app in value}
    return {}


class OccClient:
    """
    ``php <nextcloud_root>/occ`` wrapper.

    Non-zero exit codes raise :class:`HostCommandError` with the combined
    output of the command. Values passed as sensitive are masked in logs and
    error messages.
    """

    def __init__(
        self,
        nextcloud_root: Path,
        occ_path: Path | None = None,
        php: str = "php",
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ):
        self.nextcloud_root = Path(nextcloud_root)
        self.occ_path = Path(occ_path) if occ_path else self.nextcloud_root / "occ"
        self.php = php
        self._runner = runner

        if shutil.which(php) is None:
            raise MissingDependencyError(php, "needed to run occ")
        if not self.occ_path.is_file():
            raise MissingInputError(f"OCC command not found at {self.occ_path}")

    # ── Raw execution ─────────────────────────────────────────────────────

    def _execute(self, args: Sequence[str], redact: Sequence[str] = ()) -> str:
        shown = [_mask(arg, redact) for arg in args]
        logger.debug("occ %s", " ".join(shown))

        completed = self._runner(
            [self.php, str(self.occ_path), *args],
            cwd=str(self.nextcloud_root),
            capture_output=True,
            text=True,
            check=False,
        )
        if completed.returncode != 0:
            output = (completed.stdout or "") + (completed.stderr or "")
            raise HostCommandError(["occ", *shown], completed.returncode, _mask(output, redact))
        return completed.stdout or ""

    def run(self, *args: str) -> str:
        return self._execute(args)

    def _json(self, *args: str) -> Any:
        return _decode(args, self._execute(args))

    # ── Status and apps ───────────────────────────────────────────────────

    def status(self) -> dict[str, Any]:
        data = self._json("status", "--output=json")
        if not isinstance(data, dict):
            raise HostResponseError(f"Unexpected 'occ status' output: {data!r}")
        return data

    def is_installed(self) -> bool:
        return self.status().get("installed") is True

    def list_apps(self) -> AppListing:
        data = self._json("app:list", "--output=json")
        if not isinstance(data, dict):
            raise HostResponseError(f"Unexpected 'occ app:list' output: {data!r}")
        return AppListing(
            enabled=_normalise_app_map(data.get("enabled")),
            disabled=_normalise_app_map(data.get("disabled")),
        )

    def enable_app(self, app: str) -> None:
        self._execute(["app:enable", app])

    def disable_app(self, app: str) -> None:
        self._execute(["app:disable", app])

    # ── Config store ──────────────────────────────────────────────────────

    def set_app_config(
        self,
        app: str,
        key: str,
        value: str,
        value_type: str | None = None,
        sensitive: bool = False,
    ) -> None:
        args = ["config:app:set", app, key, f"--value={value}"]
        if value_type:
            args.append(f"--type={value_type}")
        if sensitive:
            args.append("--sensitive")
        self._execute(args, redact=[value] if sensitive else ())

    def get_app_config(self, app: str, key: str) -> str | None:
        # occ exits 1 when the key is not set
        try:
            return self._execute(["config:app:get", app, key]).strip()
        except HostCommandError as exc:
            if exc.returncode == 1:
                return None
            raise

    def delete_app_config(self, app: str, key: str) -> None:
        self._execute(["config:app:delete", app, key])

    def get_system_config(self, key: str) -> str | None:
        try:
            return self._execute(["config:system:get", key]).strip()
        except HostCommandError as exc:
            if exc.returncode == 1:
                return None
            raise

    def set_system_config(self, key: str, value: str) -> None:
        self._execute(["config:system:set", key, f"--value={value}"])

    def theming_config(self, key: str, value: str) -> None:
        self._execute(["theming:config", key, value])

    # ── Users ─────────────────────────────────────────────────────────────

    def user_exists(self, user: str) -> bool:
        try:
            self._execute(["user:info", user])
        except HostCommandError:
            return False
        return True

    def get_user_setting(self, user: str, app: str, key: str) -> str | None:
        try:
            return self._execute(["user:setting", user, app, key]).strip()
        except HostCommandError as exc:
            if exc.returncode == 1:
                return None
            raise

    def set_user_setting(self, user: str, app: str, key: str, value: str) -> None:
        self._execute(["user:setting", user, app, key, value])

    def send_welcome_mail(self, user: str) -> None:
        self._execute(["user:welcome", user])

    # ── Mail app ──────────────────────────────────────────────────────────

    def export_mail_accounts(self, user: str) -> list[dict[str, Any]]:
        args = ["mail:account:export", user, "--output=json"]
        output = self._execute(args)
        if not output.strip():
            return []
        data = _decode(args, output)
        # keyed PHP arrays come back as objects
        if isinstance(data, dict):
            data = list(data.values())
        if not isinstance(data, list):
            raise HostResponseError(f"Unexpected 'occ mail:account:export' output: {data!r}")
        return data

    def update_mail_account(
        self,
        account_id: int,
        email: str | None = None,
        imap_user: str | None = None,
        smtp_user: str | None = None,
    ) -> None:
        args = ["mail:account:update", str(account_id)]
        if email is not None:
            args.append(f"--email={email}")
        if imap_user is not None:
            args.append(f"--imap-user={imap_user}")
        if smtp_user is not None:
            args.append(f"--smtp-user={smtp_user}")
        self._execute(args)


def _mask(text: str, secrets: Sequence[str]) -> str:
    for secret in secrets:
        if secret:
            text = text.replace(secret, _REDACTED)
    return text


def _decode(args: Sequence[str], output: str) -> Any:
    try:
        return json.loads(output)
    except json.JSONDecodeError as exc:
        raise HostResponseError(
            f"Failed to parse JSON from 'occ {' '.join(args)}'. Output was: {output.strip()}"
        ) from exc

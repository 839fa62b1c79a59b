"""
Mail app account migration.

When a customer's mail domain is cancelled or parked elsewhere, the accounts
configured in the mail app still point at the old address. Every account of
the user whose display email, IMAP user or SMTP user equals the old address
is rewritten to the new one; fields holding anything else are left alone.
"""

from __future__ import annotations

import logging
import re
import shlex
from dataclasses import dataclass, field
from typing import Any

from ncw_ops.core.errors import InvalidArgumentError, MissingInputError
from ncw_ops.core.host.occ import HostAdmin

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

# account field -> mail:account:update option
_UPDATE_OPTIONS = {
    "email": "--email",
    "imap_user": "--imap-user",
    "smtp_user": "--smtp-user",
}


def validate_email(address: str, label: str) -> None:
    if not EMAIL_PATTERN.match(address or ""):
        raise InvalidArgumentError(f"Invalid {label} email address format: {address}")


@dataclass
class MailAccount:
    id: int
    email: str = ""
    imap_user: str = ""
    smtp_user: str = ""

    @classmethod
    def from_export(cls, data: dict[str, Any]) -> "MailAccount":
        """Build from one entry of ``occ mail:account:export --output=json``."""
        return cls(
            id=int(data["id"]),
            email=data.get("email") or "",
            imap_user=(data.get("imap") or {}).get("user") or "",
            smtp_user=(data.get("smtp") or {}).get("user") or "",
        )

    def uses(self, address: str) -> bool:
        return address in (self.email, self.imap_user, self.smtp_user)

    def changes_for(self, old: str, new: str) -> dict[str, str]:
        return {name: new for name in _UPDATE_OPTIONS if getattr(self, name) == old}

    def describe(self) -> str:
        return f"{self.email} (IMAP: {self.imap_user}, SMTP: {self.smtp_user})"


@dataclass
class MailMigrationResult:
    user: str
    old_email: str
    new_email: str
    dry_run: bool = False
    updated: dict[int, dict[str, str]] = field(default_factory=dict)
    planned: list[str] = field(default_factory=list)


class MailAccountMigrator:
    """
    Rewrite a user's mail accounts from one address to another.

    Missing users, users without mail accounts and users without an account
    using the old address are fatal. A failed update stops the run; accounts
    updated before it stay updated.
    """

    def __init__(self, host: HostAdmin, dry_run: bool = False):
        self.host = host
        self.dry_run = dry_run

    def migrate(self, user: str, old_email: str, new_email: str) -> MailMigrationResult:
        if not user:
            raise InvalidArgumentError("User id is required")
        validate_email(old_email, "old")
        validate_email(new_email, "new")
        if old_email == new_email:
            raise InvalidArgumentError("Old and new email address are identical")

        logger.info("Updating mail accounts of '%s': %s -> %s", user, old_email, new_email)
        if not self.host.user_exists(user):
            raise MissingInputError(f"User '{user}' does not exist")

        accounts = [MailAccount.from_export(entry) for entry in self.host.export_mail_accounts(user)]
        if not accounts:
            raise MissingInputError(f"No mail accounts found for user '{user}'")

        matching = [account for account in accounts if account.uses(old_email)]
        if not matching:
            configured = "; ".join(account.describe() for account in accounts)
            raise MissingInputError(
                f"No mail accounts found for user '{user}' with email '{old_email}'. "
                f"Configured accounts: {configured}"
            )
        logger.info("Found %d mail account(s) to update", len(matching))

        result = MailMigrationResult(user, old_email, new_email, dry_run=self.dry_run)
        for account in matching:
            changes = account.changes_for(old_email, new_email)
            logger.info("Updating account ID %d: %s", account.id, account.describe())
            if self.dry_run:
                options = [f"{_UPDATE_OPTIONS[name]}={value}" for name, value in changes.items()]
                command = shlex.join(["occ", "mail:account:update", str(account.id), *options])
                logger.info("[DRY RUN] Would execute: php %s", command)
                result.planned.append(command)
            else:
                self.host.update_mail_account(account.id, **changes)
            result.updated[account.id] = changes

        return result

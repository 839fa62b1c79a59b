"""
User support actions.

Correcting a user's email address (typically the initial admin account,
created with a typo) and resending the welcome mail. Both work through the
host capability and support a dry run that only records the occ commands.
"""

from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass, field

from ncw_ops.core.errors import HostCommandError, InvalidArgumentError, MissingInputError
from ncw_ops.core.host.occ import HostAdmin

logger = logging.getLogger(__name__)


@dataclass
class UserActionResult:
    """
    Outcome of a user action.

    ``email_changed`` is true when the stored address differs from the
    requested one, whether or not a dry run actually wrote it.
    """

    user: str
    dry_run: bool = False
    previous_email: str | None = None
    email_changed: bool = False
    welcome_sent: bool = False
    planned: list[str] = field(default_factory=list)


class UserAdmin:
    def __init__(self, host: HostAdmin, dry_run: bool = False):
        self.host = host
        self.dry_run = dry_run

    def require_user(self, user: str) -> None:
        """Fail unless the instance is installed and ``user`` exists."""
        if not user:
            raise InvalidArgumentError("Username is required")
        if not self.host.is_installed():
            raise MissingInputError("Nextcloud is not installed or not accessible")
        logger.info("Checking if user '%s' exists...", user)
        if not self.host.user_exists(user):
            raise MissingInputError(f"User '{user}' does not exist")

    def update_email(self, user: str, new_email: str, resend_welcome: bool = False) -> UserActionResult:
        """
        Set the email address of a user.

        An unchanged address is not written again; the welcome mail is still
        resent when requested.

        Args:
            user: Nextcloud user id
            new_email: Address to store (occ validates the format)
            resend_welcome: Send the welcome mail afterwards

        Returns:
            What was changed, sent or (in a dry run) planned
        """
        if not new_email:
            raise InvalidArgumentError("New email address is required")
        self.require_user(user)

        result = UserActionResult(user=user, dry_run=self.dry_run)
        result.previous_email = self.host.get_user_setting(user, "settings", "email") or None
        logger.info("Current email: %s", result.previous_email or "(not set)")

        if result.previous_email == new_email:
            logger.warning("Email address is already set to '%s' for user '%s'", new_email, user)
            if resend_welcome:
                self._send_welcome(result)
            return result

        result.email_changed = True
        if self.dry_run:
            self._plan(result, "user:setting", user, "settings", "email", new_email)
        else:
            logger.info("Updating email address for user '%s' to: %s", user, new_email)
            self.host.set_user_setting(user, "settings", "email", new_email)
            logger.info("Email address updated successfully for user: '%s'", user)

        if resend_welcome:
            try:
                self._send_welcome(result)
            except HostCommandError:
                logger.warning("Email address was updated but welcome email could not be sent")
                raise
        return result

    def resend_welcome(self, user: str) -> UserActionResult:
        """Resend the welcome mail to an existing user."""
        self.require_user(user)
        result = UserActionResult(user=user, dry_run=self.dry_run)
        self._send_welcome(result)
        return result

    def _send_welcome(self, result: UserActionResult) -> None:
        if self.dry_run:
            self._plan(result, "user:welcome", result.user)
            return
        logger.info("Resending welcome email to user: '%s'", result.user)
        self.host.send_welcome_mail(result.user)
        result.welcome_sent = True

    @staticmethod
    def _plan(result: UserActionResult, *args: str) -> None:
        command = shlex.join(["occ", *args])
        logger.info("[DRY RUN] Would execute: php %s", command)
        result.planned.append(command)

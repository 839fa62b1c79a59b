from ncw_ops.core.admin.mail_accounts import (
    MailAccount,
    MailAccountMigrator,
    MailMigrationResult,
    validate_email,
)
from ncw_ops.core.admin.users import UserActionResult, UserAdmin

__all__ = [
    "MailAccount",
    "MailAccountMigrator",
    "MailMigrationResult",
    "UserActionResult",
    "UserAdmin",
    "validate_email",
]

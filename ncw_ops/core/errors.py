"""
Error taxonomy.

Every failure path of the tooling is "log clearly, stop": the CLI catches
:class:`OpsError` subclasses, prints them and exits non-zero. Optional inputs
(feature blocks whose environment variables are absent) are not errors; they
are logged as warnings by the caller and skipped.
"""

from __future__ import annotations

from collections.abc import Sequence


class OpsError(Exception):
    """Base class for all fatal errors raised by ncw_ops."""


class MissingDependencyError(OpsError):
    """A required external binary (php, git, composer, npm, ...) is absent."""

    def __init__(self, binary: str, hint: str | None = None):
        self.binary = binary
        message = f"{binary} is required but not installed"
        if hint:
            message = f"{message} ({hint})"
        super().__init__(message)


class MissingInputError(OpsError):
    """A required file, manifest or environment variable is missing."""


class ManifestIntegrityError(OpsError):
    """The shipped manifest is not well-formed JSON before or after a write."""


class HostCommandError(OpsError):
    """The host administration CLI (or another external command) failed."""

    def __init__(self, args: Sequence[str], returncode: int, output: str = ""):
        self.args_list = list(args)
        self.returncode = returncode
        self.output = output
        detail = f": {output.strip()}" if output and output.strip() else ""
        super().__init__(
            f"Command '{' '.join(self.args_list)}' failed with exit code {returncode}{detail}"
        )


class HostResponseError(OpsError):
    """The host administration CLI succeeded but its output could not be parsed."""


class InvalidArgumentError(OpsError):
    """A command argument (user id, email address) is malformed."""

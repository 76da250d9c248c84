"""Exception types raised by pacsmith.

Only PrivilegeError and PackageSelectionError end a run. Everything
raised while a single package is being installed is caught by the
retry workflow and logged against that package.
"""


class PacsmithError(Exception):
    """Base class for all pacsmith errors."""

    exit_code = 1


class PrivilegeError(PacsmithError):
    """Not running as root, or no originating user for the AUR helper."""

    exit_code = 1


class PackageSelectionError(PacsmithError):
    """Package selection is malformed, empty, or its list file is
    missing."""

    exit_code = 2


class SetupError(PacsmithError):
    """A preparation step (AUR pre-install, cache cleanup) failed."""


class RemediationError(PacsmithError):
    """A remediation could not even start, e.g. no conflicting paths
    could be identified in the installer output."""


class BackupError(PacsmithError):
    """Backup ledger misuse or an unreadable ledger."""

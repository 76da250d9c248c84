"""Host checks performed before a batch starts."""

import os

from pacsmith.core.errors import PrivilegeError


def require_root() -> None:
    """Raise PrivilegeError unless running with an effective uid of 0."""
    if os.geteuid() != 0:
        raise PrivilegeError(
            "pacsmith install must be run as root (try: sudo pacsmith install)"
        )


def originating_user(configured: str | None = None) -> str:
    """Return the unprivileged user the AUR helper runs as.

    An explicitly configured user wins; otherwise the user who invoked
    sudo. Running the helper as root is refused.

    Raises:
        PrivilegeError: If no non-root user can be determined
    """
    user = configured or os.environ.get("SUDO_USER")
    if not user or user == "root":
        raise PrivilegeError(
            "Cannot determine a non-root user for the AUR helper; "
            "run through sudo or set config.aur.user"
        )
    return user

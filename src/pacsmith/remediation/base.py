"""Base remediation interface."""

from abc import abstractmethod
from typing import Protocol


class Remediation(Protocol):
    """Protocol for remediations run between install attempts.

    A remediation changes the system so that the next attempt has a
    better chance. Its own result never marks the package installed;
    that is decided by the package database or the next attempt.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Remediation name used in logs."""
        pass

    @abstractmethod
    def remediate(self, package: str, output: str) -> bool:
        """Act on a failed attempt.

        Args:
            package: Package that failed to install
            output: Combined installer output of the failed attempt

        Returns:
            True if the remediation considers itself successful
        """
        pass

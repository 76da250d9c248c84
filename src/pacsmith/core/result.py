"""Value objects passed between the backend, workflow and batch."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class CommandResult(BaseModel):
    """Result of one installer or query invocation."""

    success: bool
    returncode: int
    output: str = ""

    @classmethod
    def from_invoke(cls, result) -> CommandResult:
        """Build from an invoke.Result, combining stdout and stderr."""
        return cls(
            success=result.exited == 0,
            returncode=result.exited,
            output=result.stdout + result.stderr,
        )


class InstallAttempt(BaseModel):
    """One failed or successful attempt at installing a package."""

    package: str
    number: int
    returncode: int
    output: str
    log_file: Path | None = None
    timestamp: datetime = Field(default_factory=datetime.now)


class OutcomeStatus(str, Enum):
    INSTALLED = "installed"
    SKIPPED = "skipped"
    FAILED = "failed"


class Outcome(BaseModel):
    """Terminal result for one package."""

    package: str
    status: OutcomeStatus
    reason: str | None = None
    attempts: int = 0

    @classmethod
    def installed(cls, package: str, attempts: int) -> Outcome:
        return cls(
            package=package, status=OutcomeStatus.INSTALLED,
            attempts=attempts,
        )

    @classmethod
    def skipped(cls, package: str, reason: str) -> Outcome:
        return cls(package=package, status=OutcomeStatus.SKIPPED, reason=reason)

    @classmethod
    def failed(
        cls, package: str, attempts: int, reason: str | None = None
    ) -> Outcome:
        return cls(
            package=package, status=OutcomeStatus.FAILED,
            attempts=attempts, reason=reason,
        )


class BatchResult(BaseModel):
    """Accumulated outcomes of one batch run.

    Each package may be recorded once. The secondary AUR pass is kept
    apart from the primary outcomes so the failed list written at the
    end of the primary pass stays reproducible.
    """

    outcomes: list[Outcome] = Field(default_factory=list)
    secondary: list[Outcome] = Field(default_factory=list)

    def record(self, outcome: Outcome) -> None:
        if any(o.package == outcome.package for o in self.outcomes):
            raise ValueError(
                f"Outcome for '{outcome.package}' already recorded"
            )
        self.outcomes.append(outcome)

    def _with_status(self, status: OutcomeStatus) -> list[Outcome]:
        return [o for o in self.outcomes if o.status == status]

    @property
    def installed(self) -> list[Outcome]:
        return self._with_status(OutcomeStatus.INSTALLED)

    @property
    def skipped(self) -> list[Outcome]:
        return self._with_status(OutcomeStatus.SKIPPED)

    @property
    def failed(self) -> list[Outcome]:
        return self._with_status(OutcomeStatus.FAILED)

    @property
    def failed_packages(self) -> list[str]:
        return [o.package for o in self.failed]

    @property
    def recovered(self) -> list[str]:
        """Failed packages installed by the secondary pass."""
        return [
            o.package for o in self.secondary
            if o.status == OutcomeStatus.INSTALLED
        ]

    @property
    def total(self) -> int:
        return len(self.outcomes)

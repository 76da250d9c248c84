"""Per-package workflow state and dependencies."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable

from pydantic import Field

from pacsmith.classify import Classifier, ErrorCategory, ErrorClassifier
from pacsmith.core.base import BaseState
from pacsmith.core.result import InstallAttempt
from pacsmith.pacman import PackageBackend
from pacsmith.remediation import Remediation


class PackageStatus(str, Enum):
    PENDING = "pending"
    ATTEMPTING = "attempting"
    INSTALLED = "installed"
    SKIPPED = "skipped"
    FAILED = "failed"


class PackageState(BaseState):
    """State of one package moving through the retry workflow."""

    package: str
    status: PackageStatus = PackageStatus.PENDING
    attempts: list[InstallAttempt] = Field(
        default_factory=list,
        description="Failed attempts, oldest first",
    )
    categories: list[ErrorCategory] = Field(
        default_factory=list,
        description="Classification of each failed attempt",
    )


@dataclass
class InstallContext:
    """Collaborators shared by every package in a batch."""

    backend: PackageBackend
    conflict_resolver: Remediation
    dependency_repairer: Remediation
    errors_dir: Path
    classifier: Classifier = field(default_factory=ErrorClassifier)
    max_attempts: int = 2
    retry_delay: float = 2.0
    sleep: Callable[[float], None] = time.sleep

    def remediation_for(self, category: ErrorCategory) -> Remediation | None:
        if category == ErrorCategory.FILE_CONFLICT:
            return self.conflict_resolver
        if category == ErrorCategory.DEPENDENCY_ISSUE:
            return self.dependency_repairer
        return None

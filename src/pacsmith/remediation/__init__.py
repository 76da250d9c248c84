"""Remediations applied between install attempts."""

from pacsmith.remediation.base import Remediation
from pacsmith.remediation.conflict import (
    ConflictAction,
    ConflictRecord,
    ConflictResolver,
    OwnerRemovalPolicy,
)
from pacsmith.remediation.dependency import DependencyRepairer, RepairResult

__all__ = [
    "Remediation",
    "ConflictAction",
    "ConflictRecord",
    "ConflictResolver",
    "OwnerRemovalPolicy",
    "DependencyRepairer",
    "RepairResult",
]

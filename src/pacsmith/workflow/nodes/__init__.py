"""Workflow nodes for the per-package state machine."""

from pacsmith.workflow.nodes.attempt import Attempt
from pacsmith.workflow.nodes.check_installed import CheckInstalled
from pacsmith.workflow.nodes.remediate import Remediate

__all__ = [
    "CheckInstalled",
    "Attempt",
    "Remediate",
]

"""Per-package install/retry workflow."""

from pacsmith.workflow.context import InstallContext, PackageState, PackageStatus
from pacsmith.workflow.graph import create_workflow, install_package

__all__ = [
    "InstallContext",
    "PackageState",
    "PackageStatus",
    "create_workflow",
    "install_package",
]

"""Repair dependency failures by reinstalling with looser settings."""

from __future__ import annotations

import re
from dataclasses import dataclass

from pacsmith.core.log import logger
from pacsmith.pacman import InstallMode, PackageBackend

# Matches both
#   :: unable to satisfy dependency 'libfoo>=1.2' required by tool
#   dependency libfoo is required by tool
MISSING_DEPENDENCY = re.compile(
    r"unable to satisfy dependency\s+'([^'\s]+)'\s+required"
    r"|dependency\s+'?([A-Za-z0-9@._+-]+(?:[<>=]+[^\s']+)?)'?\s+is\s+required",
    re.IGNORECASE,
)
VERSION_CONSTRAINT = re.compile(r"[<>=].*$")


def extract_missing_dependencies(output: str) -> list[str]:
    """Dependency names from installer output, version constraints
    removed, in first-seen order."""
    names: dict[str, None] = {}
    for match in MISSING_DEPENDENCY.finditer(output):
        name = VERSION_CONSTRAINT.sub("", match.group(1) or match.group(2))
        if name:
            names.setdefault(name, None)
    return list(names)


@dataclass
class RepairResult:
    success: bool
    step: str | None = None


class DependencyRepairer:
    """Tries, in order, until one succeeds:

    1. overwrite: reinstall allowing file overwrites
    2. needed: reinstall skipping what is already up to date
    3. explicit-dependencies: install each dependency named in the
       error output, then retry the package once
    """

    STEPS = ("overwrite", "needed", "explicit-dependencies")

    def __init__(self, backend: PackageBackend):
        self.backend = backend

    @property
    def name(self) -> str:
        return "dependency"

    def remediate(self, package: str, output: str) -> bool:
        return self.repair(package, output).success

    def repair(self, package: str, output: str) -> RepairResult:
        for step in self.STEPS:
            handler = getattr(self, "_" + step.replace("-", "_"))
            logger.debug(f"Dependency repair step '{step}' for {package}")
            if handler(package, output):
                logger.info(
                    f"Dependency repair succeeded for {package} "
                    f"(step: {step})"
                )
                return RepairResult(success=True, step=step)

        logger.warning(f"Dependency repair failed for {package}")
        return RepairResult(success=False)

    def _overwrite(self, package: str, output: str) -> bool:
        return self.backend.install(package, InstallMode.OVERWRITE).success

    def _needed(self, package: str, output: str) -> bool:
        return self.backend.install(package, InstallMode.NEEDED).success

    def _explicit_dependencies(self, package: str, output: str) -> bool:
        dependencies = extract_missing_dependencies(output)
        if not dependencies:
            logger.debug(f"No missing dependencies named for {package}")
            return False

        for dependency in dependencies:
            result = self.backend.install(dependency, InstallMode.NEEDED)
            if not result.success:
                # Best effort; the retry below shows whether it mattered
                logger.warning(
                    f"Could not install dependency {dependency} "
                    f"for {package}"
                )

        return self.backend.install(package).success

"""Batch orchestrator - drives the whole package list."""

from __future__ import annotations

import asyncio
from pathlib import Path

from pydantic_graph import Graph

from pacsmith.core.errors import SetupError
from pacsmith.core.log import logger
from pacsmith.core.result import BatchResult, Outcome, OutcomeStatus
from pacsmith.pacman import AurHelper, PacmanBackend
from pacsmith.workflow import InstallContext, create_workflow, install_package

FAILED_LIST = "failed_packages.txt"
SKIPPED_LIST = "skipped_packages.txt"

GLYPHS = {
    OutcomeStatus.INSTALLED: "✓",
    OutcomeStatus.SKIPPED: "↷",
    OutcomeStatus.FAILED: "✗",
}


class BatchOrchestrator:
    """Install a list of packages one at a time.

    Owns the BatchResult for a run. Per-package failures are recorded
    and never abort the batch.
    """

    def __init__(
        self,
        context: InstallContext,
        log_dir: Path,
        aur: AurHelper | None = None,
        workflow: Graph | None = None,
    ):
        self.context = context
        self.log_dir = Path(log_dir)
        self.aur = aur
        self.workflow = workflow or create_workflow()

    @property
    def failed_list(self) -> Path:
        return self.log_dir / FAILED_LIST

    @property
    def skipped_list(self) -> Path:
        return self.log_dir / SKIPPED_LIST

    async def run(self, packages: list[str]) -> BatchResult:
        """Process every package in input order.

        Args:
            packages: Package names; duplicates are processed once

        Returns:
            BatchResult with exactly one outcome per distinct package
        """
        queue = self._dedupe(packages)
        result = BatchResult()
        logger.info(f"Processing {len(queue)} packages")

        for index, package in enumerate(queue, start=1):
            try:
                outcome = await install_package(
                    self.workflow, package, self.context
                )
            except Exception as e:
                logger.error(f"Unexpected error processing {package}: {e}")
                outcome = Outcome.failed(package, attempts=0, reason=str(e))

            result.record(outcome)
            self._report(index, len(queue), outcome, result)
            # Let a pending Ctrl-C cancellation land between packages
            await asyncio.sleep(0)

        logger.info(
            f"Batch complete: {len(result.installed)} installed, "
            f"{len(result.skipped)} skipped, {len(result.failed)} failed"
        )
        return result

    @staticmethod
    def _dedupe(packages: list[str]) -> list[str]:
        seen: set[str] = set()
        queue = []
        for package in packages:
            if package in seen:
                logger.warning(f"Duplicate package {package} ignored")
                continue
            seen.add(package)
            queue.append(package)
        return queue

    @staticmethod
    def _report(
        index: int, total: int, outcome: Outcome, result: BatchResult
    ) -> None:
        message = (
            f"{GLYPHS[outcome.status]} [{index}/{total}] {outcome.package}"
        )
        if outcome.reason:
            message += f" ({outcome.reason})"
        message += (
            f" | installed {len(result.installed)}"
            f" skipped {len(result.skipped)}"
            f" failed {len(result.failed)}"
        )
        if outcome.status == OutcomeStatus.FAILED:
            logger.warning(message)
        else:
            logger.info(message)

    def persist(self, result: BatchResult) -> None:
        """Write the failed and skipped lists into the log directory.

        Both files are always written, empty when nothing applies.
        """
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.failed_list.write_text(
            "".join(f"{name}\n" for name in result.failed_packages)
        )
        self.skipped_list.write_text("".join(
            f"{o.package} ({o.reason})\n" for o in result.skipped
        ))
        logger.info(
            f"Wrote {len(result.failed)} failed to {self.failed_list}, "
            f"{len(result.skipped)} skipped to {self.skipped_list}"
        )

    def retry_with_aur(self, result: BatchResult) -> list[Outcome]:
        """Give every failed package a single AUR helper attempt.

        Outcomes are terminal and stored in result.secondary; the
        primary outcomes and the failed list are left untouched.
        """
        if self.aur is None:
            logger.warning("No AUR helper configured, skipping AUR pass")
            return []
        if not self.aur.available():
            logger.warning(
                f"AUR helper {self.aur.helper} not found, skipping AUR pass"
            )
            return []

        for package in result.failed_packages:
            logger.info(f"Retrying {package} with {self.aur.helper}")
            command = self.aur.install(package)
            if command.success:
                outcome = Outcome.installed(package, attempts=1)
            else:
                outcome = Outcome.failed(
                    package, attempts=1, reason=f"{self.aur.helper} failed"
                )
            result.secondary.append(outcome)
            logger.info(f"{GLYPHS[outcome.status]} {package} via AUR")

        logger.info(
            f"AUR pass recovered {len(result.recovered)} of "
            f"{len(result.failed)} failed packages"
        )
        return result.secondary

    def prepare(self, preinstall: list[str]) -> list[str]:
        """Install helper-side prerequisites before the batch.

        Returns:
            Packages that could not be installed
        """
        missing = []
        for package in preinstall:
            try:
                self._preinstall(package)
            except SetupError as e:
                logger.warning(str(e))
                missing.append(package)
        return missing

    def _preinstall(self, package: str) -> None:
        if self.aur is None or not self.aur.available():
            raise SetupError(
                f"Cannot preinstall {package}: no AUR helper available"
            )
        logger.info(f"Preinstalling {package}")
        result = self.aur.install(package)
        if not result.success:
            raise SetupError(
                f"Preinstall of {package} failed "
                f"(exit {result.returncode})"
            )

    def clean_cache(self, backend: PacmanBackend) -> bool:
        """Clear the package cache; failure is logged and ignored."""
        logger.info("Cleaning package cache")
        result = backend.clean_cache()
        if not result.success:
            logger.warning(
                f"Cache cleanup failed (exit {result.returncode})"
            )
        return result.success

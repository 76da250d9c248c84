"""Install command - runs the batch installer."""

from __future__ import annotations

import asyncio
import shutil

from pydantic import BaseModel

from pacsmith.backup import BackupLedger
from pacsmith.batch import BatchOrchestrator
from pacsmith.classify import ErrorClassifier
from pacsmith.core.errors import PacsmithError
from pacsmith.core.log import logger
from pacsmith.core.prompt import choose, confirm
from pacsmith.core.result import BatchResult
from pacsmith.core.system import originating_user, require_root
from pacsmith.pacman import AurHelper, PacmanBackend
from pacsmith.packages import resolve_packages
from pacsmith.remediation import ConflictResolver, DependencyRepairer
from pacsmith.workflow import InstallContext

EXIT_INTERRUPTED = 130


class InstallCommand(BaseModel):
    """Install the selected packages with automatic remediation.

    Each package is attempted up to install.max_attempts times. File
    conflicts are resolved by removing stale owners or backing up and
    moving the file; dependency failures are repaired before the next
    attempt. Packages that still fail may get one AUR helper attempt.

    All configuration comes from pacsmith.yaml, the environment, or
    CLI flags (e.g. --config.packages.selection group:blackarch-scanner).
    """

    async def run_workflow(self, state: "State") -> int:
        """Run the install workflow.

        Args:
            state: State instance with config loaded

        Returns:
            Exit code (0=success, 1=privilege, 2=selection, 130=interrupt)
        """
        config = state.config
        runtime = state.runtime.install

        try:
            require_root()
            aur = self._aur_helper(config)
            backend = PacmanBackend(
                config.commands.get("pacman", {}),
                timeout=config.install.timeout,
            )
            ledger = BackupLedger(config.backups_dir)
            orchestrator = BatchOrchestrator(
                self._context(config, backend, ledger),
                log_dir=config.log_root,
                aur=aur,
            )
            runtime.packages = resolve_packages(
                config.packages.selection,
                backend,
                repository=config.packages.repository,
                sentinel=config.packages.sentinel,
            )
        except PacsmithError as e:
            logger.error(str(e))
            return e.exit_code

        if config.interactive and not confirm(
            f"Install {len(runtime.packages)} packages?", default=True
        ):
            logger.info("Installation declined")
            runtime.status = "declined"
            return 0

        try:
            if config.aur.preinstall:
                orchestrator.prepare(config.aur.preinstall)

            runtime.status = "running"
            result = await orchestrator.run(runtime.packages)
            runtime.result = result
            orchestrator.persist(result)

            if result.failed and self._want_aur_pass(config, aur):
                orchestrator.retry_with_aur(result)

            if config.install.clean_cache:
                orchestrator.clean_cache(backend)
        except (KeyboardInterrupt, asyncio.CancelledError):
            logger.warning(
                "Interrupted, aborting the current package and the batch"
            )
            runtime.status = "interrupted"
            self._cleanup_backups(config, ledger)
            return EXIT_INTERRUPTED

        runtime.status = "complete"
        self._summarize(result, orchestrator)
        self._cleanup_backups(config, ledger)
        return 0

    @staticmethod
    def _aur_helper(config) -> AurHelper | None:
        if not config.aur.enabled:
            return None
        if shutil.which(config.aur.helper) is None:
            logger.info(
                f"AUR helper {config.aur.helper} not found, AUR pass disabled"
            )
            return None
        return AurHelper(
            helper=config.aur.helper,
            user=originating_user(config.aur.user),
            template=config.commands.get("aur", {}).get("install", ""),
        )

    @staticmethod
    def _context(config, backend, ledger) -> InstallContext:
        return InstallContext(
            backend=backend,
            conflict_resolver=ConflictResolver(
                backend, ledger, policy=config.install.owner_removal
            ),
            dependency_repairer=DependencyRepairer(backend),
            errors_dir=config.errors_dir,
            classifier=ErrorClassifier.from_config(
                [rule.model_dump() for rule in config.classifier.rules]
            ),
            max_attempts=config.install.max_attempts,
            retry_delay=config.install.retry_delay,
        )

    @staticmethod
    def _want_aur_pass(config, aur: AurHelper | None) -> bool:
        if aur is None:
            return False
        if config.interactive:
            return confirm(
                "Retry failed packages with the AUR helper?",
                default=config.aur.retry_failed,
            )
        return config.aur.retry_failed

    @staticmethod
    def _summarize(result: BatchResult, orchestrator: BatchOrchestrator):
        logger.info(
            f"Installed {len(result.installed)}, "
            f"skipped {len(result.skipped)}, "
            f"failed {len(result.failed)} of {result.total} packages"
        )
        if result.secondary:
            logger.info(f"Recovered via AUR: {len(result.recovered)}")
        if result.failed:
            logger.warning(
                f"Failed packages listed in {orchestrator.failed_list}"
            )

    @staticmethod
    def _cleanup_backups(config, ledger: BackupLedger) -> None:
        """Apply the backup disposition, asking first when interactive."""
        count = ledger.file_count()
        if count == 0:
            return

        action = config.backup.cleanup
        if config.interactive:
            action = choose(
                f"{count} backup files in {ledger.root}. Keep, archive "
                f"or delete them?",
                ["keep", "archive", "delete"],
                default=action,
            )

        try:
            if action == "archive":
                ledger.archive(config.backup.archive_dir, confirmed=True)
            elif action == "delete":
                ledger.purge(confirmed=True)
            else:
                logger.info(f"Kept {count} backup files in {ledger.root}")
        except (PacsmithError, OSError) as e:
            logger.error(f"Backup cleanup failed: {e}")

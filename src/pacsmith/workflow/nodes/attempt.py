"""Attempt node - run the installer once."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from pydantic_graph import BaseNode, End, GraphRunContext

from pacsmith.core.log import logger
from pacsmith.core.result import InstallAttempt, Outcome
from pacsmith.workflow.context import InstallContext, PackageState, PackageStatus


@dataclass
class Attempt(BaseNode[PackageState, InstallContext, Outcome]):
    """Invoke the installer and route on its exit status."""

    async def run(
        self, ctx: GraphRunContext[PackageState, InstallContext]
    ) -> "Remediate | End[Outcome]":
        """Install the package once.

        Returns:
            End[Outcome]: Installed on success
            Remediate: On failure, with the attempt recorded in state
        """
        package = ctx.state.package
        number = len(ctx.state.attempts) + 1
        logger.info(
            f"Installing {package} "
            f"(attempt {number}/{ctx.deps.max_attempts})"
        )

        result = ctx.deps.backend.install(package)
        if result.success:
            ctx.state.status = PackageStatus.INSTALLED
            return End(Outcome.installed(package, attempts=number))

        log_file = self._save_output(
            ctx.deps.errors_dir, package, number, result.output
        )
        ctx.state.attempts.append(InstallAttempt(
            package=package,
            number=number,
            returncode=result.returncode,
            output=result.output,
            log_file=log_file,
        ))
        logger.warning(
            f"Attempt {number} for {package} failed "
            f"(exit {result.returncode}), output in {log_file}"
        )

        from pacsmith.workflow.nodes.remediate import Remediate
        return Remediate()

    @staticmethod
    def _save_output(
        errors_dir: Path, package: str, number: int, output: str
    ) -> Path | None:
        log_file = errors_dir / f"{package}.attempt{number}.log"
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            log_file.write_text(output)
        except OSError as e:
            logger.error(f"Could not save installer output to {log_file}: {e}")
            return None
        return log_file

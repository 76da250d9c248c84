"""Remediate node - classify a failure and act on it."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from pacsmith.core.errors import PacsmithError
from pacsmith.core.log import logger
from pacsmith.core.result import Outcome
from pacsmith.workflow.context import InstallContext, PackageState, PackageStatus


@dataclass
class Remediate(BaseNode[PackageState, InstallContext, Outcome]):
    """Classify the last failed attempt and run its remediation.

    A remediation's own result is only logged; it never marks the
    package installed. Some remediations reinstall the package as a
    side effect, so after one reports success the package database is
    consulted before spending another attempt.

    Every failed attempt counts against the budget whether or not a
    remediation ran.
    """

    async def run(
        self, ctx: GraphRunContext[PackageState, InstallContext]
    ) -> "Attempt | End[Outcome]":
        """Remediate, then retry or give up.

        Returns:
            Attempt: If the attempt budget is not exhausted
            End[Outcome]: Installed, if remediation left the package
                installed; failed, once max_attempts attempts failed
        """
        # Cancellation point: an interrupt during the failed attempt
        # stops the package here, before any remediation runs
        await asyncio.sleep(0)

        state = ctx.state
        package = state.package
        attempt = state.attempts[-1]

        classification = ctx.deps.classifier.classify(attempt.output)
        state.categories.append(classification.category)

        remediated = False
        remediation = ctx.deps.remediation_for(classification.category)
        if remediation is None:
            logger.error(
                f"Unrecognized install error for {package}; "
                f"full output in {attempt.log_file}"
            )
        else:
            logger.info(
                f"{package}: {classification.category.value} "
                f"(rule {classification.rule}), running "
                f"{remediation.name} remediation"
            )
            try:
                remediated = remediation.remediate(package, attempt.output)
            except (PacsmithError, OSError) as e:
                logger.error(
                    f"{remediation.name} remediation for {package} "
                    f"failed: {e}"
                )
            else:
                if remediated:
                    logger.info(
                        f"{remediation.name} remediation for {package} "
                        f"succeeded"
                    )
                else:
                    logger.warning(
                        f"{remediation.name} remediation for {package} "
                        f"did not succeed"
                    )

        if remediated and ctx.deps.backend.is_installed(package):
            logger.info(f"{package} installed during remediation")
            state.status = PackageStatus.INSTALLED
            return End(Outcome.installed(
                package, attempts=len(state.attempts)
            ))

        if len(state.attempts) >= ctx.deps.max_attempts:
            state.status = PackageStatus.FAILED
            return End(Outcome.failed(
                package,
                attempts=len(state.attempts),
                reason=classification.category.value,
            ))

        ctx.deps.sleep(ctx.deps.retry_delay)
        await asyncio.sleep(0)

        from pacsmith.workflow.nodes.attempt import Attempt
        return Attempt()

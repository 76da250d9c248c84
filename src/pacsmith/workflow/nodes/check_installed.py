"""CheckInstalled node - skip packages that are already present."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from pacsmith.core.log import logger
from pacsmith.core.result import Outcome
from pacsmith.workflow.context import InstallContext, PackageState, PackageStatus


@dataclass
class CheckInstalled(BaseNode[PackageState, InstallContext, Outcome]):
    """Entry node; a package already installed never reaches Attempt."""

    async def run(
        self, ctx: GraphRunContext[PackageState, InstallContext]
    ) -> "Attempt | End[Outcome]":
        package = ctx.state.package

        if ctx.deps.backend.is_installed(package):
            logger.debug(f"{package} is already installed")
            ctx.state.status = PackageStatus.SKIPPED
            return End(Outcome.skipped(package, "already installed"))

        ctx.state.status = PackageStatus.ATTEMPTING

        from pacsmith.workflow.nodes.attempt import Attempt
        return Attempt()

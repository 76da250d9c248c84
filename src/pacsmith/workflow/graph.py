"""Graph workflow definition."""

from pydantic_graph import End, Graph

from pacsmith.core.log import logger
from pacsmith.core.result import Outcome
from pacsmith.workflow.context import InstallContext, PackageState


def create_workflow() -> Graph:
    """Create the per-package install workflow graph.

    CheckInstalled → Attempt → [End | Remediate → Attempt ...]

    Returns:
        Graph workflow with PackageState as state_type
    """
    logger.debug("Building install workflow graph")

    # Import nodes (lazy to avoid circular imports)
    from pacsmith.workflow.nodes.attempt import Attempt
    from pacsmith.workflow.nodes.check_installed import CheckInstalled
    from pacsmith.workflow.nodes.remediate import Remediate

    return Graph(
        nodes=(
            CheckInstalled,
            Attempt,
            Remediate,
        ),
        state_type=PackageState,
    )


async def install_package(
    workflow: Graph, package: str, context: InstallContext
) -> Outcome:
    """Drive one package through the workflow to a terminal outcome."""
    from pacsmith.workflow.nodes.check_installed import CheckInstalled

    state = PackageState(package=package)
    async with workflow.iter(
        CheckInstalled(), state=state, deps=context
    ) as run:
        async for node in run:
            if isinstance(node, End):
                return node.data

    # Every path through the graph ends in End
    raise RuntimeError(f"Workflow for {package} ended without an outcome")

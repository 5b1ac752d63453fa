"""
Deploy glue: start every sibling unit before the main unit.
"""

import asyncio
import logging
import os
import shlex
import shutil
from typing import Awaitable, Callable, Sequence

from .core.config import DEFAULT_DEPLOY_COMMAND
from .core.exceptions import DeployError, RemoteSplitError
from .core.types import SplitPlan
from .generate.manifest import MANIFEST_FILE, load_manifest
from .remote.transport import wait_until_serving

logger = logging.getLogger(__name__)

HealthWait = Callable[[str, float], Awaitable[None]]


def _check_unit(unit_dir: str) -> None:
    if not os.path.exists(os.path.join(unit_dir, MANIFEST_FILE)):
        raise DeployError(f"{unit_dir}/{MANIFEST_FILE} not found. Run 'build' first.")


async def _run(argv: Sequence[str], cwd: str, name: str) -> None:
    logger.info(f"Deploying {name}...")
    process = await asyncio.create_subprocess_exec(*argv, cwd=cwd)
    returncode = await process.wait()
    if returncode != 0:
        raise DeployError(
            f"Failed to deploy {name} (exit code {returncode}). Fix the error above and retry."
        )
    logger.info(f"{name} deployed")


async def deploy_split_units(
    output: str,
    plans: Sequence[SplitPlan],
    command: str = DEFAULT_DEPLOY_COMMAND,
    health_timeout: float = 30.0,
    wait_for_sibling: HealthWait = wait_until_serving,
) -> None:
    """
    Run ``command`` in each sibling unit directory, in plan order, then in the
    main unit directory.

    Each sibling must report serving before the next unit is deployed, so the
    main unit never starts ahead of a sibling it binds to.

    Raises:
        DeployError: A unit is missing, the deploy tool is not installed, a
            deploy command fails or a sibling never becomes healthy
    """
    output = os.path.abspath(output)
    argv = shlex.split(command)
    if not argv or shutil.which(argv[0]) is None:
        raise DeployError(f"Deploy tool not found: {argv[0] if argv else command!r}")

    main_dir = os.path.join(output, "main")
    for plan in plans:
        _check_unit(os.path.join(output, plan.service_name))
    _check_unit(main_dir)

    for plan in plans:
        service_dir = os.path.join(output, plan.service_name)
        await _run(argv, service_dir, plan.service_name)

        address = load_manifest(os.path.join(service_dir, MANIFEST_FILE))["address"]
        try:
            await wait_for_sibling(address, health_timeout)
        except RemoteSplitError as e:
            raise DeployError(f"{plan.service_name} did not become healthy: {e}") from e

    await _run(argv, main_dir, "main unit")
    logger.info("All units deployed successfully")

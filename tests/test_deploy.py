"""
Tests for deploy ordering and failure handling.
"""

import os
import shlex
import sys

import pytest
import yaml

from remotesplit.analysis import BundleAnalyzer
from remotesplit.build import build_split_units
from remotesplit.core.config import SplitConfig
from remotesplit.core.exceptions import DeployError, TransportError
from remotesplit.core.types import SplitPlan
from remotesplit.deploy import deploy_split_units
from remotesplit.plan import create_split_plans


def log_command(log_path):
    """Command appending the name of the directory it runs in to ``log_path``."""
    script = "import os, sys; open(sys.argv[1], 'a').write(os.path.basename(os.getcwd()) + '\\n')"
    return shlex.join([sys.executable, "-c", script, str(log_path)])


@pytest.fixture
def units(tmp_path):
    out = tmp_path / "out"
    plans = [
        SplitPlan("alpha", "alpha-service", "ALPHA", "AlphaEntrypoint"),
        SplitPlan("beta", "beta-service", "BETA", "BetaEntrypoint"),
    ]
    for index, plan in enumerate(plans):
        unit = out / plan.service_name
        unit.mkdir(parents=True)
        (unit / "unit.yaml").write_text(yaml.safe_dump({
            "name": plan.service_name,
            "address": f"localhost:{7001 + index}",
        }))
    (out / "main").mkdir()
    (out / "main" / "unit.yaml").write_text(yaml.safe_dump({"name": "main-worker"}))
    return out, plans


def recording_wait(log_path, fail_for=None):
    async def wait(address, timeout):
        with open(log_path, "a") as f:
            f.write(f"wait {address}\n")
        if address == fail_for:
            raise TransportError(f"Sibling at {address} not serving after {timeout}s")
    return wait


@pytest.mark.asyncio
async def test_siblings_deploy_before_main(units, tmp_path):
    out, plans = units
    log = tmp_path / "deploy.log"

    await deploy_split_units(
        str(out), plans, command=log_command(log), wait_for_sibling=recording_wait(log)
    )

    assert log.read_text().splitlines() == [
        "alpha-service",
        "wait localhost:7001",
        "beta-service",
        "wait localhost:7002",
        "main",
    ]


@pytest.mark.asyncio
async def test_unhealthy_sibling_stops_the_deploy(units, tmp_path):
    out, plans = units
    log = tmp_path / "deploy.log"

    with pytest.raises(DeployError, match="alpha-service did not become healthy"):
        await deploy_split_units(
            str(out), plans, command=log_command(log),
            wait_for_sibling=recording_wait(log, fail_for="localhost:7001"),
        )
    assert log.read_text().splitlines() == ["alpha-service", "wait localhost:7001"]


@pytest.mark.asyncio
async def test_missing_unit_deploys_nothing(units, tmp_path):
    out, plans = units
    log = tmp_path / "deploy.log"
    (out / "beta-service" / "unit.yaml").unlink()

    with pytest.raises(DeployError, match="Run 'build' first"):
        await deploy_split_units(
            str(out), plans, command=log_command(log), wait_for_sibling=recording_wait(log)
        )
    assert not log.exists()


@pytest.mark.asyncio
async def test_missing_deploy_tool(units):
    out, plans = units
    with pytest.raises(DeployError, match="Deploy tool not found"):
        await deploy_split_units(str(out), plans, command="remotesplit-no-such-tool up")


@pytest.mark.asyncio
async def test_failing_command(units):
    out, plans = units
    command = shlex.join([sys.executable, "-c", "raise SystemExit(3)"])
    with pytest.raises(DeployError, match="Failed to deploy alpha-service \\(exit code 3\\)"):
        await deploy_split_units(str(out), plans, command=command)


@pytest.fixture
def fake_docker(tmp_path, monkeypatch):
    """A ``docker`` on PATH that records the unit it runs in and needs a compose file there."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    log = tmp_path / "docker.log"
    script = bin_dir / "docker"
    script.write_text(
        "#!/bin/sh\n"
        "test -f compose.yaml -a -f Dockerfile -a -f requirements.txt || exit 14\n"
        f'echo "$(basename "$(pwd -P)") $*" >> "{log}"\n'
    )
    script.chmod(0o755)
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")
    for name in ("REMOTESPLIT_DEPLOY_COMMAND", "REMOTESPLIT_OUTPUT", "REMOTESPLIT_BASE_PORT", "REMOTESPLIT_SERVICE_HOST"):
        monkeypatch.delenv(name, raising=False)
    return log


@pytest.mark.asyncio
async def test_build_then_deploy_with_defaults(app_tree, tmp_path, fake_docker):
    analysis = BundleAnalyzer(search_paths=[app_tree.site_packages]).analyze(app_tree.entry)
    plans = create_split_plans(["heavypkg"], analysis.packages, 0)
    config = SplitConfig(entry=str(app_tree.entry), output=str(tmp_path / "out"))
    build_split_units(config, plans, analysis)

    waited = []

    async def wait(address, timeout):
        waited.append(address)

    await deploy_split_units(
        config.output, plans, command=config.deploy_command, wait_for_sibling=wait
    )

    assert fake_docker.read_text().splitlines() == [
        "heavypkg-service compose up -d --build",
        "main compose up -d --build",
    ]
    assert waited == [config.sibling_address(0)]

"""
Build orchestrator: write the main unit and one sibling unit per plan.

Output layout::

    <output>/
        .plans.json
        main/
            unit.yaml
            compose.yaml, Dockerfile, requirements.txt
            src/_entry.py
            src/app/...                 the application files
            src/stubs/<package>.py
            src/stubs/<package>.pyi
        <service_name>/
            unit.yaml
            compose.yaml, Dockerfile, requirements.txt
            src/service.py
"""

import json
import logging
import os
import shutil
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .analysis import analyze_bundle
from .core.config import SplitConfig
from .core.exceptions import BuildError
from .core.types import BundleAnalysis, SplitPlan
from .generate import (
    MAIN_MODULE,
    MANIFEST_FILE,
    dump_manifest,
    generate_client_stub,
    generate_entry_shim,
    generate_service_module,
    generate_stub_types,
    main_artefacts,
    main_manifest,
    service_manifest,
    sibling_artefacts,
    stub_module_name,
)

logger = logging.getLogger(__name__)

PLANS_FILE = ".plans.json"
APP_DIR = "app"


@dataclass
class BuildResult:
    """Unit sizes after a build, in bytes of attributed source."""

    main_size: int
    services: List[Tuple[str, int]] = field(default_factory=list)

    @property
    def combined_size(self) -> int:
        return self.main_size + sum(size for _, size in self.services)


def _write(path: str, content: str) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'w') as f:
        f.write(content)


def write_plans(output: str, plans: Sequence[SplitPlan]) -> str:
    path = os.path.join(output, PLANS_FILE)
    _write(path, json.dumps([plan.to_dict() for plan in plans], indent=2))
    return path


def read_plans(output: str) -> List[SplitPlan]:
    """
    Raises:
        BuildError: The plans file is missing or unreadable
    """
    path = os.path.join(output, PLANS_FILE)
    try:
        with open(path, 'r') as f:
            return [SplitPlan.from_dict(item) for item in json.load(f)]
    except (OSError, ValueError, KeyError, TypeError) as e:
        raise BuildError(f"{path} not found or invalid. Run 'build' first.") from e


def copy_application(
    entry: str,
    application_files: Sequence[str],
    target_dir: str,
) -> List[str]:
    """
    Copy the application's own files into ``target_dir``.

    Paths are kept relative to the entry's directory; the entry itself is
    always copied. Files outside that directory are left behind with a warning.

    Returns:
        The copied paths, relative to ``target_dir``
    """
    entry_path = os.path.realpath(entry)
    app_root = os.path.dirname(entry_path)

    copied = []
    for path in sorted({entry_path, *(os.path.realpath(p) for p in application_files)}):
        relative = os.path.relpath(path, app_root)
        if relative.startswith(os.pardir + os.sep) or os.path.isabs(relative):
            logger.warning(f"{path} is outside {app_root} and was not copied to the main unit")
            continue
        if not os.path.isfile(path):
            logger.warning(f"{path} does not exist and was not copied to the main unit")
            continue
        destination = os.path.join(target_dir, relative)
        os.makedirs(os.path.dirname(destination), exist_ok=True)
        shutil.copy2(path, destination)
        copied.append(relative)
    return copied


def _write_artefacts(unit_dir: str, artefacts: Dict[str, str]) -> None:
    for name, content in artefacts.items():
        _write(os.path.join(unit_dir, name), content)


def build_split_units(
    config: SplitConfig,
    plans: Sequence[SplitPlan],
    analysis: Optional[BundleAnalysis] = None,
) -> BuildResult:
    """
    Generate every unit directory for ``plans``.

    Args:
        config: Build configuration
        plans: Plans in deploy order, with export names discovered
        analysis: Analysis of ``config.entry``; computed when omitted

    Returns:
        Sizes of the main unit and of each sibling unit
    """
    if not config.entry or not os.path.isfile(config.entry):
        raise BuildError(f"Entry point not found: {config.entry}")
    if analysis is None:
        analysis = analyze_bundle(config.entry)

    output = os.path.abspath(config.output)
    main_dir = os.path.join(output, "main")
    main_src = os.path.join(main_dir, "src")

    stubs = {}
    for plan in plans:
        stub_name = stub_module_name(plan.package_name)
        _write(os.path.join(main_src, "stubs", f"{stub_name}.py"), generate_client_stub(plan))
        _write(os.path.join(main_src, "stubs", f"{stub_name}.pyi"), generate_stub_types(plan))
        stubs[plan.package_name] = f"stubs/{stub_name}.py"

    copy_application(config.entry, analysis.application_files, os.path.join(main_src, APP_DIR))
    entry = f"{APP_DIR}/{os.path.basename(config.entry)}"
    services = {plan.binding_name: config.sibling_address(i) for i, plan in enumerate(plans)}
    _write(
        os.path.join(main_src, "_entry.py"),
        generate_entry_shim(entry, stubs, services, config.call_timeout),
    )
    _write(
        os.path.join(main_dir, MANIFEST_FILE),
        dump_manifest(main_manifest(config, list(plans))),
    )
    relocated_names = {plan.package_name for plan in plans}
    _write_artefacts(main_dir, main_artefacts(
        config.worker_name,
        [name for name in analysis.names if name not in relocated_names],
        MAIN_MODULE,
    ))

    result_services = []
    relocated = 0
    for index, plan in enumerate(plans):
        service_dir = os.path.join(output, plan.service_name)
        port = config.base_port + index + 1
        _write(
            os.path.join(service_dir, "src", "service.py"),
            generate_service_module(plan, port, config.reference_capacity),
        )
        _write(
            os.path.join(service_dir, MANIFEST_FILE),
            dump_manifest(service_manifest(config, plan, index)),
        )
        _write_artefacts(service_dir, sibling_artefacts(plan.service_name, plan.package_name, port))

        try:
            size = analysis.get(plan.package_name).bytes
        except KeyError:
            size = 0
        relocated += size
        result_services.append((plan.service_name, size))
        logger.info(f"Wrote {plan.service_name} for {plan.package_name}")

    write_plans(output, plans)
    logger.info(f"Wrote main unit {config.worker_name} with {len(plans)} stub(s)")

    return BuildResult(main_size=analysis.total_bytes - relocated, services=result_services)

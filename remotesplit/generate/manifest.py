"""
Unit manifests written next to each generated unit.
"""

from typing import Any, Dict, List

import yaml

from ..core.config import SplitConfig
from ..core.types import SplitPlan

MANIFEST_FILE = "unit.yaml"
MAIN_MODULE = "src/_entry.py"
SERVICE_MODULE = "src/service.py"


def main_manifest(config: SplitConfig, plans: List[SplitPlan]) -> Dict[str, Any]:
    return {
        "name": config.worker_name,
        "main": MAIN_MODULE,
        "build_date": config.build_date,
        "services": [
            {
                "binding": plan.binding_name,
                "service": plan.service_name,
                "entrypoint": plan.entrypoint_class,
                "address": config.sibling_address(index),
            }
            for index, plan in enumerate(plans)
        ],
    }


def service_manifest(config: SplitConfig, plan: SplitPlan, index: int) -> Dict[str, Any]:
    return {
        "name": plan.service_name,
        "main": SERVICE_MODULE,
        "build_date": config.build_date,
        "entrypoint": plan.entrypoint_class,
        "package": plan.package_name,
        "address": config.sibling_address(index),
        "port": config.base_port + index + 1,
    }


def dump_manifest(manifest: Dict[str, Any]) -> str:
    return yaml.safe_dump(manifest, sort_keys=False, default_flow_style=False)


def load_manifest(path) -> Dict[str, Any]:
    with open(path, 'r') as f:
        return yaml.safe_load(f) or {}

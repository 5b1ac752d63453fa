"""
Service module run by a sibling unit.
"""

from ..core.types import SplitPlan
from ..remote.references import DEFAULT_CAPACITY


def generate_service_module(plan: SplitPlan, port: int, capacity: int = DEFAULT_CAPACITY) -> str:
    return f'''"""{plan.service_name}: serves {plan.package_name} to the main unit over gRPC."""

import asyncio
import importlib

from remotesplit.remote import SiblingEntrypoint, serve
from remotesplit.utils import setup_logging

_package = importlib.import_module("{plan.package_name}")

CAPACITY = {capacity}
ADDRESS = "0.0.0.0:{port}"


class {plan.entrypoint_class}(SiblingEntrypoint):
    namespace = _package


if __name__ == "__main__":
    setup_logging("INFO")
    try:
        asyncio.run(serve({plan.entrypoint_class}(capacity=CAPACITY), ADDRESS))
    except KeyboardInterrupt:
        pass
'''

"""
Client stub modules standing in for a relocated package in the main unit.
"""

import re
from typing import List

from ..core.types import SplitPlan


def stub_module_name(package_name: str) -> str:
    """File stem of the stub generated for ``package_name``."""
    return re.sub(r"[@/.\-]", "_", package_name).lstrip("_")


def stub_export_names(plan: SplitPlan) -> List[str]:
    return [name for name in plan.export_names if name != "default"]


def generate_client_stub(plan: SplitPlan) -> str:
    """
    Source of the stub module loaded in place of ``plan.package_name``.

    Every discovered export becomes a handle on its own name. ``default``
    stands for the package root, and the module-level ``__getattr__`` covers
    names discovery missed.
    """
    named_exports = "\n".join(
        f'{name} = _remote.create_handle(_resolve, ("{name}",))'
        for name in stub_export_names(plan)
    )

    return f'''"""Client stub for {plan.package_name}, served by {plan.service_name}."""

import remotesplit.remote as _remote

_resolve = _remote.binding_resolver("{plan.binding_name}")

{named_exports}

default = _remote.create_handle(_resolve, ())


def __getattr__(name):
    if name.startswith("__") and name.endswith("__"):
        raise AttributeError(name)
    return getattr(default, name)
'''


def generate_stub_types(plan: SplitPlan) -> str:
    """Source of the ``.pyi`` companion typing every export as ``Any``."""
    named_exports = "\n".join(f"{name}: Any" for name in stub_export_names(plan))

    return f'''from typing import Any

{named_exports}

default: Any

def __getattr__(name: str) -> Any: ...
'''

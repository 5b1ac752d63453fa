"""
Split planning: choose the packages to relocate and name their sibling units.
"""

import logging
import re
from typing import Dict, List, Sequence, Union

from .core.exceptions import PlanCollisionError, UnknownPackageError
from .core.types import PackageSizeReport, SplitPlan

logger = logging.getLogger(__name__)

AUTO = "auto"
SERVICE_SUFFIX = "-service"


def safe_service_base(package_name: str) -> str:
    return re.sub(r"^-", "", re.sub(r"[@/]", "-", package_name))


def service_name_for(package_name: str) -> str:
    """``@faker-js/faker`` -> ``faker-js-faker-service``"""
    return f"{safe_service_base(package_name)}{SERVICE_SUFFIX}"


def binding_name_for(package_name: str) -> str:
    """``@faker-js/faker`` -> ``FAKER_JS_FAKER``"""
    return re.sub(r"^_", "", re.sub(r"[@/.\-]", "_", package_name)).upper()


def to_pascal_case(value: str) -> str:
    return "".join(
        segment[:1].upper() + segment[1:].lower()
        for segment in re.split(r"[-_]", value)
    )


def entrypoint_class_for(package_name: str) -> str:
    """``@faker-js/faker`` -> ``FakerJsFakerEntrypoint``"""
    return f"{to_pascal_case(safe_service_base(package_name))}Entrypoint"


def make_plan(package_name: str) -> SplitPlan:
    return SplitPlan(
        package_name=package_name,
        service_name=service_name_for(package_name),
        binding_name=binding_name_for(package_name),
        entrypoint_class=entrypoint_class_for(package_name),
    )


def _check_collisions(plans: List[SplitPlan]) -> None:
    for attribute in ("service_name", "binding_name", "entrypoint_class"):
        owners: Dict[str, str] = {}
        for plan in plans:
            derived = getattr(plan, attribute)
            other = owners.setdefault(derived, plan.package_name)
            if other != plan.package_name:
                raise PlanCollisionError(
                    f'Packages "{other}" and "{plan.package_name}" both map to '
                    f'{attribute} "{derived}"'
                )


def create_split_plans(
    target: Union[str, Sequence[str]],
    packages: Sequence[PackageSizeReport],
    threshold: int,
) -> List[SplitPlan]:
    """
    Select the packages to relocate.

    Args:
        target: ``"auto"`` to select by size, or explicit package names
        packages: Size report, in report order
        threshold: Minimum attributed bytes for automatic selection

    Returns:
        Plans in deploy order (report order for ``auto``, caller order otherwise)

    Raises:
        UnknownPackageError: An explicit name is not in the report
        PlanCollisionError: Two packages derive the same unit identifiers
    """
    if isinstance(target, str) and target == AUTO:
        selected = list(dict.fromkeys(p.name for p in packages if p.bytes >= threshold))
    else:
        if isinstance(target, str):
            target = [target]
        known = [p.name for p in packages]
        selected = []
        for name in target:
            if name not in known:
                raise UnknownPackageError(name, known)
            if name not in selected:
                selected.append(name)

    plans = [make_plan(name) for name in selected]
    _check_collisions(plans)

    logger.debug(f"Planned {len(plans)} split(s): {[p.package_name for p in plans]}")
    return plans

"""
Data model shared by the analyzer, the planner and the build orchestrator.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Tuple


@dataclass(frozen=True)
class PackageSizeReport:
    """Bytes a single package contributes to the bundle."""

    name: str
    bytes: int
    percentage: int
    files: Tuple[Tuple[str, int], ...] = ()


@dataclass(frozen=True)
class BundleAnalysis:
    """
    Per-package attribution plus the grand total of one analysis run.

    ``application_files`` lists the reached files outside every dependency
    root, the code that stays with the main unit.
    """

    packages: Tuple[PackageSizeReport, ...]
    total_bytes: int
    application_files: Tuple[str, ...] = ()

    def get(self, name: str) -> PackageSizeReport:
        for package in self.packages:
            if package.name == name:
                return package
        raise KeyError(name)

    @property
    def names(self) -> List[str]:
        return [package.name for package in self.packages]


@dataclass
class SplitPlan:
    """
    One relocated package.

    ``export_names`` is filled in by export discovery after planning; an empty
    list means only a dynamic stand-in is generated for the package.
    """

    package_name: str
    service_name: str
    binding_name: str
    entrypoint_class: str
    export_names: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SplitPlan":
        return cls(
            package_name=data["package_name"],
            service_name=data["service_name"],
            binding_name=data["binding_name"],
            entrypoint_class=data["entrypoint_class"],
            export_names=list(data.get("export_names", [])),
        )

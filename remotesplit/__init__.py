"""
remotesplit

Splits the heaviest dependencies of a Python service out into sibling units
and replaces them in the main unit with lazy handles that forward every call
over gRPC.
"""

import logging

__version__ = "0.3.0"

from .core import (
    SplitConfig,
    SplitPlan,
    BundleAnalysis,
    PackageSizeReport,
    RemoteSplitError,
)
from .analysis import analyze_bundle, discover_exports
from .plan import create_split_plans
from .remote import SiblingEntrypoint, create_handle, use_env

logger = logging.getLogger(__name__)

__all__ = [
    "__version__",
    "SplitConfig",
    "SplitPlan",
    "BundleAnalysis",
    "PackageSizeReport",
    "RemoteSplitError",
    "analyze_bundle",
    "discover_exports",
    "create_split_plans",
    "SiblingEntrypoint",
    "create_handle",
    "use_env",
]

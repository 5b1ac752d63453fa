"""
Core components of remotesplit.

This module contains the data model, configuration and exception taxonomy
shared by planning, code generation and the remote proxy protocol.
"""

from .config import SplitConfig
from .types import PackageSizeReport, BundleAnalysis, SplitPlan
from .exceptions import (
    RemoteSplitError,
    AnalysisError,
    PlanningError,
    UnknownPackageError,
    PlanCollisionError,
    ProtocolError,
    PathViolationError,
    ResolutionError,
    ProtocolMisuseError,
    EnvironmentNotInitializedError,
    BindingNotFoundError,
    RemoteInvocationError,
    TransportError,
    SerializationError,
    ConfigurationError,
    BuildError,
    DeployError,
)

__all__ = [
    "SplitConfig",
    "PackageSizeReport",
    "BundleAnalysis",
    "SplitPlan",
    "RemoteSplitError",
    "AnalysisError",
    "PlanningError",
    "UnknownPackageError",
    "PlanCollisionError",
    "ProtocolError",
    "PathViolationError",
    "ResolutionError",
    "ProtocolMisuseError",
    "EnvironmentNotInitializedError",
    "BindingNotFoundError",
    "RemoteInvocationError",
    "TransportError",
    "SerializationError",
    "ConfigurationError",
    "BuildError",
    "DeployError",
]

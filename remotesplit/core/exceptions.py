"""
Custom exceptions for remotesplit.
"""

from typing import Optional, Sequence


class RemoteSplitError(Exception):
    """Base exception for all remotesplit errors."""
    pass


class AnalysisError(RemoteSplitError):
    """Raised when the entry module of a bundle cannot be resolved."""
    pass


class PlanningError(RemoteSplitError):
    """Base exception for split planning failures."""
    pass


class UnknownPackageError(PlanningError):
    """Raised when an explicit split target is absent from the size report."""

    def __init__(self, name: str, known: Sequence[str]):
        self.name = name
        self.known = list(known)
        super().__init__(
            f'Package "{name}" not found in bundle. '
            f"Available: {', '.join(self.known)}"
        )


class PlanCollisionError(PlanningError):
    """Raised when two packages normalize to the same derived identifier."""
    pass


class ProtocolError(RemoteSplitError):
    """Base exception for per-call remote proxy protocol errors."""
    pass


class PathViolationError(ProtocolError):
    """Raised when a call path touches a deny-listed segment."""
    pass


class ResolutionError(ProtocolError):
    """Raised for a missing path segment or a dangling reference id."""
    pass


class ProtocolMisuseError(ProtocolError):
    """Raised when a handle is used in a way the protocol does not allow."""
    pass


class EnvironmentNotInitializedError(ProtocolMisuseError):
    """Raised when a binding is resolved before any environment is bound."""
    pass


class BindingNotFoundError(ProtocolMisuseError):
    """Raised when the bound environment has no channel for a binding."""
    pass


class RemoteInvocationError(RemoteSplitError):
    """Exception raised when the relocated package itself fails a call."""

    def __init__(self, message: str, remote_traceback: Optional[str] = None):
        super().__init__(message)
        self.remote_traceback = remote_traceback


class TransportError(RemoteSplitError):
    """Exception raised when a sibling cannot be reached."""
    pass


class SerializationError(RemoteSplitError):
    """Exception raised for serialization/deserialization errors."""
    pass


class ConfigurationError(RemoteSplitError):
    """Exception raised for configuration-related errors."""
    pass


class BuildError(RemoteSplitError):
    """Exception raised when split units cannot be written."""
    pass


class DeployError(RemoteSplitError):
    """Exception raised when a unit fails to deploy."""
    pass


# Errors a sibling may report back by name; anything else is rebuilt as a
# RemoteInvocationError on the client.
PROTOCOL_ERRORS = {
    cls.__name__: cls
    for cls in (
        ProtocolError,
        PathViolationError,
        ResolutionError,
        ProtocolMisuseError,
        SerializationError,
    )
}

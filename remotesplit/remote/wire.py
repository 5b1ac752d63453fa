"""
Wire contract shared by the client handles and the sibling entrypoints.

A request is ``{"path", "args", "kwargs", "target"}``; a reply is either
``{"status": "ok", "result"}`` or an error reply naming the exception class.
"""

import traceback
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from ..core.exceptions import PROTOCOL_ERRORS, ProtocolError, RemoteInvocationError

CallPath = Tuple[str, ...]

SERVICE_NAME = "remotesplit.Sibling"
INVOKE_METHOD = f"/{SERVICE_NAME}/Invoke"


@dataclass(frozen=True)
class RemoteReference:
    """Opaque id a sibling mints for a result it keeps by reference."""

    ref_id: int
    store_id: str


@dataclass(frozen=True)
class ReferenceMarker:
    """Argument standing for a stored object, optionally a member of it."""

    ref_id: int
    store_id: str
    path: CallPath = ()


@dataclass(frozen=True)
class PathMarker:
    """Argument standing for a member path of the sibling's own namespace."""

    path: CallPath


def make_request(
    path: Sequence[str],
    args: Sequence[Any] = (),
    kwargs: Optional[Mapping[str, Any]] = None,
    target: Optional[RemoteReference] = None,
) -> Dict[str, Any]:
    return {
        "path": tuple(path),
        "args": list(args),
        "kwargs": dict(kwargs or {}),
        "target": target,
    }


def ok_reply(result: Any) -> Dict[str, Any]:
    return {"status": "ok", "result": result}


def error_reply(error: BaseException) -> Dict[str, Any]:
    for cls in type(error).__mro__:
        if cls.__name__ in PROTOCOL_ERRORS and PROTOCOL_ERRORS[cls.__name__] is cls:
            return {
                "status": "error",
                "error_type": cls.__name__,
                "error_message": str(error),
                "traceback": None,
            }

    return {
        "status": "error",
        "error_type": RemoteInvocationError.__name__,
        "error_message": f"{type(error).__name__}: {error}",
        "traceback": "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        ),
    }


def unwrap_reply(reply: Mapping[str, Any]) -> Any:
    """Return the result of a reply, raising the error it carries."""
    if reply.get("status") == "ok":
        return reply.get("result")

    message = reply.get("error_message") or "Unknown error"
    error_class = PROTOCOL_ERRORS.get(reply.get("error_type"))
    if error_class is not None:
        raise error_class(message)
    if reply.get("status") != "error":
        raise ProtocolError(f"Malformed reply: {reply!r}")
    raise RemoteInvocationError(message, reply.get("traceback"))

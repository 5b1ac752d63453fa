"""
Remote proxy protocol between the main unit and its siblings.
"""

from .classify import ValueKind, classify, encode_result, is_plain
from .env import binding_resolver, current_env, get_binding, use_env
from .handle import (
    RemoteHandle,
    create_handle,
    handle_path,
    handle_reference,
    prepare_argument,
    wrap_result,
)
from .references import DEFAULT_CAPACITY, ReferenceStore
from .resolver import BLOCKED_SEGMENTS, SiblingEntrypoint, validate_path, walk
from .service import HealthServicer, SiblingServicer, create_server, process_payload, serve
from .transport import GrpcChannel, LocalChannel, wait_until_serving
from .wire import (
    INVOKE_METHOD,
    SERVICE_NAME,
    CallPath,
    PathMarker,
    ReferenceMarker,
    RemoteReference,
    error_reply,
    make_request,
    ok_reply,
    unwrap_reply,
)

__all__ = [
    "ValueKind",
    "classify",
    "encode_result",
    "is_plain",
    "binding_resolver",
    "current_env",
    "get_binding",
    "use_env",
    "RemoteHandle",
    "create_handle",
    "handle_path",
    "handle_reference",
    "prepare_argument",
    "wrap_result",
    "DEFAULT_CAPACITY",
    "ReferenceStore",
    "BLOCKED_SEGMENTS",
    "SiblingEntrypoint",
    "validate_path",
    "walk",
    "HealthServicer",
    "SiblingServicer",
    "create_server",
    "process_payload",
    "serve",
    "GrpcChannel",
    "LocalChannel",
    "wait_until_serving",
    "INVOKE_METHOD",
    "SERVICE_NAME",
    "CallPath",
    "PathMarker",
    "ReferenceMarker",
    "RemoteReference",
    "error_reply",
    "make_request",
    "ok_reply",
    "unwrap_reply",
]

"""
Server half of the remote proxy protocol.

A :class:`SiblingEntrypoint` runs inside a sibling unit. It resolves call
paths against the namespace of the package the unit hosts, calls what it
finds and sends the result back by value or by reference.
"""

import asyncio
import inspect
import logging
from collections.abc import Mapping
from typing import Any, Dict, Optional, Sequence

from ..core.exceptions import (
    PathViolationError,
    ProtocolError,
    ProtocolMisuseError,
    ResolutionError,
)
from .classify import encode_result
from .references import DEFAULT_CAPACITY, ReferenceStore
from .wire import CallPath, PathMarker, ReferenceMarker, RemoteReference, error_reply, ok_reply

logger = logging.getLogger(__name__)

BLOCKED_SEGMENTS = frozenset({"__proto__", "constructor", "prototype"})

_MISSING = object()


def validate_path(path: Sequence[Any]) -> None:
    """
    Reject paths reaching into object internals.

    Raises:
        PathViolationError: A segment is deny-listed, a dunder name or not a
            non-empty string
    """
    for segment in path:
        if not isinstance(segment, str) or not segment:
            raise PathViolationError(f"Invalid path segment: {segment!r}")
        if segment in BLOCKED_SEGMENTS or (segment.startswith("__") and segment.endswith("__")):
            raise PathViolationError(f'Blocked path segment: "{segment}"')


def _lookup(obj: Any, segment: str) -> Any:
    try:
        return getattr(obj, segment)
    except AttributeError:
        pass
    if isinstance(obj, Mapping):
        try:
            return obj[segment]
        except (KeyError, TypeError):
            pass
    return _MISSING


def walk(start: Any, path: CallPath, fallback: Any = _MISSING) -> Any:
    """
    Follow ``path`` from ``start``.

    The first segment is looked up on ``fallback`` when ``start`` lacks it.
    Bound methods carry their receiver, so only the final value is returned.
    """
    current = start
    for i, segment in enumerate(path):
        value = _lookup(current, segment)
        if value is _MISSING and i == 0 and fallback is not _MISSING:
            value = _lookup(fallback, segment)
        if value is _MISSING:
            raise ResolutionError(f'Cannot resolve "{".".join(path[:i + 1])}"')
        current = value
    return current


class SiblingEntrypoint:
    """
    Invoke target for one sibling instance.

    Subclasses generated per split package set ``namespace`` to the imported
    package. Calls are served one at a time.
    """

    namespace: Any = None

    def __init__(self, namespace: Any = None, capacity: int = DEFAULT_CAPACITY):
        if namespace is None:
            namespace = type(self).namespace
        if namespace is None:
            raise TypeError(f"{type(self).__name__} has no namespace to serve")
        self.namespace = namespace
        self.references = ReferenceStore(capacity)
        self._lock = asyncio.Lock()

    @property
    def root(self) -> Any:
        """The package's ``default`` export when it has one, else the package."""
        default = getattr(self.namespace, "default", None)
        return self.namespace if default is None else default

    async def invoke(
        self,
        path: Sequence[str],
        args: Sequence[Any] = (),
        kwargs: Optional[Dict[str, Any]] = None,
        target: Optional[RemoteReference] = None,
    ) -> Any:
        """
        Resolve ``path`` and call it.

        Args:
            path: Member path from the namespace, or from ``target``
            args: Positional arguments, possibly holding markers
            kwargs: Keyword arguments, possibly holding markers
            target: Stored object the path starts from

        Returns:
            The encoded result

        Raises:
            PathViolationError: A segment is deny-listed
            ResolutionError: A segment or a referenced object is missing
            ProtocolMisuseError: The namespace root itself was called
        """
        path = tuple(path)
        validate_path(path)
        if target is None and not path:
            raise ProtocolMisuseError("Cannot call the module root as a function")

        resolved_args = [self.resolve_argument(a) for a in args]
        resolved_kwargs = {k: self.resolve_argument(v) for k, v in (kwargs or {}).items()}

        if target is None:
            value = walk(self.root, path, fallback=self.namespace)
        else:
            value = walk(self.references.get(target.ref_id, target.store_id), path)

        if callable(value):
            result = value(*resolved_args, **resolved_kwargs)
            if inspect.isawaitable(result):
                result = await result
        else:
            result = value

        return encode_result(result, self.references)

    def resolve_argument(self, value: Any) -> Any:
        """Replace markers and own references in an argument tree with live objects."""
        if self.references.owns(value):
            return self.references.get(value.ref_id)
        if isinstance(value, ReferenceMarker):
            validate_path(value.path)
            return walk(self.references.get(value.ref_id, value.store_id), value.path)
        if isinstance(value, PathMarker):
            validate_path(value.path)
            return walk(self.root, value.path, fallback=self.namespace)

        value_type = type(value)
        if value_type is list:
            return [self.resolve_argument(v) for v in value]
        if value_type is tuple:
            return tuple(self.resolve_argument(v) for v in value)
        if value_type is dict:
            return {k: self.resolve_argument(v) for k, v in value.items()}
        return value

    async def handle(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """Serve one decoded request, turning any failure into an error reply."""
        path = tuple(request.get("path", ()))
        async with self._lock:
            try:
                result = await self.invoke(
                    path,
                    request.get("args", ()),
                    request.get("kwargs"),
                    request.get("target"),
                )
            except ProtocolError as e:
                logger.warning(f"Protocol error in {'.'.join(map(str, path)) or '<root>'}: {e}")
                return error_reply(e)
            except Exception as e:
                logger.error(f"Error in {'.'.join(map(str, path)) or '<root>'}: {e}", exc_info=True)
                return error_reply(e)

        return ok_reply(result)

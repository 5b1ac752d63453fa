"""
Client half of the remote proxy protocol.

A :class:`RemoteHandle` stands for a member path of a sibling's namespace, or
of an object the sibling keeps by reference. Reading attributes only extends
the path; calling the handle sends one request and returns a coroutine.

Handles are untyped: any attribute name is accepted and nothing
about the remote shape is known until a call is made.
"""

import logging
from collections import Counter, OrderedDict, deque
from types import SimpleNamespace
from typing import Any, Callable, Coroutine, Optional, Sequence

from ..core.exceptions import ProtocolMisuseError
from .wire import CallPath, PathMarker, ReferenceMarker, RemoteReference

logger = logging.getLogger(__name__)

ChannelResolver = Callable[[], Any]


class RemoteHandle:
    """
    Lazy handle on a remote member path.

    Usage:
        faker = create_handle(binding_resolver("FAKER"))
        generator = await faker.Faker()
        name = await generator.name()

    Calling the module root, or a handle whose binding cannot be resolved,
    raises at call time rather than from the awaited coroutine, so guard the
    call expression and not only the ``await``::

        try:
            result = await faker.Faker()
        except ProtocolMisuseError:
            ...
    """

    __slots__ = ("__resolve", "__path", "__reference")

    def __init__(
        self,
        resolve_channel: ChannelResolver,
        path: Sequence[str] = (),
        reference: Optional[RemoteReference] = None,
    ):
        self.__resolve = resolve_channel
        self.__path = tuple(path)
        self.__reference = reference

    def __getattr__(self, name: str) -> "RemoteHandle":
        # Dunder probes (__await__, __aiter__, __fspath__, ...) and the
        # handle's own slots must never turn into remote members.
        if name.startswith("_RemoteHandle__") or (name.startswith("__") and name.endswith("__")):
            raise AttributeError(name)
        return RemoteHandle(self.__resolve, self.__path + (name,), self.__reference)

    def __call__(self, *args: Any, **kwargs: Any) -> Coroutine[Any, Any, Any]:
        if not self.__path and self.__reference is None:
            raise ProtocolMisuseError("Cannot call the module root as a function")

        channel = self.__resolve()
        prepared_args = [prepare_argument(a) for a in args]
        prepared_kwargs = {k: prepare_argument(v) for k, v in kwargs.items()}
        return self.__invoke(channel, prepared_args, prepared_kwargs)

    async def __invoke(self, channel: Any, args: list, kwargs: dict) -> Any:
        logger.debug(f"Invoking {self!r}")
        result = await channel.invoke(self.__path, args, kwargs, self.__reference)
        return wrap_result(result, lambda: channel)

    def __repr__(self) -> str:
        path = ".".join(self.__path) or "<root>"
        if self.__reference is not None:
            return f"<RemoteHandle ref={self.__reference.ref_id} path={path}>"
        return f"<RemoteHandle path={path}>"


def create_handle(resolve_channel: ChannelResolver, path: Sequence[str] = ()) -> RemoteHandle:
    return RemoteHandle(resolve_channel, path)


def handle_path(handle: RemoteHandle) -> CallPath:
    return object.__getattribute__(handle, "_RemoteHandle__path")


def handle_reference(handle: RemoteHandle) -> Optional[RemoteReference]:
    return object.__getattribute__(handle, "_RemoteHandle__reference")


def prepare_argument(value: Any) -> Any:
    """Rewrite handles in an argument tree into markers the sibling resolves."""
    if isinstance(value, RemoteHandle):
        reference = handle_reference(value)
        if reference is not None:
            return ReferenceMarker(reference.ref_id, reference.store_id, handle_path(value))
        return PathMarker(handle_path(value))

    value_type = type(value)
    if value_type is list:
        return [prepare_argument(v) for v in value]
    if value_type is tuple:
        return tuple(prepare_argument(v) for v in value)
    if value_type is dict:
        return {k: prepare_argument(v) for k, v in value.items()}
    return value


def wrap_result(value: Any, resolve_channel: ChannelResolver) -> Any:
    """
    Turn every remote reference in a result into a handle bound to it.

    Walks the same containers and records the sibling encodes members of.
    """
    if isinstance(value, RemoteReference):
        return RemoteHandle(resolve_channel, (), value)

    value_type = type(value)
    if value_type is deque:
        return deque((wrap_result(v, resolve_channel) for v in value), maxlen=value.maxlen)
    if value_type in (list, tuple, set, frozenset):
        return value_type(wrap_result(v, resolve_channel) for v in value)
    if value_type in (dict, OrderedDict, Counter):
        return value_type({k: wrap_result(v, resolve_channel) for k, v in value.items()})
    if value_type is SimpleNamespace:
        return SimpleNamespace(**{k: wrap_result(v, resolve_channel) for k, v in vars(value).items()})
    return value

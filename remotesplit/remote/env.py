"""
Per-request environment mapping binding names to sibling channels.

The environment is bound with :func:`use_env` around each request. It lives in
a context variable, so concurrent requests served by one process each see
their own environment.
"""

from contextlib import contextmanager
from contextvars import ContextVar, Token
from functools import partial
from typing import Any, Callable, Iterator, Mapping, Optional

from ..core.exceptions import BindingNotFoundError, EnvironmentNotInitializedError

_current_env: ContextVar[Optional[Mapping[str, Any]]] = ContextVar(
    "remotesplit_env", default=None
)


def set_env(env: Mapping[str, Any]) -> Token:
    return _current_env.set(env)


def reset_env(token: Token) -> None:
    _current_env.reset(token)


def current_env() -> Optional[Mapping[str, Any]]:
    return _current_env.get()


@contextmanager
def use_env(env: Mapping[str, Any]) -> Iterator[Mapping[str, Any]]:
    """Bind ``env`` for the duration of one request."""
    token = set_env(env)
    try:
        yield env
    finally:
        reset_env(token)


def get_binding(name: str) -> Any:
    """
    Look up the channel bound to ``name`` in the current environment.

    Raises:
        EnvironmentNotInitializedError: No environment is bound
        BindingNotFoundError: The environment has no such binding
    """
    env = _current_env.get()
    if env is None:
        raise EnvironmentNotInitializedError(
            "remotesplit environment not initialized. "
            "Run the request handler inside use_env(env)."
        )
    binding = env.get(name)
    if binding is None:
        raise BindingNotFoundError(
            f'Service binding "{name}" not found in environment. '
            "Check the main unit manifest."
        )
    return binding


def binding_resolver(name: str) -> Callable[[], Any]:
    return partial(get_binding, name)

"""
Runtime support for generated units.

The main unit's entry shim calls :func:`load_stubs`, :func:`load_entry`,
:func:`open_channels`, :func:`bind_services`, :func:`run_main` and
:func:`close_channels`; ``remotesplit serve`` uses
:func:`load_entrypoint` to start a sibling unit.
"""

import asyncio
import functools
import importlib.abc
import importlib.machinery
import importlib.util
import inspect
import logging
import os
import sys
import types
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from .core.exceptions import BuildError
from .generate.manifest import MANIFEST_FILE, load_manifest
from .remote.env import use_env
from .remote.handle import RemoteHandle
from .remote.resolver import SiblingEntrypoint
from .remote.transport import GrpcChannel

logger = logging.getLogger(__name__)


def _load_module(name: str, path: str, package: bool = False) -> types.ModuleType:
    spec = importlib.util.spec_from_file_location(name, path)
    if spec is None or spec.loader is None:
        raise BuildError(f"Cannot load module {name} from {path}")
    module = importlib.util.module_from_spec(spec)
    if package:
        module.__path__ = []
    sys.modules[name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        sys.modules.pop(name, None)
        raise
    return module


class _SubmoduleLoader(importlib.abc.Loader):
    def __init__(self, handle: RemoteHandle):
        self.handle = handle

    def create_module(self, spec):
        module = types.ModuleType(spec.name)
        module.__path__ = []
        handle = self.handle

        def __getattr__(name):
            if name.startswith("__") and name.endswith("__"):
                raise AttributeError(name)
            return getattr(handle, name)

        module.__getattr__ = __getattr__
        return module

    def exec_module(self, module):
        pass


class StubFinder(importlib.abc.MetaPathFinder):
    """
    Resolves submodules of relocated packages, ``pkg.sub``, to modules whose
    attributes are handles on the matching remote path.
    """

    def __init__(self, packages):
        self.packages = set(packages)

    def find_spec(self, fullname, path=None, target=None):
        package, _, rest = fullname.partition(".")
        if package not in self.packages or not rest:
            return None
        handle = sys.modules[package].default
        for segment in rest.split("."):
            handle = getattr(handle, segment)
        return importlib.machinery.ModuleSpec(fullname, _SubmoduleLoader(handle), is_package=True)


_stub_finder: Optional[StubFinder] = None


def load_stubs(base_dir: str, stubs: Mapping[str, str]) -> Dict[str, types.ModuleType]:
    """
    Install client stubs under the names of the packages they replace.

    Args:
        base_dir: Directory the stub paths are relative to
        stubs: Relocated package name to stub file path

    Returns:
        The loaded stub modules by package name
    """
    global _stub_finder

    loaded = {}
    for package_name, relative_path in stubs.items():
        path = os.path.join(base_dir, relative_path)
        loaded[package_name] = _load_module(package_name, path, package=True)
        logger.debug(f"Loaded stub for {package_name} from {path}")

    if _stub_finder is None:
        _stub_finder = StubFinder(())
    _stub_finder.packages.update(loaded)
    if _stub_finder not in sys.meta_path:
        sys.meta_path.insert(0, _stub_finder)
    return loaded


def load_entry(path: str, name: Optional[str] = None) -> types.ModuleType:
    """Import the original entry module from ``path``."""
    path = os.path.abspath(path)
    entry_dir = os.path.dirname(path)
    if entry_dir not in sys.path:
        sys.path.insert(0, entry_dir)
    name = name or os.path.splitext(os.path.basename(path))[0]
    return _load_module(name, path)


def open_channels(services: Mapping[str, str], timeout: Optional[float] = None) -> Dict[str, GrpcChannel]:
    """One lazily connected channel per binding name."""
    return {binding: GrpcChannel(address, timeout=timeout) for binding, address in services.items()}


def bind_services(
    handler: Optional[Callable[..., Awaitable[Any]]],
    services: Mapping[str, Any],
) -> Callable[..., Awaitable[Any]]:
    """
    Wrap an entry handler so each call runs with the sibling bindings bound.

    The handler is called as ``handler(event, env, *args)`` where ``env`` is
    the caller's environment merged over ``services``. A missing handler
    yields a wrapper returning ``None``.
    """
    async def bound(event: Any, env: Optional[Mapping[str, Any]] = None, *args: Any, **kwargs: Any) -> Any:
        merged = dict(services)
        merged.update(env or {})
        with use_env(merged):
            if handler is None:
                return None
            return await handler(event, merged, *args, **kwargs)

    if handler is not None:
        functools.update_wrapper(bound, handler)
    return bound


async def close_channels(services: Mapping[str, Any]) -> None:
    """Close every channel in ``services`` that can be closed."""
    for binding, channel in services.items():
        close = getattr(channel, "close", None)
        if close is None:
            continue
        result = close()
        if inspect.isawaitable(result):
            await result
        logger.debug(f"Closed channel for {binding}")


async def _run_main(main: Callable[[], Any], services: Mapping[str, Any]) -> Any:
    try:
        with use_env(dict(services)):
            result = main()
            if inspect.isawaitable(result):
                result = await result
        return result
    finally:
        await close_channels(services)


def run_main(entry: types.ModuleType, services: Mapping[str, Any]) -> int:
    """
    Run the entry's ``main()`` with the sibling bindings bound.

    ``main`` may be a plain function or a coroutine function; either way it
    runs inside one event loop, and the channels are closed when it returns
    or raises.

    Returns:
        ``main()``'s result when it is an int, else 0

    Raises:
        BuildError: The entry defines no ``main``
    """
    main = getattr(entry, "main", None)
    if not callable(main):
        raise BuildError(f"{entry.__name__} defines no main() to run as the main unit")

    result = asyncio.run(_run_main(main, services))
    return result if isinstance(result, int) else 0


def load_entrypoint(unit_dir: str, capacity: Optional[int] = None):
    """
    Load a sibling unit's service module and instantiate its entrypoint.

    Returns:
        The entrypoint and the address from the unit manifest

    Raises:
        BuildError: The manifest or the entrypoint class is missing
    """
    manifest_path = os.path.join(unit_dir, MANIFEST_FILE)
    if not os.path.exists(manifest_path):
        raise BuildError(f"{manifest_path} not found. Run 'build' first.")
    manifest = load_manifest(manifest_path)

    module = _load_module(
        f"_remotesplit_{manifest['entrypoint']}",
        os.path.join(unit_dir, manifest["main"]),
    )
    entrypoint_class = getattr(module, manifest["entrypoint"], None)
    if not (isinstance(entrypoint_class, type) and issubclass(entrypoint_class, SiblingEntrypoint)):
        raise BuildError(f"{manifest['main']} does not define {manifest['entrypoint']}")

    capacity = capacity if capacity is not None else getattr(module, "CAPACITY", None)
    entrypoint = entrypoint_class() if capacity is None else entrypoint_class(capacity=capacity)
    return entrypoint, f"0.0.0.0:{manifest['port']}"

"""
Discovery of the statically named public surface of a package.

The names found here become named stand-ins in the generated client stub.
An empty result is not an error: it means only the dynamic default handle is
generated for the package.
"""

import ast
import importlib
import keyword
import logging
import sys
from importlib.machinery import PathFinder
from pathlib import Path
from typing import Iterable, List, Optional, Set, Union

logger = logging.getLogger(__name__)

EXCLUDED_NAMES = frozenset({"default"})


def is_exportable(name: str) -> bool:
    """Whether a name can become a named stand-in in generated code."""
    return (
        isinstance(name, str)
        and name.isidentifier()
        and not keyword.iskeyword(name)
        and not name.startswith("_")
        and name not in EXCLUDED_NAMES
    )


def _literal_all(node: ast.AST) -> Optional[List[str]]:
    try:
        value = ast.literal_eval(node)
    except (ValueError, SyntaxError, TypeError):
        return None
    if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        return list(value)
    return None


def _assigned_names(target: ast.AST) -> Iterable[str]:
    if isinstance(target, ast.Name):
        yield target.id
    elif isinstance(target, (ast.Tuple, ast.List)):
        for element in target.elts:
            yield from _assigned_names(element)


def parse_exports(source: str, filename: str = "<package>") -> List[str]:
    """
    Statically collect the public names a module defines.

    A literal ``__all__`` wins when present; otherwise top-level functions,
    classes, assignments and ``from ... import`` re-exports are collected.
    """
    tree = ast.parse(source, filename=filename)
    declared_all: Optional[List[str]] = None
    names: Set[str] = set()

    for node in tree.body:
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
            names.add(node.name)
        elif isinstance(node, ast.Assign):
            for target in node.targets:
                if isinstance(target, ast.Name) and target.id == "__all__":
                    declared_all = _literal_all(node.value)
                names.update(_assigned_names(target))
        elif isinstance(node, ast.AnnAssign) and node.simple:
            names.update(_assigned_names(node.target))
        elif isinstance(node, ast.AugAssign):
            # __all__ += [...] extends a literal __all__
            if isinstance(node.target, ast.Name) and node.target.id == "__all__":
                extra = _literal_all(node.value)
                if declared_all is not None and extra is not None:
                    declared_all.extend(extra)
        elif isinstance(node, ast.ImportFrom) and node.module != "__future__":
            for alias in node.names:
                if alias.name != "*":
                    names.add(alias.asname or alias.name)

    candidates = declared_all if declared_all is not None else names
    return sorted({name for name in candidates if is_exportable(name)})


def _locate_source(package_name: str, search: List[str]) -> Optional[Path]:
    path: Optional[List[str]] = search
    spec = None
    parts = package_name.split(".")
    for i in range(len(parts)):
        spec = PathFinder.find_spec(".".join(parts[:i + 1]), path)
        if spec is None:
            return None
        path = list(spec.submodule_search_locations or [])

    if spec is None or not spec.origin or not spec.has_location:
        return None
    origin = Path(spec.origin)
    return origin if origin.suffix == ".py" and origin.is_file() else None


def _exports_via_import(package_name: str, search: List[str]) -> List[str]:
    """Import the module and enumerate its public attributes."""
    added = [p for p in search if p not in sys.path]
    sys.path[:0] = added
    try:
        module = importlib.import_module(package_name)
    except Exception as e:
        logger.debug(f"Could not import {package_name} for export discovery: {e}")
        return []
    finally:
        for p in added:
            if p in sys.path:
                sys.path.remove(p)

    names = getattr(module, "__all__", None)
    if not isinstance(names, (list, tuple)):
        names = list(vars(module))
    return sorted({name for name in names if is_exportable(name)})


def discover_exports(package_name: str, resolve_dir: Union[str, Path]) -> List[str]:
    """
    Determine the statically named exports of a package.

    Args:
        package_name: Import name of the package
        resolve_dir: Directory the package is resolved from (the entry's
            directory); ``sys.path`` is searched after it

    Returns:
        Sorted export names, possibly empty. Never raises.
    """
    search = [str(Path(resolve_dir).resolve())] + list(sys.path)

    try:
        source_path = _locate_source(package_name, search)
        if source_path is not None:
            names = parse_exports(
                source_path.read_text(encoding="utf-8"), filename=str(source_path)
            )
            if names:
                return names
    except Exception as e:
        logger.warning(f"Static export discovery failed for {package_name}: {e}")

    try:
        return _exports_via_import(package_name, search)
    except Exception as e:
        logger.warning(f"Export discovery failed for {package_name}: {e}")
        return []

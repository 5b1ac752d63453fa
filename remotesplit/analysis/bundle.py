"""
AST-based bundle analyzer attributing the bytes of an application to the
third-party packages it imports.

The analyzer walks the import graph of an entry script without executing any
module code, the same way the packager finds local dependencies, but it
follows imports into the dependency roots and records how many bytes every
reached file contributes.
"""

import ast
import logging
import sys
from collections import deque
from importlib.machinery import ModuleSpec, PathFinder
from importlib.util import resolve_name
from pathlib import Path
from typing import Any, Deque, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union

from ..core.exceptions import AnalysisError
from ..core.types import BundleAnalysis, PackageSizeReport

logger = logging.getLogger(__name__)

# Directory names below which every first path segment is a package.
DEFAULT_DEPENDENCY_ROOTS = ("site-packages", "dist-packages", "node_modules")

_IGNORED_SUFFIXES = (".dist-info", ".egg-info", ".pth", ".egg-link")

_RUNTIME_MODULES = frozenset(sys.stdlib_module_names) | frozenset(sys.builtin_module_names)


def _below_root(input_path: str, roots: Sequence[str]) -> Optional[str]:
    """Part of ``input_path`` after the outermost dependency root, if any."""
    normalized = input_path.replace("\\", "/")

    after_root = None
    for root in roots:
        marker = f"{root}/"
        index = normalized.find(marker)
        if index != -1 and (index == 0 or normalized[index - 1] == "/"):
            if after_root is None or index < after_root[0]:
                after_root = (index, normalized[index + len(marker):])
    return None if after_root is None else after_root[1]


def extract_package_name(
    input_path: str,
    roots: Sequence[str] = DEFAULT_DEPENDENCY_ROOTS,
) -> Optional[str]:
    """
    Map a bundled file to the package that owns it.

    Returns None for files outside every dependency root (the application's
    own code) and for packaging metadata.
    """
    below = _below_root(input_path, roots)
    if below is None:
        return None

    parts = [part for part in below.split("/") if part]
    if not parts:
        return None

    if parts[0].startswith("@"):
        return f"{parts[0]}/{parts[1]}" if len(parts) >= 2 else None

    first = parts[0]
    if first == "__pycache__" or first.endswith(_IGNORED_SUFFIXES):
        return None
    if len(parts) == 1:
        # Single-file module: six.py, _cffi_backend.cpython-312-x86_64-linux-gnu.so
        return first.split(".")[0] or None
    return first


def attribute_inputs(
    inputs: Mapping[str, int],
    total_bytes: int,
    roots: Sequence[str] = DEFAULT_DEPENDENCY_ROOTS,
) -> BundleAnalysis:
    """Group per-file byte counts into per-package reports, largest first."""
    package_files: Dict[str, List[Tuple[str, int]]] = {}
    application_files = []

    for input_path, size in inputs.items():
        if _below_root(input_path, roots) is None:
            application_files.append(input_path)
            continue
        name = extract_package_name(input_path, roots)
        if not name:
            continue
        package_files.setdefault(name, []).append((input_path, size))

    reports = []
    for name, files in package_files.items():
        package_bytes = sum(size for _, size in files)
        percentage = int(package_bytes * 100 / total_bytes + 0.5) if total_bytes else 0
        reports.append(PackageSizeReport(
            name=name,
            bytes=package_bytes,
            percentage=percentage,
            files=tuple(files),
        ))

    reports.sort(key=lambda report: report.bytes, reverse=True)
    return BundleAnalysis(
        packages=tuple(reports),
        total_bytes=total_bytes,
        application_files=tuple(sorted(application_files)),
    )


def analyze_metafile(
    metafile: Mapping[str, Any],
    roots: Sequence[str] = DEFAULT_DEPENDENCY_ROOTS,
) -> BundleAnalysis:
    """
    Attribute the first output of an esbuild-style metafile.

    Args:
        metafile: Parsed metafile with ``outputs -> {bytes, inputs}``
        roots: Dependency root directory names

    Raises:
        AnalysisError: If the metafile has no usable output
    """
    try:
        output = next(iter(metafile["outputs"].values()))
        total_bytes = int(output["bytes"])
        inputs = {
            path: int(info["bytesInOutput"])
            for path, info in output["inputs"].items()
        }
    except (KeyError, StopIteration, TypeError, ValueError, AttributeError) as e:
        raise AnalysisError(f"Malformed bundler metafile: {e}") from e

    return attribute_inputs(inputs, total_bytes, roots)


class ImportVisitor(ast.NodeVisitor):
    """AST visitor to extract import statements."""

    def __init__(self):
        # (module, level, imported names)
        self.imports: Set[Tuple[str, int, Tuple[str, ...]]] = set()

    def visit_Import(self, node: ast.Import):
        """Visit import statements (import module)."""
        for alias in node.names:
            self.imports.add((alias.name, 0, ()))
        self.generic_visit(node)

    def visit_ImportFrom(self, node: ast.ImportFrom):
        """Visit from-import statements (from module import name)."""
        names = tuple(alias.name for alias in node.names if alias.name != "*")
        self.imports.add((node.module or "", node.level, names))
        self.generic_visit(node)


class BundleAnalyzer:
    """
    Walks the import graph of an entry script and attributes bytes per package.

    Standard library and built-in modules ship with the interpreter, so they
    are neither followed nor counted.
    """

    def __init__(
        self,
        dependency_roots: Sequence[str] = DEFAULT_DEPENDENCY_ROOTS,
        search_paths: Optional[Iterable[Union[str, Path]]] = None,
    ):
        """
        Initialize the bundle analyzer.

        Args:
            dependency_roots: Directory names under which packages live
            search_paths: Import search path; defaults to ``sys.path``
        """
        self.dependency_roots = tuple(dependency_roots)
        self.search_paths = [str(p) for p in search_paths] if search_paths is not None else None
        self.inputs: Dict[str, int] = {}

    def analyze(self, entry: Union[str, Path]) -> BundleAnalysis:
        """
        Analyze the bundle reachable from an entry script.

        Args:
            entry: Path to the entry module

        Returns:
            Per-package attribution plus the grand total

        Raises:
            AnalysisError: If the entry does not exist or cannot be parsed
        """
        entry_path = Path(entry).resolve()
        if not entry_path.is_file():
            raise AnalysisError(f"Cannot resolve entry point: {entry}")

        try:
            tree = ast.parse(entry_path.read_text(encoding="utf-8"), filename=str(entry_path))
        except (SyntaxError, UnicodeDecodeError, ValueError) as e:
            raise AnalysisError(f"Cannot parse entry point {entry}: {e}") from e

        search = [str(entry_path.parent)] + (
            self.search_paths if self.search_paths is not None else list(sys.path)
        )

        self.inputs = {str(entry_path): entry_path.stat().st_size}
        visited: Set[str] = {str(entry_path)}
        queue: Deque[Tuple[ast.AST, Optional[str]]] = deque([(tree, None)])

        while queue:
            module_tree, package = queue.popleft()
            visitor = ImportVisitor()
            visitor.visit(module_tree)

            for module, level, names in sorted(visitor.imports):
                for spec in self._resolve_import(module, level, names, package, search):
                    self._visit_spec(spec, visited, queue)

        total_bytes = sum(self.inputs.values())
        analysis = attribute_inputs(self.inputs, total_bytes, self.dependency_roots)
        logger.debug(
            f"Analyzed {entry_path}: {len(self.inputs)} files, "
            f"{len(analysis.packages)} packages, {total_bytes} bytes"
        )
        return analysis

    def _resolve_import(
        self,
        module: str,
        level: int,
        names: Tuple[str, ...],
        package: Optional[str],
        search: List[str],
    ) -> List[ModuleSpec]:
        if level > 0:
            if not package:
                return []
            try:
                module = resolve_name("." * level + module, package)
            except (ImportError, ValueError):
                return []

        if not module or module.split(".")[0] in _RUNTIME_MODULES:
            return []

        specs = self._find_chain(module, search)
        if specs and specs[-1].name == module and specs[-1].submodule_search_locations is not None:
            # from package import submodule
            for name in names:
                child = PathFinder.find_spec(
                    f"{module}.{name}", list(specs[-1].submodule_search_locations)
                )
                if child is not None:
                    specs.append(child)
        return specs

    def _find_chain(self, module: str, search: List[str]) -> List[ModuleSpec]:
        """Find the spec of a module and of every parent package, importing nothing."""
        specs: List[ModuleSpec] = []
        path: Optional[List[str]] = search
        parts = module.split(".")

        for i in range(len(parts)):
            name = ".".join(parts[:i + 1])
            try:
                spec = PathFinder.find_spec(name, path)
            except (ImportError, ValueError) as e:
                logger.debug(f"Could not locate {name}: {e}")
                spec = None
            if spec is None:
                break
            specs.append(spec)
            if spec.submodule_search_locations is None:
                break
            path = list(spec.submodule_search_locations)

        return specs

    def _visit_spec(self, spec: ModuleSpec, visited: Set[str], queue: Deque) -> None:
        origin = spec.origin
        if not origin or not spec.has_location:
            return

        origin_path = Path(origin)
        key = str(origin_path.resolve())
        if key in visited or not origin_path.is_file():
            return
        visited.add(key)

        self.inputs[key] = origin_path.stat().st_size

        if origin_path.suffix != ".py":
            return

        is_package = spec.submodule_search_locations is not None
        package = spec.name if is_package else spec.name.rpartition(".")[0]

        try:
            module_tree = ast.parse(origin_path.read_text(encoding="utf-8"), filename=key)
        except (SyntaxError, UnicodeDecodeError, ValueError) as e:
            logger.warning(f"Failed to analyze {key}: {e}")
            return

        queue.append((module_tree, package or None))


def analyze_bundle(entry: Union[str, Path], **kwargs) -> BundleAnalysis:
    """Convenience wrapper around :class:`BundleAnalyzer`."""
    return BundleAnalyzer(**kwargs).analyze(entry)

"""Extract import edges from Python source files.

Static imports (``import x``, ``from x import y``, relative imports) become
``import`` edges. ``importlib.import_module("x")`` and ``__import__("x")``
with a literal name become ``dynamic-import`` edges. Imports are resolved
to files under the configured search roots; anything else is an external
package and is dropped unless ``track_external`` is set.
"""

import ast
import logging
import sys
from collections.abc import Iterator
from pathlib import Path

from hotroute.paths import normalize_path
from hotroute.reload.graph import DependencyEdge, EdgeKind

logger = logging.getLogger(__name__)

DEFAULT_IGNORE_PATTERNS = ["__pycache__", ".git", ".venv", "venv", "*.egg-info", "node_modules"]


def _module_file(base: Path) -> Path | None:
    """Return the file implementing the module at base (``base.py`` or a package)."""
    candidate = base.parent / f"{base.name}.py"
    if candidate.is_file():
        return candidate
    init = base / "__init__.py"
    if init.is_file():
        return init
    return None


def _dynamic_import_target(node: ast.Call) -> str | None:
    """Module name passed to import_module()/__import__(), if it is a literal."""
    func = node.func
    if isinstance(func, ast.Attribute):
        name = func.attr
    elif isinstance(func, ast.Name):
        name = func.id
    else:
        return None

    if name not in ("import_module", "__import__") or not node.args:
        return None

    arg = node.args[0]
    if isinstance(arg, ast.Constant) and isinstance(arg.value, str) and arg.value:
        return arg.value
    return None


class ImportScanner:
    """Scans Python files for their local import dependencies."""

    def __init__(
        self,
        search_roots: list[str | Path],
        track_external: bool = False,
        ignore_patterns: list[str] | None = None,
    ):
        self.search_roots = [Path(root) for root in search_roots]
        self.track_external = track_external
        self.ignore_patterns = ignore_patterns or DEFAULT_IGNORE_PATTERNS
        # path -> ((mtime_ns, size), edges)
        self._cache: dict[str, tuple[tuple[int, int], set[DependencyEdge]]] = {}

    def scan_file(self, path: str | Path) -> set[DependencyEdge]:
        """Return the dependency edges of one file.

        Unreadable or unparsable files yield an empty set.
        """
        path = Path(path)
        key = normalize_path(path)

        try:
            stat = path.stat()
        except OSError:
            self._cache.pop(key, None)
            return set()

        signature = (stat.st_mtime_ns, stat.st_size)
        cached = self._cache.get(key)
        if cached and cached[0] == signature:
            return set(cached[1])

        try:
            source = path.read_text(encoding="utf-8")
            tree = ast.parse(source, filename=str(path))
        except (SyntaxError, UnicodeDecodeError, ValueError, OSError) as e:
            logger.warning(f"Failed to analyze dependencies for {path}: {e}")
            return set()

        edges = {edge for edge in self._extract(tree, path) if edge.path != key}
        self._cache[key] = (signature, edges)
        return set(edges)

    def scan_directory(self, root: str | Path) -> Iterator[tuple[str, set[DependencyEdge]]]:
        """Yield (path, edges) for every Python file under root."""
        root = Path(root)
        if not root.exists():
            return

        for path in sorted(root.rglob("*.py")):
            if self._should_ignore(path.relative_to(root)):
                continue
            yield normalize_path(path), self.scan_file(path)

    def clear_cache(self) -> None:
        self._cache.clear()

    def _should_ignore(self, relative_path: Path) -> bool:
        return any(
            Path(part).match(pattern)
            for part in relative_path.parts
            for pattern in self.ignore_patterns
        )

    def _extract(self, tree: ast.AST, path: Path) -> Iterator[DependencyEdge]:
        for node in ast.walk(tree):
            if isinstance(node, ast.Import):
                for alias in node.names:
                    yield from self._resolve_absolute(alias.name, [], EdgeKind.IMPORT)

            elif isinstance(node, ast.ImportFrom):
                names = [alias.name for alias in node.names]
                if node.level:
                    base = self._relative_base(path, node.level, node.module)
                    yield from self._resolve_in(base, names, EdgeKind.IMPORT)
                elif node.module:
                    yield from self._resolve_absolute(node.module, names, EdgeKind.IMPORT)

            elif isinstance(node, ast.Call):
                target = _dynamic_import_target(node)
                if target is None:
                    continue
                if target.startswith("."):
                    level = len(target) - len(target.lstrip("."))
                    base = self._relative_base(path, level, target.lstrip(".") or None)
                    yield from self._resolve_in(base, [], EdgeKind.DYNAMIC_IMPORT)
                else:
                    yield from self._resolve_absolute(target, [], EdgeKind.DYNAMIC_IMPORT)

    @staticmethod
    def _relative_base(path: Path, level: int, module: str | None) -> Path:
        base = path.parent
        for _ in range(level - 1):
            base = base.parent
        if module:
            base = base.joinpath(*module.split("."))
        return base

    def _resolve_in(self, base: Path, names: list[str], kind: EdgeKind) -> list[DependencyEdge]:
        """Resolve ``from <base> import names`` (or ``import <base>`` if names is empty)."""
        edges: list[DependencyEdge] = []
        needs_base = not names

        for name in names:
            if name == "*":
                needs_base = True
                continue
            submodule = _module_file(base / name)
            if submodule is not None:
                edges.append(DependencyEdge(normalize_path(submodule), kind))
            else:
                needs_base = True

        if needs_base:
            module = _module_file(base)
            if module is not None:
                edges.append(DependencyEdge(normalize_path(module), kind))

        return edges

    def _resolve_absolute(self, module: str, names: list[str], kind: EdgeKind) -> list[DependencyEdge]:
        parts = module.split(".")
        for root in self.search_roots:
            base = root.joinpath(*parts)
            if _module_file(base) is not None or base.is_dir():
                return self._resolve_in(base, names, kind)

        top_level = parts[0]
        if not self.track_external or top_level in sys.stdlib_module_names:
            return []
        return [DependencyEdge(top_level, kind, is_external_package=True)]

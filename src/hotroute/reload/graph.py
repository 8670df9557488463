"""Import graph between route modules and the files they depend on.

The tracker keeps both directions of the graph:
- dependencies: file -> edges to the files it imports
- dependents: file -> files that import it (insertion-ordered)

Invariant: if B is a dependent of A then one of B's edges targets A. The
graph may contain cycles, so every traversal carries a visited set.
"""

import logging
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from hotroute.paths import normalize_path
from hotroute.reload.strategy import (
    Full,
    InfrastructureKind,
    ReloadStrategy,
    Selective,
    Single,
    Skip,
)

logger = logging.getLogger(__name__)


class GraphInconsistencyError(Exception):
    """Raised when the two directions of the graph disagree."""

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__(f"Dependency graph is inconsistent: {'; '.join(problems)}")


class EdgeKind(str, Enum):
    """How a dependency was imported."""

    IMPORT = "import"
    DYNAMIC_IMPORT = "dynamic-import"


@dataclass(frozen=True)
class DependencyEdge:
    """An outgoing import from one file to another file or package."""

    path: str
    kind: EdgeKind = EdgeKind.IMPORT
    is_external_package: bool = False

    def to_json(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "kind": self.kind.value,
            "isExternalPackage": self.is_external_package,
        }


class DependencyTracker:
    """Maintains the bidirectional import graph and picks reload strategies."""

    def __init__(self) -> None:
        self._dependencies: dict[str, set[DependencyEdge]] = {}
        # dict used as an ordered set so traversal order is reproducible
        self._dependents: dict[str, dict[str, None]] = {}

    def update_dependency_graph(
        self,
        file_path: str | Path,
        dependencies: Iterable[DependencyEdge],
    ) -> None:
        """Replace the outgoing edges of file_path and fix up dependents."""
        source = normalize_path(file_path)
        new_edges = {
            DependencyEdge(normalize_path(e.path), e.kind, e.is_external_package)
            if not e.is_external_package
            else e
            for e in dependencies
        }

        old_targets = {e.path for e in self._dependencies.get(source, set())}
        new_targets = {e.path for e in new_edges}

        for target in old_targets - new_targets:
            importers = self._dependents.get(target)
            if importers is None:
                continue
            importers.pop(source, None)
            if not importers:
                del self._dependents[target]

        for target in sorted(new_targets - old_targets):
            self._dependents.setdefault(target, {})[source] = None

        self._dependencies[source] = new_edges
        logger.debug(f"Updated dependencies for {source}: {len(new_edges)} edges")

    def remove_file(self, file_path: str | Path) -> None:
        """Forget a deleted file's outgoing edges.

        Files that still import it keep their edges until they are rescanned.
        """
        source = normalize_path(file_path)
        if source not in self._dependencies:
            return
        self.update_dependency_graph(source, ())
        del self._dependencies[source]

    def get_dependents(self, file_path: str | Path) -> set[str]:
        """Files that import file_path directly."""
        return set(self._dependents.get(normalize_path(file_path), ()))

    def get_dependencies(self, file_path: str | Path) -> set[DependencyEdge]:
        """Edges file_path imports directly."""
        return set(self._dependencies.get(normalize_path(file_path), ()))

    def get_transitive_dependents(
        self,
        file_path: str | Path,
        max_depth: int | None = None,
    ) -> list[str]:
        """All files that import file_path directly or indirectly.

        Args:
            file_path: Starting file (not included in the result).
            max_depth: Stop after this many hops; None means unbounded.

        Returns:
            Dependents in breadth-first discovery order.
        """
        start = normalize_path(file_path)
        visited = {start}
        found: list[str] = []
        queue: deque[tuple[str, int]] = deque([(start, 0)])

        while queue:
            current, depth = queue.popleft()
            if max_depth is not None and depth >= max_depth:
                continue
            for dependent in self._dependents.get(current, ()):
                if dependent in visited:
                    continue
                visited.add(dependent)
                found.append(dependent)
                queue.append((dependent, depth + 1))

        return found

    def determine_reload_strategy(
        self,
        changed_path: str | Path,
        known_routes: Iterable[str | Path],
        infrastructure: InfrastructureKind | None = None,
    ) -> ReloadStrategy:
        """Decide which routes a change to changed_path invalidates.

        Args:
            changed_path: The file that changed.
            known_routes: Files currently registered as routes.
            infrastructure: Set by the watcher when the file is shared
                configuration rather than a module.

        Returns:
            Full for infrastructure, Single when the file is itself a route,
            otherwise Skip/Single/Selective depending on how many routes
            depend on it directly or transitively.
        """
        changed = normalize_path(changed_path)

        if infrastructure is not None:
            return Full(
                reason=f"{infrastructure.value} file changed: {changed}",
                file_path=changed,
                infrastructure=infrastructure,
            )

        routes = {normalize_path(r) for r in known_routes}
        if changed in routes:
            return Single(changed)

        affected = [path for path in self.get_transitive_dependents(changed) if path in routes]

        if not affected:
            return Skip()
        if len(affected) == 1:
            return Single(affected[0])
        return Selective(tuple(affected))

    def verify(self) -> None:
        """Check that dependents and dependencies mirror each other.

        Raises:
            GraphInconsistencyError: Listing every mismatch found.
        """
        problems: list[str] = []

        for target, importers in self._dependents.items():
            for importer in importers:
                targets = {e.path for e in self._dependencies.get(importer, ())}
                if target not in targets:
                    problems.append(f"{importer} listed as dependent of {target} without an edge")

        for source, edges in self._dependencies.items():
            for edge in edges:
                if source not in self._dependents.get(edge.path, {}):
                    problems.append(f"edge {source} -> {edge.path} missing from dependents")

        if problems:
            raise GraphInconsistencyError(problems)

    @property
    def files(self) -> list[str]:
        """Files whose dependencies have been recorded."""
        return list(self._dependencies)

    def stats(self) -> dict[str, Any]:
        total_files = len(self._dependencies)
        total_deps = sum(len(edges) for edges in self._dependencies.values())
        external = sum(
            1 for edges in self._dependencies.values() for e in edges if e.is_external_package
        )
        return {
            "totalFiles": total_files,
            "totalDependencies": total_deps,
            "externalDependencies": external,
            "localDependencies": total_deps - external,
            "averageDependenciesPerFile": round(total_deps / total_files, 2) if total_files else 0,
        }

    def export_graph(self) -> dict[str, list[dict[str, Any]]]:
        """JSON-ready view of the outgoing edges of every file."""
        return {
            source: [e.to_json() for e in sorted(edges, key=lambda e: e.path)]
            for source, edges in self._dependencies.items()
        }

    def clear(self) -> None:
        self._dependencies.clear()
        self._dependents.clear()

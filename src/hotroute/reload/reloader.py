"""Module reload execution.

The coordinator talks to anything implementing ``ReloadExecutor``. The
default ``ModuleReloader`` swaps a route module's code in place with
``importlib.reload`` (or imports it for the first time).
"""

import hashlib
import importlib
import importlib.util
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReloadOutcome:
    """Result of a single reload attempt."""

    success: bool
    error: str | None = None

    @classmethod
    def ok(cls) -> "ReloadOutcome":
        return cls(success=True)

    @classmethod
    def failed(cls, error: str) -> "ReloadOutcome":
        return cls(success=False, error=error)


@runtime_checkable
class ReloadExecutor(Protocol):
    """Reloads the module behind one route file."""

    async def reload(self, path: str) -> ReloadOutcome: ...


class ModuleReloader:
    """Reloads Python modules identified by their file path."""

    def __init__(self, search_roots: list[str | Path]):
        self.search_roots = [Path(root).resolve() for root in search_roots]

    def path_to_module(self, path: str | Path) -> str | None:
        """Convert a file path to a Python module name.

        Args:
            path: Path to a Python file.

        Returns:
            Module name (e.g., "api.posts.detail") or None if the file is
            not a module under any search root.
        """
        path = Path(path)
        if path.suffix != ".py":
            return None

        for root in self.search_roots:
            try:
                rel_path = path.resolve().relative_to(root)
            except ValueError:
                continue

            parts = rel_path.parts
            if parts[-1] == "__init__.py":
                parts = parts[:-1]
            else:
                parts = (*parts[:-1], parts[-1].removesuffix(".py"))

            if parts and all(part.isidentifier() for part in parts):
                return ".".join(parts)

        return None

    def reload_module(self, module_name: str) -> None:
        """Reload (or first import) a module; import errors propagate."""
        module = sys.modules.get(module_name)
        if module is None:
            importlib.import_module(module_name)
            logger.info(f"Imported module: {module_name}")
            return

        importlib.reload(module)
        logger.info(f"Reloaded module: {module_name}")

    def load_file(self, path: Path) -> str:
        """Execute a route file that has no importable module name.

        Route files such as ``posts/[id].py`` cannot be imported by name, so
        they are loaded from their location under a name derived from the
        path, replacing any earlier copy in ``sys.modules``.
        """
        digest = hashlib.sha1(str(path.resolve()).encode()).hexdigest()[:12]
        module_name = f"_hotroute_route_{digest}"
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise ImportError(f"Cannot load {path}")

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(module_name, None)
            raise
        logger.info(f"Loaded route file {path} as {module_name}")
        return module_name

    async def reload(self, path: str) -> ReloadOutcome:
        file_path = Path(path)
        if file_path.suffix != ".py" or not file_path.is_file():
            return ReloadOutcome.failed(f"{path} is not a Python module file")

        module_name = self.path_to_module(file_path)
        importlib.invalidate_caches()
        try:
            if module_name is None:
                module_name = self.load_file(file_path)
            else:
                self.reload_module(module_name)
        except Exception as e:
            logger.error(f"Failed to reload {path}: {e}")
            return ReloadOutcome.failed(f"{type(e).__name__}: {e}")

        return ReloadOutcome.ok()

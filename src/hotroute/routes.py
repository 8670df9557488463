"""Route registry and file path -> route path mapping."""

import logging
import re
from collections.abc import Iterable
from pathlib import Path, PurePosixPath

from hotroute.paths import normalize_path

logger = logging.getLogger(__name__)

ROUTE_FILE_SUFFIXES = (".py", ".js", ".ts", ".tsx", ".jsx", ".mjs", ".cjs")

_DYNAMIC_SEGMENT = re.compile(r"\[([^\]]+)\]")


def _posix(path: str | Path) -> str:
    return str(path).replace("\\", "/")


def file_path_to_route(file_path: str | Path, api_dir: str | Path, api_prefix: str = "/api") -> str:
    """Map a route file to its public route path.

    The API directory and file extension are stripped, a trailing ``index``
    collapses into its parent and ``[param]`` segments become ``:param``::

        pages/api/posts/[id].py -> /api/posts/:id
        pages/api/index.py      -> /api

    Raises:
        ValueError: If file_path is not inside api_dir.
    """
    file_posix = PurePosixPath(_posix(normalize_path(file_path)))
    dir_posix = PurePosixPath(_posix(normalize_path(api_dir)))

    try:
        relative = file_posix.relative_to(dir_posix)
    except ValueError:
        raise ValueError(f"{file_path} is not inside API directory {api_dir}") from None

    route = str(relative)
    for suffix in ROUTE_FILE_SUFFIXES:
        if route.endswith(suffix):
            route = route[: -len(suffix)]
            break

    if route == "index":
        route = ""
    elif route.endswith("/index"):
        route = route[: -len("/index")]

    route = _DYNAMIC_SEGMENT.sub(r":\1", route)

    prefix = "/" + api_prefix.strip("/") if api_prefix.strip("/") else ""
    return f"{prefix}/{route}" if route else prefix or "/"


class RouteRegistry:
    """The set of files currently served as API routes.

    Owned by the router; the coordinator only reads it.
    """

    def __init__(
        self,
        api_dir: str | Path,
        api_prefix: str = "/api",
        routes: Iterable[str | Path] = (),
    ):
        self.api_dir = Path(api_dir)
        self.api_prefix = api_prefix
        self._routes: dict[str, None] = {}
        for route in routes:
            self.add(route)

    def add(self, file_path: str | Path) -> str:
        path = normalize_path(file_path)
        self._routes[path] = None
        return path

    def remove(self, file_path: str | Path) -> bool:
        path = normalize_path(file_path)
        if path not in self._routes:
            return False
        del self._routes[path]
        return True

    def known_routes(self) -> set[str]:
        return set(self._routes)

    def __contains__(self, file_path: object) -> bool:
        return isinstance(file_path, (str, Path)) and normalize_path(file_path) in self._routes

    def __iter__(self):
        return iter(list(self._routes))

    def __len__(self) -> int:
        return len(self._routes)

    def file_path_to_route(self, file_path: str | Path) -> str:
        return file_path_to_route(file_path, self.api_dir, self.api_prefix)

    def route_to_file_path(self, route_path: str) -> str | None:
        """Reverse lookup of a registered route's file, or None."""
        for path in self._routes:
            if self.file_path_to_route(path) == route_path:
                return path
        return None

    def discover(self) -> int:
        """Register every ``*.py`` module under the API directory.

        Files whose name starts with an underscore (``__init__.py``,
        private helpers) are not routes.

        Returns:
            Number of newly registered routes.
        """
        if not self.api_dir.exists():
            logger.warning(f"API directory does not exist: {self.api_dir}")
            return 0

        added = 0
        for path in sorted(self.api_dir.rglob("*.py")):
            if path.name.startswith("_") or "__pycache__" in path.parts:
                continue
            if normalize_path(path) not in self._routes:
                self.add(path)
                added += 1

        logger.info(f"Discovered {added} routes under {self.api_dir}")
        return added

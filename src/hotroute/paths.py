"""Path normalization shared by the graph, registry and watcher."""

import os
from pathlib import Path


def normalize_path(path: str | Path) -> str:
    """Canonical string form used for every graph and registry key."""
    return os.path.normpath(os.fspath(path))

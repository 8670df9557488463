"""File change watching for hot-reload.

Watches for changes to:
- Route modules and the Python files they import
- Environment files (.env, .env.local, ...)
- Project configuration files (pyproject.toml, hotroute.toml, ...)

The watcher only reports changes; debouncing and deduplication are left
to the coordinator it feeds.
"""

import asyncio
import hashlib
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from hotroute.reload.strategy import InfrastructureKind

logger = logging.getLogger(__name__)


def classify_infrastructure(
    path: str | Path,
    env_patterns: list[str],
    config_patterns: list[str],
) -> InfrastructureKind | None:
    """Return the infrastructure kind of path, or None for ordinary modules."""
    path = Path(path)
    if any(path.match(pattern) for pattern in env_patterns):
        return InfrastructureKind.ENV
    if any(path.match(pattern) for pattern in config_patterns):
        return InfrastructureKind.CONFIG
    return None


@dataclass
class FileChange:
    """Represents a detected file change."""

    path: Path
    change_type: str  # "modified", "created", "deleted"
    detected_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class FileChangeWatcher:
    """Watches directories for file changes.

    Scans directories periodically to detect:
    - New files
    - Modified files
    - Deleted files

    Uses content hashes so that a save without edits is not a change.
    """

    def __init__(
        self,
        watch_dirs: list[str | Path],
        patterns: list[str] | None = None,
        ignore_patterns: list[str] | None = None,
    ):
        self.watch_dirs = [Path(d) for d in watch_dirs]
        self.patterns = patterns or ["*.py"]
        self.ignore_patterns = ignore_patterns or [
            "__pycache__",
            "*.pyc",
            ".git",
            ".venv",
            "*.egg-info",
        ]

        # State tracking
        self._file_states: dict[Path, str] = {}  # path -> content hash
        self._initialized = False
        self._stopped = asyncio.Event()

    def _should_ignore(self, path: Path) -> bool:
        return any(
            Path(part).match(pattern)
            for part in path.parts
            for pattern in self.ignore_patterns
        )

    def _matches_pattern(self, path: Path) -> bool:
        return any(path.match(pattern) for pattern in self.patterns)

    def _compute_hash(self, path: Path) -> str:
        content = path.read_bytes()
        return hashlib.sha256(content).hexdigest()

    def _scan_files(self) -> dict[Path, str]:
        """Scan all watched directories for matching files."""
        files: dict[Path, str] = {}

        for watch_dir in self.watch_dirs:
            if not watch_dir.exists():
                continue

            for path in watch_dir.rglob("*"):
                if not path.is_file():
                    continue
                if self._should_ignore(path.relative_to(watch_dir)):
                    continue
                if not self._matches_pattern(path):
                    continue

                try:
                    files[path] = self._compute_hash(path)
                except OSError as e:
                    logger.debug(f"Error scanning {path}: {e}")

        return files

    def initialize(self) -> None:
        """Initialize the watcher state by scanning current files."""
        self._file_states = self._scan_files()
        self._initialized = True
        logger.info(f"FileChangeWatcher initialized with {len(self._file_states)} files")

    @property
    def tracked_files(self) -> list[Path]:
        return list(self._file_states)

    def detect_changes(self) -> list[FileChange]:
        """Detect changes since last scan.

        Returns:
            List of FileChange objects describing detected changes.
        """
        if not self._initialized:
            self.initialize()
            return []  # First run, no changes to report

        current_files = self._scan_files()
        changes: list[FileChange] = []

        for path, file_hash in current_files.items():
            if path not in self._file_states:
                changes.append(FileChange(path=path, change_type="created"))
            elif file_hash != self._file_states[path]:
                changes.append(FileChange(path=path, change_type="modified"))

        for path in self._file_states:
            if path not in current_files:
                changes.append(FileChange(path=path, change_type="deleted"))

        self._file_states = current_files

        return changes

    def stop(self) -> None:
        """Ask a running watch loop to exit after its current scan."""
        self._stopped.set()

    async def watch_loop(
        self,
        on_change: Callable[[FileChange], Any],
        poll_interval: float = 0.5,
    ) -> None:
        """Poll for changes and report each one until stopped.

        Args:
            on_change: Called once per detected change; may be async.
            poll_interval: Seconds between directory scans.
        """
        self._stopped.clear()
        self.initialize()

        while not self._stopped.is_set():
            for change in self.detect_changes():
                logger.debug(f"File {change.change_type}: {change.path}")
                try:
                    result = on_change(change)
                    if asyncio.iscoroutine(result):
                        await result
                except Exception as e:
                    logger.error(f"Change handler failed for {change.path}: {e}")

            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=poll_interval)
            except TimeoutError:
                pass

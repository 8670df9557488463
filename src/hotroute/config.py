"""Configuration for the hot-reload coordinator.

Settings come from a ``[tool.hotroute]`` table in ``pyproject.toml`` or the
top level of a ``hotroute.toml`` file. Paths are resolved relative to the
directory holding the configuration file.
"""

import logging
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

CONFIG_FILE_NAMES = ("hotroute.toml", "pyproject.toml")


class ConfigError(Exception):
    """Raised when configuration cannot be loaded."""


@dataclass
class HotReloadConfig:
    """Settings for route discovery, change detection and reloading."""

    project_root: Path = field(default_factory=Path.cwd)
    api_dir: Path = Path("api")
    api_prefix: str = "/api"

    # Directories scanned for changes and for the initial dependency graph
    watch_dirs: list[Path] = field(default_factory=list)
    # Roots used to resolve absolute imports to files
    search_roots: list[Path] = field(default_factory=list)

    debounce_ms: float = 200.0
    max_retries: int = 2
    retry_delay_ms: float = 100.0
    reload_timeout: float = 10.0
    poll_interval: float = 0.5

    env_files: list[str] = field(default_factory=lambda: [".env", ".env.*"])
    config_files: list[str] = field(
        default_factory=lambda: ["pyproject.toml", "hotroute.toml", "requirements*.txt"]
    )
    track_external: bool = False

    def __post_init__(self) -> None:
        self.project_root = Path(self.project_root).resolve()
        self.api_dir = self._resolve(self.api_dir)
        self.watch_dirs = [self._resolve(d) for d in self.watch_dirs] or [self.project_root]
        self.search_roots = [self._resolve(d) for d in self.search_roots] or [self.project_root]

        if self.debounce_ms < 0:
            raise ConfigError(f"debounce_ms must not be negative, got {self.debounce_ms}")
        if self.max_retries < 0:
            raise ConfigError(f"max_retries must not be negative, got {self.max_retries}")
        if self.reload_timeout <= 0:
            raise ConfigError(f"reload_timeout must be positive, got {self.reload_timeout}")

    def _resolve(self, path: str | Path) -> Path:
        path = Path(path)
        if not path.is_absolute():
            path = self.project_root / path
        return path.resolve()

    @property
    def watch_patterns(self) -> list[str]:
        """File patterns the watcher should report changes for."""
        return ["*.py", *self.env_files, *self.config_files]

    @classmethod
    def from_dict(cls, data: dict[str, Any], project_root: Path | None = None) -> "HotReloadConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown hotroute settings: {', '.join(sorted(unknown))}")

        values = dict(data)
        if project_root is not None:
            root = Path(values.get("project_root", "."))
            values["project_root"] = root if root.is_absolute() else project_root / root
        return cls(**values)


def find_config_file(start: Path) -> Path | None:
    """Return the first config file found in start or its parents."""
    start = start.resolve()
    for directory in (start, *start.parents):
        for name in CONFIG_FILE_NAMES:
            candidate = directory / name
            if not candidate.is_file():
                continue
            if name == "pyproject.toml" and "hotroute" not in _read_toml(candidate).get("tool", {}):
                continue
            return candidate
    return None


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e


def load_config(path: Path | None = None, **overrides: Any) -> HotReloadConfig:
    """Load configuration from path (or the nearest config file).

    Args:
        path: A ``hotroute.toml`` or ``pyproject.toml`` file. When None the
            current directory and its parents are searched; if nothing is
            found the defaults are used.
        **overrides: Values that take precedence over the file (None values
            are ignored, so CLI options can be passed straight through).
    """
    overrides = {k: v for k, v in overrides.items() if v is not None}

    if path is None:
        path = find_config_file(Path.cwd())
    if path is None:
        logger.debug("No hotroute configuration file found, using defaults")
        return HotReloadConfig.from_dict(overrides)

    data = _read_toml(path)
    if path.name == "pyproject.toml":
        data = data.get("tool", {}).get("hotroute", {})

    logger.info(f"Loaded hotroute configuration from {path}")
    return HotReloadConfig.from_dict({**data, **overrides}, project_root=path.parent)

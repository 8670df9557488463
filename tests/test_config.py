"""Tests for configuration loading."""

from pathlib import Path

import pytest

from conftest import write
from hotroute.config import ConfigError, HotReloadConfig, find_config_file, load_config


class TestHotReloadConfig:
    """Tests for HotReloadConfig."""

    def test_defaults(self, tmp_path: Path):
        config = HotReloadConfig(project_root=tmp_path)

        root = tmp_path.resolve()
        assert config.api_dir == root / "api"
        assert config.watch_dirs == [root]
        assert config.search_roots == [root]
        assert config.debounce_ms == 200
        assert config.max_retries == 2

    def test_watch_patterns_include_infrastructure(self, tmp_path: Path):
        config = HotReloadConfig(project_root=tmp_path)
        assert "*.py" in config.watch_patterns
        assert ".env" in config.watch_patterns
        assert "pyproject.toml" in config.watch_patterns

    @pytest.mark.parametrize(
        "overrides",
        [{"debounce_ms": -1}, {"max_retries": -1}, {"reload_timeout": 0}],
    )
    def test_invalid_values(self, tmp_path: Path, overrides: dict):
        with pytest.raises(ConfigError):
            HotReloadConfig(project_root=tmp_path, **overrides)

    def test_unknown_keys_rejected(self):
        with pytest.raises(ConfigError, match="debounce"):
            HotReloadConfig.from_dict({"debounce": 100})


class TestLoadConfig:
    """Tests for load_config."""

    def test_hotroute_toml(self, tmp_path: Path):
        path = write(
            tmp_path / "hotroute.toml",
            'api_dir = "pages/api"\napi_prefix = "/v1"\ndebounce_ms = 50\n',
        )

        config = load_config(path)

        assert config.project_root == tmp_path.resolve()
        assert config.api_dir == tmp_path.resolve() / "pages" / "api"
        assert config.api_prefix == "/v1"
        assert config.debounce_ms == 50

    def test_pyproject_table(self, tmp_path: Path):
        path = write(
            tmp_path / "pyproject.toml",
            '[project]\nname = "app"\n\n[tool.hotroute]\nmax_retries = 5\n',
        )

        assert load_config(path).max_retries == 5

    def test_overrides_win_and_none_is_ignored(self, tmp_path: Path):
        path = write(tmp_path / "hotroute.toml", "debounce_ms = 50\nmax_retries = 1\n")

        config = load_config(path, debounce_ms=10, max_retries=None)

        assert config.debounce_ms == 10
        assert config.max_retries == 1

    def test_invalid_toml(self, tmp_path: Path):
        path = write(tmp_path / "hotroute.toml", "debounce_ms = = 1\n")
        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_config(path)

    def test_defaults_without_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.chdir(tmp_path)
        config = load_config(project_root=tmp_path)
        assert config.api_dir == tmp_path.resolve() / "api"


class TestFindConfigFile:
    """Tests for find_config_file."""

    def test_finds_in_parent(self, tmp_path: Path):
        config = write(tmp_path / "hotroute.toml", "")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)

        assert find_config_file(nested) == config.resolve()

    def test_skips_pyproject_without_table(self, tmp_path: Path):
        write(tmp_path / "pyproject.toml", '[project]\nname = "app"\n')
        nested = tmp_path / "pkg"
        nested.mkdir()

        found = find_config_file(nested)
        assert found is None or found.parent not in (tmp_path.resolve(), nested.resolve())

"""Tests for the file change watcher."""

import asyncio
from pathlib import Path

from hotroute.reload import FileChange, FileChangeWatcher, InfrastructureKind, classify_infrastructure


class TestFileChangeWatcher:
    """Tests for FileChangeWatcher."""

    def test_initialize_scans_files(self, tmp_path: Path):
        """File watcher initializes by scanning existing files."""
        src_dir = tmp_path / "src"
        src_dir.mkdir()
        (src_dir / "module.py").write_text("# code")
        (src_dir / "other.py").write_text("# more code")

        watcher = FileChangeWatcher([src_dir])
        watcher.initialize()

        assert len(watcher.tracked_files) == 2

    def test_first_detect_reports_nothing(self, tmp_path: Path):
        (tmp_path / "module.py").write_text("# code")
        watcher = FileChangeWatcher([tmp_path])
        assert watcher.detect_changes() == []

    def test_detect_new_file(self, tmp_path: Path):
        """File watcher detects new files."""
        watcher = FileChangeWatcher([tmp_path])
        watcher.initialize()

        (tmp_path / "new.py").write_text("# new code")

        changes = watcher.detect_changes()
        assert len(changes) == 1
        assert changes[0].change_type == "created"
        assert changes[0].path.name == "new.py"

    def test_detect_modified_file(self, tmp_path: Path):
        """File watcher detects modified files."""
        test_file = tmp_path / "module.py"
        test_file.write_text("# original")

        watcher = FileChangeWatcher([tmp_path])
        watcher.initialize()

        test_file.write_text("# modified")

        changes = watcher.detect_changes()
        assert len(changes) == 1
        assert changes[0].change_type == "modified"

    def test_unchanged_save_is_not_a_change(self, tmp_path: Path):
        test_file = tmp_path / "module.py"
        test_file.write_text("# same")

        watcher = FileChangeWatcher([tmp_path])
        watcher.initialize()
        test_file.write_text("# same")

        assert watcher.detect_changes() == []

    def test_detect_deleted_file(self, tmp_path: Path):
        """File watcher detects deleted files."""
        test_file = tmp_path / "module.py"
        test_file.write_text("# code")

        watcher = FileChangeWatcher([tmp_path])
        watcher.initialize()

        test_file.unlink()

        changes = watcher.detect_changes()
        assert len(changes) == 1
        assert changes[0].change_type == "deleted"

    def test_ignores_pycache(self, tmp_path: Path):
        """File watcher ignores __pycache__ directories."""
        pycache = tmp_path / "__pycache__"
        pycache.mkdir()
        (pycache / "module.cpython-312.py").write_text("# cached")
        (tmp_path / "module.py").write_text("# code")

        watcher = FileChangeWatcher([tmp_path])
        watcher.initialize()

        assert watcher.tracked_files == [tmp_path / "module.py"]

    def test_respects_patterns(self, tmp_path: Path):
        """File watcher respects file patterns."""
        (tmp_path / "module.py").write_text("# python")
        (tmp_path / "script.sh").write_text("# bash")
        (tmp_path / ".env").write_text("A=1")
        (tmp_path / "pyproject.toml").write_text("[project]")

        watcher = FileChangeWatcher([tmp_path], patterns=["*.py", ".env", "pyproject.toml"])
        watcher.initialize()

        assert {p.name for p in watcher.tracked_files} == {"module.py", ".env", "pyproject.toml"}

    async def test_watch_loop_reports_changes(self, tmp_path: Path):
        watcher = FileChangeWatcher([tmp_path])
        seen: list[FileChange] = []

        task = asyncio.create_task(watcher.watch_loop(seen.append, poll_interval=0.01))
        await asyncio.sleep(0.03)

        (tmp_path / "route.py").write_text("# new")
        for _ in range(100):
            if seen:
                break
            await asyncio.sleep(0.01)

        watcher.stop()
        await asyncio.wait_for(task, timeout=1.0)

        assert [(c.path.name, c.change_type) for c in seen] == [("route.py", "created")]

    async def test_watch_loop_survives_handler_errors(self, tmp_path: Path):
        watcher = FileChangeWatcher([tmp_path])
        calls = []

        async def on_change(change: FileChange) -> None:
            calls.append(change)
            raise RuntimeError("handler failed")

        task = asyncio.create_task(watcher.watch_loop(on_change, poll_interval=0.01))
        await asyncio.sleep(0.03)

        (tmp_path / "a.py").write_text("# a")
        for _ in range(100):
            if calls:
                break
            await asyncio.sleep(0.01)
        (tmp_path / "b.py").write_text("# b")
        for _ in range(100):
            if len(calls) == 2:
                break
            await asyncio.sleep(0.01)

        watcher.stop()
        await asyncio.wait_for(task, timeout=1.0)

        assert [c.path.name for c in calls] == ["a.py", "b.py"]


class TestClassifyInfrastructure:
    """Tests for classify_infrastructure."""

    ENV = [".env", ".env.*"]
    CONFIG = ["pyproject.toml", "requirements*.txt"]

    def test_env_files(self):
        assert classify_infrastructure("/app/.env", self.ENV, self.CONFIG) is InfrastructureKind.ENV
        assert classify_infrastructure("/app/.env.local", self.ENV, self.CONFIG) is InfrastructureKind.ENV

    def test_config_files(self):
        assert classify_infrastructure("/app/pyproject.toml", self.ENV, self.CONFIG) is InfrastructureKind.CONFIG
        assert (
            classify_infrastructure("/app/requirements-dev.txt", self.ENV, self.CONFIG)
            is InfrastructureKind.CONFIG
        )

    def test_modules_are_not_infrastructure(self):
        assert classify_infrastructure("/app/api/users.py", self.ENV, self.CONFIG) is None
        assert classify_infrastructure("/app/envelope.py", self.ENV, self.CONFIG) is None

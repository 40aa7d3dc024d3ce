"""
Tests for BackupManager: flat naming, per-run directory, invariants.
"""

import os
import re
from pathlib import Path

from dotkit.core.services.backup import BackupManager, flat_name, list_snapshots, new_stamp


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


class TestFlatName:
    def test_under_home(self, home):
        assert flat_name(home / ".kiro" / "settings" / "cli.json", home) == ".kiro__settings__cli.json"

    def test_top_level(self, home):
        assert flat_name(home / ".zshrc", home) == ".zshrc"

    def test_outside_home(self, home):
        assert flat_name(Path("/opt/repo/AGENTS.md"), home) == "opt__repo__AGENTS.md"


class TestStamp:
    def test_format(self):
        assert re.fullmatch(r"\d{8}_\d{6}", new_stamp())


class TestBackup:
    def test_missing_path_is_noop(self, home, tmp_path):
        mgr = BackupManager(tmp_path / "backups", home, stamp="20250101_120000")
        assert mgr.backup(home / ".zshrc") is None
        assert not (tmp_path / "backups").exists()
        assert mgr.count == 0

    def test_byte_identical_and_original_kept(self, home, tmp_path):
        original = _write(home / ".kiro" / "settings" / "cli.json", '{"a": 1}\n')
        mgr = BackupManager(tmp_path / "backups", home, stamp="20250101_120000")

        snap = mgr.backup(original)

        assert snap == tmp_path / "backups" / "20250101_120000" / ".kiro__settings__cli.json"
        assert snap.read_bytes() == b'{"a": 1}\n'
        assert original.read_bytes() == b'{"a": 1}\n'
        assert mgr.count == 1

    def test_preserves_mode(self, home, tmp_path):
        script = _write(home / ".local" / "bin" / "tool", "#!/bin/sh\n")
        os.chmod(script, 0o755)
        mgr = BackupManager(tmp_path / "backups", home, stamp="s")
        snap = mgr.backup(script)
        assert os.stat(snap).st_mode & 0o777 == 0o755

    def test_one_directory_per_run(self, home, tmp_path):
        mgr = BackupManager(tmp_path / "backups", home, stamp="20250101_120000")
        mgr.backup(_write(home / ".zshrc", "a"))
        mgr.backup(_write(home / ".tmux.conf", "b"))
        runs = list((tmp_path / "backups").iterdir())
        assert [r.name for r in runs] == ["20250101_120000"]
        assert sorted(p.name for p in runs[0].iterdir()) == [".tmux.conf", ".zshrc"]

    def test_last_write_wins(self, home, tmp_path):
        target = _write(home / ".zshrc", "first")
        mgr = BackupManager(tmp_path / "backups", home, stamp="s")
        mgr.backup(target)
        target.write_text("second")
        snap = mgr.backup(target)
        assert snap.read_text() == "second"
        assert mgr.count == 1

    def test_directory_target(self, home, tmp_path):
        bundle = home / "repo" / "scripts" / "setup" / "dotfiles"
        _write(bundle / "install.sh", "echo hi\n")
        mgr = BackupManager(tmp_path / "backups", home, stamp="s")
        snap = mgr.backup(bundle)
        assert (snap / "install.sh").read_text() == "echo hi\n"
        assert snap.name == "repo__scripts__setup__dotfiles"
        assert (bundle / "install.sh").exists()

    def test_dry_run_writes_nothing(self, home, tmp_path):
        target = _write(home / ".zshrc", "a")
        mgr = BackupManager(tmp_path / "backups", home, stamp="s", dry_run=True)
        assert mgr.backup(target) is None
        assert not (tmp_path / "backups").exists()

    def test_never_purges_previous_runs(self, home, tmp_path):
        root = tmp_path / "backups"
        _write(root / "20240101_000000" / ".zshrc", "old")
        mgr = BackupManager(root, home, stamp="20250101_000000")
        mgr.backup(_write(home / ".zshrc", "new"))
        assert (root / "20240101_000000" / ".zshrc").read_text() == "old"


class TestListSnapshots:
    def test_newest_first(self, tmp_path):
        root = tmp_path / "backups"
        _write(root / "20240101_000000" / "a", "x")
        _write(root / "20250101_000000" / "a", "x")
        _write(root / "20250101_000000" / "b", "x")
        snaps = list_snapshots(root)
        assert [s.stamp for s in snaps] == ["20250101_000000", "20240101_000000"]
        assert snaps[0].items == 2

    def test_missing_root(self, tmp_path):
        assert list_snapshots(tmp_path / "nope") == []

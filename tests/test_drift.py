"""
Tests for drift detection: classification, labelled diffs, pair expansion.
"""

from pathlib import Path

from dotkit.core.config.loader import load_manifest, source_root
from dotkit.core.services.drift import (
    DriftStatus,
    bounded_diff,
    check,
    check_all,
    expand_pairs,
)
from dotkit.core.services.managed_files import ResolvedFile, select


def _pair(tmp_path: Path, src: str, dst: str | None) -> tuple[Path, Path]:
    source = tmp_path / "src.conf"
    source.write_text(src)
    destination = tmp_path / "dst.conf"
    if dst is not None:
        destination.write_text(dst)
    return source, destination


class TestCheck:
    def test_identical_is_ok(self, tmp_path):
        s, d = _pair(tmp_path, "a\nb\n", "a\nb\n")
        result = check(s, d, "tmux.conf")
        assert result.status is DriftStatus.OK
        assert result.diff == []

    def test_missing(self, tmp_path):
        s, d = _pair(tmp_path, "a\n", None)
        assert check(s, d, "tmux.conf").status is DriftStatus.MISSING

    def test_drifted_diff_carries_label(self, tmp_path):
        s, d = _pair(tmp_path, "set -g mouse on\n", "set -g mouse off\n")
        result = check(s, d, "tmux.conf")
        assert result.status is DriftStatus.DRIFTED
        assert result.diff[0] == "--- tmux.conf (source)"
        assert result.diff[1] == "+++ tmux.conf (deployed)"
        assert "-set -g mouse on" in result.diff
        assert "+set -g mouse off" in result.diff

    def test_whitespace_only_change_is_drift(self, tmp_path):
        s, d = _pair(tmp_path, "a\n", "a \n")
        assert check(s, d, "x").status is DriftStatus.DRIFTED

    def test_missing_final_newline_shows_evidence(self, tmp_path):
        s, d = _pair(tmp_path, "a\n", "a")
        result = check(s, d, "zshrc")
        assert result.status is DriftStatus.DRIFTED
        assert result.diff[0] == "--- zshrc (source)"
        assert result.diff[-3:] == ["-a", "+a", "\\ No newline at end of file"]

    def test_crlf_endings_show_evidence(self, tmp_path):
        source = tmp_path / "src.conf"
        source.write_bytes(b"a\nb\n")
        destination = tmp_path / "dst.conf"
        destination.write_bytes(b"a\r\nb\r\n")

        result = check(source, destination, "gitconfig")

        assert result.status is DriftStatus.DRIFTED
        assert result.diff[:2] == ["--- gitconfig (source)", "+++ gitconfig (deployed)"]
        assert "+a^M" in result.diff
        assert "-a" in result.diff

    def test_source_missing_but_deployed(self, tmp_path):
        d = tmp_path / "dst.conf"
        d.write_text("x\n")
        result = check(tmp_path / "gone.conf", d, "x")
        assert result.status is DriftStatus.DRIFTED

    def test_label_defaults_to_destination_name(self, tmp_path):
        s, d = _pair(tmp_path, "a\n", None)
        assert check(s, d).label == "dst.conf"


class TestBoundedDiff:
    def test_limit(self, tmp_path):
        s, d = _pair(
            tmp_path,
            "".join(f"line {i}\n" for i in range(50)),
            "".join(f"LINE {i}\n" for i in range(50)),
        )
        assert len(bounded_diff(s, d, "big", 12)) == 12
        assert len(bounded_diff(s, d, "big", 3)) == 3

    def test_default_limit_is_twelve(self, tmp_path):
        s, d = _pair(
            tmp_path,
            "".join(f"a{i}\n" for i in range(30)),
            "".join(f"b{i}\n" for i in range(30)),
        )
        assert len(check(s, d, "x").diff) == 12


class TestReport:
    def test_alerts_count_non_ok(self, tmp_path):
        files = []
        for name, src, dst in [("ok", "a", "a"), ("drift", "a", "b"), ("miss", "a", None)]:
            source = tmp_path / f"{name}.src"
            source.write_text(src)
            dest = tmp_path / f"{name}.dst"
            if dst is not None:
                dest.write_text(dst)
            files.append(ResolvedFile(label=name, source=source, destination=dest))

        report = check_all(files)
        assert report.alerts == 2
        assert not report.clear
        assert [r.label for r in report.by_status(DriftStatus.MISSING)] == ["miss"]
        data = report.to_dict()
        assert data["status"] == "alert"
        assert data["results"][1]["status"] == "drifted"

    def test_empty_is_clear(self):
        assert check_all([]).clear

    def test_seeded_destination_is_never_compared(self, tmp_path):
        source = tmp_path / "secrets.env.example"
        source.write_text("API_KEY=\n")
        dest = tmp_path / "secrets.env"
        dest.write_text("API_KEY=filled-in\n")
        seeded = ResolvedFile(label="secrets", source=source, destination=dest, seed=True)
        absent = ResolvedFile(label="other", source=source, destination=tmp_path / "nope", seed=True)

        report = check_all([seeded, absent])

        assert report.results[0].status is DriftStatus.OK
        assert report.results[0].diff == []
        assert report.results[1].status is DriftStatus.MISSING


class TestExpandPairs:
    def test_static_then_families(self, files_kit, home):
        manifest = load_manifest(files_kit)
        pairs = expand_pairs(manifest, source_root(files_kit), home)
        assert [p.label for p in pairs] == [
            "zshrc",
            ".tmux.conf",
            "aliases/general.zsh",
            "aliases/git.zsh",
        ]
        assert pairs[0].destination == home / ".zshrc"
        assert pairs[2].destination == home / ".zsh" / "aliases" / "general.zsh"

    def test_new_family_member_is_picked_up(self, files_kit, home):
        (files_kit.parent / "configs" / "aliases" / "docker.zsh").write_text("alias d=docker\n")
        pairs = expand_pairs(load_manifest(files_kit), source_root(files_kit), home)
        assert "aliases/docker.zsh" in [p.label for p in pairs]

    def test_repo_pairs_need_repo_path(self, make_kit, home, tmp_path):
        config = make_kit(
            """\
            managed:
              - source: AGENTS.md
                destination: "{repo}/AGENTS.md"
            """,
            {"AGENTS.md": "# agents\n"},
        )
        manifest = load_manifest(config)
        assert expand_pairs(manifest, source_root(config), home) == []
        repo = tmp_path / "repo"
        pairs = expand_pairs(manifest, source_root(config), home, repo)
        assert pairs[0].destination == repo / "AGENTS.md"

    def test_select_by_label(self, files_kit, home):
        pairs = expand_pairs(load_manifest(files_kit), source_root(files_kit), home)
        assert [p.label for p in select(pairs, ["aliases/*"])] == [
            "aliases/general.zsh",
            "aliases/git.zsh",
        ]
        assert len(select(pairs, [])) == 4

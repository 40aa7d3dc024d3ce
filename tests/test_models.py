"""
Tests for domain models: Version, RunReport, Manifest validation.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from dotkit.core.models.action import Action, Receipt
from dotkit.core.models.manifest import (
    CommandStep,
    FilesStep,
    Manifest,
    ManagedFile,
    expand_destination,
    parse_mode,
)
from dotkit.core.models.report import BackupEntry, RunReport, VersionRecord
from dotkit.core.models.version import ABSENT_LABEL, UNKNOWN_LABEL, Version


# ── Version Tests ────────────────────────────────────────────────────


class TestVersion:
    def test_sentinels(self):
        assert Version.absent().is_sentinel
        assert Version.unknown().is_sentinel
        assert not Version.of("1.0").is_sentinel

    def test_labels(self):
        assert str(Version.absent()) == ABSENT_LABEL == "Not Installed"
        assert str(Version.unknown()) == UNKNOWN_LABEL == "Unknown"
        assert str(Version.of("1.2.3")) == "1.2.3"

    def test_blank_value_is_unknown(self):
        assert Version.of("  ") == Version.unknown()
        assert Version.of(None) == Version.unknown()

    def test_value_is_stripped(self):
        assert Version.of(" abc123\n").value == "abc123"

    def test_parse_labels(self):
        assert Version.parse("Not Installed") == Version.absent()
        assert Version.parse("Unknown") == Version.unknown()
        assert Version.parse("2.0") == Version.of("2.0")

    def test_equality(self):
        assert Version.of("1.0") == Version.of("1.0")
        assert Version.absent() != Version.unknown()


# ── Action / Receipt Tests ───────────────────────────────────────────


class TestReceipt:
    def test_success(self):
        r = Receipt.success(adapter="brew", action_id="a1", output="done")
        assert r.ok and not r.failed

    def test_failure(self):
        r = Receipt.failure(adapter="brew", action_id="a1", error="boom")
        assert r.failed
        assert r.error == "boom"

    def test_skip(self):
        r = Receipt.skip(adapter="brew", action_id="a1", reason="dry")
        assert r.skipped
        assert r.output == "dry"

    def test_action_label_falls_back_to_id(self):
        assert Action(id="x:1", adapter="brew").label == "x:1"
        assert Action(id="x:1", name="brew install jq", adapter="brew").label == "brew install jq"


# ── RunReport Tests ──────────────────────────────────────────────────


class TestVersionRecord:
    def test_changed_rule(self):
        assert VersionRecord("a", Version.of("1.0"), Version.of("1.1")).changed
        assert not VersionRecord("a", Version.of("1.0"), Version.of("1.0")).changed
        assert not VersionRecord("a", Version.unknown(), Version.absent()).changed
        assert VersionRecord("a", Version.absent(), Version.of("2.0")).changed


class TestRunReport:
    def test_finalize_freezes(self):
        report = RunReport(mode="update")
        report.finalize([], [])
        with pytest.raises(RuntimeError):
            report.add_failure("brew update", "boom")
        with pytest.raises(RuntimeError):
            report.finalize([], [])

    def test_status(self):
        report = RunReport()
        assert report.status == "ok"
        report.add_failure("brew update", "boom")
        assert report.status == "failed"
        report.finalize([("jq", "1.6", "1.7")], [])
        assert report.status == "partial"

    def test_render_sections(self):
        report = RunReport(mode="update")
        report.finalize([("jq", "1.6", "1.7.1")], [("fzf", "0.44")])
        text = report.render()
        assert text.startswith("Update Summary - ")
        assert "UPDATED" in text and "UNCHANGED" in text
        assert "jq" in text and "1.7.1" in text
        assert "fzf" in text
        assert "FAILURES" not in text

    def test_render_empty(self):
        report = RunReport(mode="install")
        text = report.render()
        assert text.startswith("Install Summary - ")
        assert "No updates applied." in text
        assert "None" in text

    def test_render_columns_aligned(self):
        report = RunReport(mode="update")
        report.finalize([("jq", "1.6", "1.7"), ("ripgrep", "13.0.0", "14.1.0")], [])
        lines = report.render().splitlines()
        header = next(line for line in lines if line.startswith("Software"))
        row = next(line for line in lines if line.startswith("ripgrep"))
        assert header.index("Previous") == row.index("13.0.0")

    def test_render_backups_line(self, tmp_path):
        report = RunReport(mode="install", backup_dir=tmp_path)
        report.add_backup(BackupEntry(original=tmp_path / "a", snapshot=tmp_path / "b"))
        assert f"Backups: 1 item(s) in {tmp_path}" in report.render()

    def test_to_dict(self):
        report = RunReport(mode="update")
        report.add_failure("brew update", "boom", group="homebrew")
        report.finalize([("jq", "1.6", "1.7")], [("fzf", "0.44")])
        data = report.to_dict()
        assert data["status"] == "partial"
        assert data["updated"] == [{"name": "jq", "previous": "1.6", "current": "1.7"}]
        assert data["failures"][0]["group"] == "homebrew"


# ── Manifest Tests ───────────────────────────────────────────────────


class TestManifest:
    def test_defaults(self):
        m = Manifest()
        assert m.settings.diff_lines == 12
        assert m.settings.backup_root == "~/.dotfiles-backups"
        assert m.install == [] and m.update == []

    def test_relative_destination_rejected(self):
        with pytest.raises(ValidationError):
            ManagedFile(source="a", destination="relative/path")

    def test_repo_destination_accepted(self):
        f = ManagedFile(source="a", destination="{repo}/.kiro/steering/AGENTS.md")
        assert f.display_label == "AGENTS.md"

    def test_step_discriminator(self):
        m = Manifest.model_validate({
            "update": [{
                "name": "misc",
                "steps": [
                    {"kind": "files", "include": ["aliases/*"]},
                    {"kind": "command", "name": "omz", "argv": ["zsh", "upgrade.sh"]},
                ],
            }],
        })
        steps = m.update[0].steps
        assert isinstance(steps[0], FilesStep)
        assert isinstance(steps[1], CommandStep)

    def test_unknown_step_kind_rejected(self):
        with pytest.raises(ValidationError):
            Manifest.model_validate({"update": [{"name": "x", "steps": [{"kind": "teleport"}]}]})

    def test_groups_for(self):
        m = Manifest.model_validate({"install": [{"name": "a"}], "update": [{"name": "b"}]})
        assert [g.name for g in m.groups_for("install")] == ["a"]
        assert [g.name for g in m.groups_for("update")] == ["b"]
        with pytest.raises(ValueError):
            m.groups_for("deploy")

    def test_group_prompt_fallback(self):
        m = Manifest.model_validate({"install": [{"name": "fonts"}]})
        assert m.install[0].prompt == "Run 'fonts'?"


class TestPathHelpers:
    def test_expand_home(self, tmp_path):
        assert expand_destination("~/.zshrc", tmp_path) == tmp_path / ".zshrc"

    def test_expand_absolute(self, tmp_path):
        assert expand_destination("/etc/hosts", tmp_path) == Path("/etc/hosts")

    def test_expand_repo(self, tmp_path):
        repo = tmp_path / "repo"
        assert expand_destination("{repo}/AGENTS.md", tmp_path, repo) == repo / "AGENTS.md"

    def test_expand_repo_without_path(self, tmp_path):
        with pytest.raises(ValueError):
            expand_destination("{repo}/AGENTS.md", tmp_path)

    def test_parse_mode(self):
        assert parse_mode("755") == 0o755
        assert parse_mode(None) is None

"""Tests for drift classification and the unexpected-artefact scan."""
from __future__ import annotations

from helpers.project import STANDARD_MANIFEST, ProjectFactory, snapshot_tree

CLINE_BLOCK = """\
  - name: .cline
    policies:
      command-prompt: {strategy: file-symlink, path: commands}
"""

CLAUDE_BLOCK = """\
  - name: .claude
    policies:
      rule-text: {strategy: real-file-redirect, path: CLAUDE.md}
      command-prompt: {strategy: file-symlink, path: commands}
      skill-bundle: {strategy: directory-symlink, path: skills}
"""


def _sync(project: ProjectFactory) -> None:
    assert project.engine().sync().ok


def _check(project: ProjectFactory):
    from canonsync.core.drift import DriftReporter
    from canonsync.core.manifest import load_manifest
    from canonsync.core.resolver import resolve_entries

    manifest = load_manifest(project.root)
    return DriftReporter(manifest).report(resolve_entries(manifest))


def _statuses(report) -> dict:
    return {r.label: r for r in report.records}


class TestEntryClassification:
    """Test per-entry drift states."""

    def test_everything_missing_before_sync(self, standard_project: ProjectFactory) -> None:
        from canonsync.core.models import DriftStatus

        report = _check(standard_project)

        assert not report.ok
        assert {r.status for r in report.records} == {DriftStatus.MISSING}
        assert report.counts()["missing"] == 10

    def test_in_sync_after_sync(self, standard_project: ProjectFactory) -> None:
        _sync(standard_project)

        report = _check(standard_project)

        assert report.ok
        assert report.drifted == ()
        assert report.counts() == {
            "in-sync": 10,
            "missing": 0,
            "stale": 0,
            "unexpected": 0,
            "conflict": 0,
        }

    def test_canonical_edit_only_stales_companion(self, standard_project: ProjectFactory) -> None:
        """Links follow the canonical file; only the generated companion drifts."""
        from canonsync.core.models import DriftStatus

        _sync(standard_project)
        standard_project.write(".ai/commands/foo.md", "---\ndescription: Changed\n---\nNew body\n")

        drifted = {r.label: r.status for r in _check(standard_project).drifted}

        assert drifted == {".gemini/commands/foo.toml": DriftStatus.STALE}

    def test_removed_marker_is_conflict(self, standard_project: ProjectFactory) -> None:
        from canonsync.core.models import DriftStatus

        _sync(standard_project)
        standard_project.write(".claude/CLAUDE.md", "# Rewritten by hand\n")

        record = _statuses(_check(standard_project))[".claude/CLAUDE.md"]

        assert record.status is DriftStatus.CONFLICT
        assert record.error_code == "RedirectMarkerMissing"

    def test_redirect_block_pointing_elsewhere_is_stale(self, standard_project: ProjectFactory) -> None:
        from canonsync.core.models import DriftStatus
        from canonsync.core.redirect import REDIRECT_BEGIN, REDIRECT_END

        _sync(standard_project)
        standard_project.write(
            ".claude/CLAUDE.md",
            f"{REDIRECT_BEGIN}\n> Canonical source: `old/AGENTS.md`\n{REDIRECT_END}\n",
        )

        assert _statuses(_check(standard_project))[".claude/CLAUDE.md"].status is DriftStatus.STALE

    def test_wrong_symlink_is_stale(self, standard_project: ProjectFactory) -> None:
        from canonsync.core.models import DriftStatus

        _sync(standard_project)
        link = standard_project.path(".cline/commands/foo.md")
        link.unlink()
        link.symlink_to("../../.ai/commands/bar.md")

        record = _statuses(_check(standard_project))[".cline/commands/foo.md"]

        assert record.status is DriftStatus.STALE
        assert "bar.md" in record.detail

    def test_real_file_at_link_is_conflict(self, standard_project: ProjectFactory) -> None:
        from canonsync.core.models import DriftStatus

        _sync(standard_project)
        link = standard_project.path(".cline/commands/foo.md")
        link.unlink()
        link.write_text("copied\n", encoding="utf-8")

        record = _statuses(_check(standard_project))[".cline/commands/foo.md"]

        assert record.status is DriftStatus.CONFLICT
        assert record.error_code == "PathConflict"

    def test_broken_canonical_prompt_is_generation_conflict(self, standard_project: ProjectFactory) -> None:
        _sync(standard_project)
        standard_project.write(".ai/commands/foo.md", "---\n- not a mapping\n---\nbody\n")

        record = _statuses(_check(standard_project))[".gemini/commands/foo.toml"]

        assert record.error_code == "GenerationError"

    def test_check_never_writes(self, standard_project: ProjectFactory) -> None:
        _sync(standard_project)
        standard_project.write(".ai/commands/foo.md", "changed\n")
        standard_project.path(".cline/commands/bar.md").unlink()
        before = snapshot_tree(standard_project.root)

        _check(standard_project)

        assert snapshot_tree(standard_project.root) == before


class TestUnexpectedArtefacts:
    """Managed artefacts no longer produced by the manifest are reported."""

    def test_removed_target_is_reported(self, standard_project: ProjectFactory) -> None:
        from canonsync.core.models import DriftStatus

        _sync(standard_project)
        standard_project.write_manifest(STANDARD_MANIFEST.replace(CLINE_BLOCK, ""))

        report = _check(standard_project)

        assert not report.ok
        assert [(r.label, r.status, r.detail) for r in report.unexpected] == [
            (".cline/commands/bar.md", DriftStatus.UNEXPECTED, "symlink"),
            (".cline/commands/foo.md", DriftStatus.UNEXPECTED, "symlink"),
        ]

    def test_redirect_and_directory_link_reported(self, standard_project: ProjectFactory) -> None:
        _sync(standard_project)
        standard_project.write_manifest(STANDARD_MANIFEST.replace(CLAUDE_BLOCK, ""))

        unexpected = {r.label: r.detail for r in _check(standard_project).unexpected}

        assert unexpected == {
            ".claude/CLAUDE.md": "redirect",
            ".claude/commands/bar.md": "symlink",
            ".claude/commands/foo.md": "symlink",
            ".claude/skills": "symlink",
        }

    def test_orphaned_companion_reported(self, standard_project: ProjectFactory) -> None:
        _sync(standard_project)
        standard_project.path(".ai/commands/bar.md").unlink()

        report = _check(standard_project)
        unexpected = {r.label: r.detail for r in report.unexpected}

        assert unexpected == {
            ".claude/commands/bar.md": "symlink",
            ".cline/commands/bar.md": "symlink",
            ".gemini/commands/bar.md": "symlink",
            ".gemini/commands/bar.toml": "companion",
        }

    def test_unmanaged_files_are_ignored(self, standard_project: ProjectFactory) -> None:
        _sync(standard_project)
        standard_project.write(".cline/README.md", "notes\n")
        standard_project.write("docs/guide.md", "# Guide\n")
        (standard_project.root / "outside-link").symlink_to("docs/guide.md")

        assert _check(standard_project).ok

    def test_ignored_directories_are_skipped(self, standard_project: ProjectFactory) -> None:
        _sync(standard_project)
        stray = standard_project.path("node_modules/pkg/foo.md")
        stray.parent.mkdir(parents=True)
        stray.symlink_to("../../.ai/commands/foo.md")

        assert _check(standard_project).ok

    def test_classify_artefact(self, standard_project: ProjectFactory) -> None:
        from canonsync.core.drift import classify_artefact
        from canonsync.core.manifest import load_manifest

        _sync(standard_project)
        manifest = load_manifest(standard_project.root)

        assert classify_artefact(standard_project.path(".cline/commands/foo.md"), manifest) == "symlink"
        assert classify_artefact(standard_project.path(".claude/CLAUDE.md"), manifest) == "redirect"
        assert classify_artefact(standard_project.path(".gemini/commands/foo.toml"), manifest) == "companion"
        assert classify_artefact(standard_project.path(".ai/rules/AGENTS.md"), manifest) is None
        assert classify_artefact(standard_project.path("missing.md"), manifest) is None

    def test_unterminated_block_is_not_an_artefact(self, standard_project: ProjectFactory) -> None:
        from canonsync.core.drift import classify_artefact
        from canonsync.core.manifest import load_manifest
        from canonsync.core.redirect import REDIRECT_BEGIN

        path = standard_project.write("notes.md", f"# Notes\n{REDIRECT_BEGIN}\nno end marker\n")

        assert classify_artefact(path, load_manifest(standard_project.root)) is None


class TestEncodingAgreement:
    """check and sync agree on redirect files they cannot decode."""

    def test_invalid_utf8_redirect_is_conflict(self, standard_project: ProjectFactory) -> None:
        from canonsync.core.models import DriftStatus

        _sync(standard_project)
        path = standard_project.path(".claude/CLAUDE.md")
        path.write_bytes(b"# Notes \xff\n" + path.read_bytes())

        record = _statuses(_check(standard_project))[".claude/CLAUDE.md"]
        sync_result = {r.label: r for r in standard_project.engine().sync().results}[".claude/CLAUDE.md"]

        assert record.status is DriftStatus.CONFLICT
        assert record.error_code == "UnicodeDecodeError"
        assert sync_result.error_code == "UnicodeDecodeError"

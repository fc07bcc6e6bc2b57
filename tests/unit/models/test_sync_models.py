"""Tests for propagation data models."""
from __future__ import annotations

from pathlib import Path


class TestSyncPolicy:
    def test_from_dict_round_trip(self) -> None:
        from canonsync.core.models import Strategy, SyncPolicy

        raw = {"strategy": "dual-format", "path": "commands", "format": "toml", "sources": ["commands"]}
        policy = SyncPolicy.from_dict(raw)

        assert policy.strategy is Strategy.DUAL_FORMAT
        assert policy.sources == ("commands",)
        assert policy.to_dict() == raw

    def test_accepts_by_full_name_or_group(self) -> None:
        from canonsync.core.models import CanonicalSource, ContentKind, SyncPolicy

        foo = CanonicalSource("commands/foo", Path("/r/commands/foo.md"), ContentKind.COMMAND_PROMPT)
        bar = CanonicalSource("commands/bar", Path("/r/commands/bar.md"), ContentKind.COMMAND_PROMPT)

        assert SyncPolicy.from_dict({"strategy": "file-symlink", "path": "c"}).accepts(foo)
        only_foo = SyncPolicy.from_dict({"strategy": "file-symlink", "path": "c", "sources": ["commands/foo"]})
        assert only_foo.accepts(foo)
        assert not only_foo.accepts(bar)
        group = SyncPolicy.from_dict({"strategy": "file-symlink", "path": "c", "sources": ["commands"]})
        assert group.accepts(bar)


class TestReports:
    def test_sync_report_partitions(self) -> None:
        from canonsync.core.models import ApplyAction, ApplyResult, SyncReport

        report = SyncReport(
            results=(
                ApplyResult(".a/x", ApplyAction.CREATED),
                ApplyResult(".a/y", ApplyAction.UNCHANGED),
                ApplyResult(".a/z", ApplyAction.FAILED, "PathConflict", "occupied"),
            )
        )

        assert not report.ok
        assert [r.label for r in report.changed] == [".a/x"]
        assert [r.label for r in report.failed] == [".a/z"]
        assert report.failed[0].to_dict()["error_code"] == "PathConflict"

    def test_drift_report_counts(self) -> None:
        from canonsync.core.models import DriftRecord, DriftReport, DriftStatus

        report = DriftReport(
            records=(
                DriftRecord(".a/x", DriftStatus.IN_SYNC, "x"),
                DriftRecord(".a/y", DriftStatus.UNEXPECTED, detail="symlink"),
            )
        )

        assert not report.ok
        assert report.counts()["in-sync"] == 1
        assert report.counts()["unexpected"] == 1
        assert [r.label for r in report.unexpected] == [".a/y"]

    def test_empty_reports_are_ok(self) -> None:
        from canonsync.core.models import DriftReport, SyncReport

        assert SyncReport().ok
        assert DriftReport().ok

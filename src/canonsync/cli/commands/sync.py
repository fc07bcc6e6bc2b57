"""
canonsync sync command.

SUMMARY: Apply the manifest to every target directory
"""
from __future__ import annotations

import argparse

from canonsync.cli import (
    EXIT_MANIFEST_ERROR,
    OutputFormatter,
    add_dry_run_flag,
    add_standard_flags,
    build_engine,
)
from canonsync.core.exceptions import CanonsyncError

SUMMARY = "Apply the manifest to every target directory"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    add_dry_run_flag(parser)
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    """Resolve the manifest and apply every entry."""
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))

    try:
        engine = build_engine(args)
        report = engine.sync(dry_run=args.dry_run)
    except CanonsyncError as e:
        formatter.error(e, error_code="manifest_error")
        return EXIT_MANIFEST_ERROR

    if formatter.json_mode:
        formatter.json_output(
            {
                "ok": report.ok,
                "dry_run": args.dry_run,
                "results": [r.to_dict() for r in report.results],
            }
        )
    else:
        prefix = "Would sync" if args.dry_run else "Synced"
        formatter.text(
            f"{prefix} {len(report.results)} entries: "
            f"{len(report.changed)} changed, {len(report.failed)} failed"
        )
        for result in report.changed:
            formatter.text(f"  {result.action.value:<9} {result.label}")
        if report.failed:
            formatter.text("")
            formatter.text("Failed entries:")
            for result in report.failed:
                formatter.text(f"  {result.label}: {result.error_code}: {result.error}")

    return 0 if report.ok else 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    parsed = parser.parse_args()
    exit(main(parsed))

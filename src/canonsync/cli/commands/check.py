"""
canonsync check command.

SUMMARY: Report drift between the manifest and the filesystem (CI gate)
"""
from __future__ import annotations

import argparse

from canonsync.cli import EXIT_MANIFEST_ERROR, OutputFormatter, add_standard_flags, build_engine
from canonsync.core.exceptions import CanonsyncError

SUMMARY = "Report drift between the manifest and the filesystem (CI gate)"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    parser.add_argument(
        "--all",
        action="store_true",
        help="Also list entries that are in sync",
    )
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    """Classify every entry; exit 0 only when everything is in sync."""
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))

    try:
        engine = build_engine(args)
        report = engine.check()
    except CanonsyncError as e:
        formatter.error(e, error_code="manifest_error")
        return EXIT_MANIFEST_ERROR

    if formatter.json_mode:
        formatter.json_output(
            {
                "ok": report.ok,
                "counts": report.counts(),
                "records": [r.to_dict() for r in report.records],
            }
        )
    else:
        records = report.records if args.all else report.drifted
        if report.ok:
            formatter.text(f"All {len(report.records)} entries in sync.")
        else:
            formatter.text(f"Drift detected in {len(report.drifted)} of {len(report.records)} paths:")
        for record in records:
            status = record.error_code or record.status.value
            line = f"  {status:<22} {record.label}"
            if record.detail:
                line += f" ({record.detail})"
            formatter.text(line)

    return 0 if report.ok else 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    parsed = parser.parse_args()
    exit(main(parsed))

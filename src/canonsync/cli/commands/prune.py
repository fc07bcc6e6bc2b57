"""
canonsync prune command.

SUMMARY: Remove managed files that are no longer in the manifest
"""
from __future__ import annotations

import argparse

from canonsync.cli import EXIT_MANIFEST_ERROR, OutputFormatter, add_standard_flags, build_engine
from canonsync.core.exceptions import CanonsyncError

SUMMARY = "Remove managed files that are no longer in the manifest"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    parser.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Confirm removal (without it, only list what would be removed)",
    )
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    """Prune unexpected managed artefacts, only when confirmed."""
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))

    try:
        engine = build_engine(args)
        report = engine.prune(confirm=args.yes)
    except CanonsyncError as e:
        formatter.error(e, error_code="manifest_error")
        return EXIT_MANIFEST_ERROR

    if formatter.json_mode:
        formatter.json_output(
            {
                "ok": report.ok,
                "confirmed": args.yes,
                "results": [r.to_dict() for r in report.results],
            }
        )
    elif not report.results:
        formatter.text("Nothing to prune.")
    elif not args.yes:
        formatter.text(f"Would prune {len(report.results)} path(s); re-run with --yes to apply:")
        for result in report.results:
            formatter.text(f"  {result.label}")
    else:
        formatter.text(f"Pruned {len(report.changed)} path(s):")
        for result in report.results:
            if result.success:
                formatter.text(f"  {result.action.value:<9} {result.label}")
            else:
                formatter.text(f"  failed    {result.label}: {result.error}")

    return 0 if report.ok else 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    parsed = parser.parse_args()
    exit(main(parsed))

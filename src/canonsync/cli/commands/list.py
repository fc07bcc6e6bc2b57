"""
canonsync list command.

SUMMARY: List the resolved sync entries
"""
from __future__ import annotations

import argparse

from canonsync.cli import EXIT_MANIFEST_ERROR, OutputFormatter, add_standard_flags, build_engine
from canonsync.core.exceptions import CanonsyncError

SUMMARY = "List the resolved sync entries"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    parser.add_argument(
        "--target",
        help="Only show entries for this target",
    )
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    """Print the entries the manifest resolves to."""
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))

    try:
        engine = build_engine(args)
        entries = engine.resolve()
    except CanonsyncError as e:
        formatter.error(e, error_code="manifest_error")
        return EXIT_MANIFEST_ERROR

    if args.target:
        entries = [e for e in entries if e.target.name == args.target]

    if formatter.json_mode:
        formatter.json_output({"entries": [e.to_dict() for e in entries]})
        return 0

    if not entries:
        formatter.text("No entries resolved.")
        return 0

    formatter.text(f"Resolved entries ({len(entries)}):")
    current = None
    for entry in entries:
        if entry.target.name != current:
            current = entry.target.name
            formatter.text("")
            formatter.text(f"  {current}")
        formatter.text(
            f"    {entry.relative_path} <- {entry.source.name} "
            f"[{entry.policy.strategy.value}/{entry.role.value}]"
        )
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    parsed = parser.parse_args()
    exit(main(parsed))

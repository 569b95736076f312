from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from islandrecon.app import list_runs, reconcile_files
from islandrecon.config import ConfigurationError, configure_logging
from islandrecon.domain.model import LayerOrderError, SchemaViolationError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

USER_ERRORS = (SchemaViolationError, LayerOrderError, ConfigurationError, FileNotFoundError)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Reconcile taxon backbones and geographic entity tables"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    reconcile = subparsers.add_parser("reconcile", help="Run one reconciliation")
    reconcile.add_argument("--taxa", type=Path, required=True, help="Taxon backbone extract")
    reconcile.add_argument("--geo", type=Path, help="Geographic entity extract")
    reconcile.add_argument(
        "--rules",
        type=Path,
        action="append",
        default=[],
        help="Rule table document (repeatable)",
    )
    reconcile.add_argument(
        "--layer",
        type=Path,
        action="append",
        default=[],
        help="Override layer document, applied in the order given (repeatable)",
    )
    reconcile.add_argument("--checklist", type=Path, help="External checklist of species names")
    reconcile.add_argument("--output", type=Path, help="Where to write the reconciled tables")
    reconcile.add_argument("--bundle", type=Path, help="Where to write the diagnostic bundle")
    reconcile.add_argument("--label", type=str, help="Label stored with the snapshot")
    reconcile.add_argument(
        "--no-persist",
        dest="persist",
        action="store_false",
        help="Do not store the run as a snapshot",
    )
    reconcile.add_argument(
        "--keep-conflicts",
        action="store_true",
        help="Keep species with unresolved lineage conflicts in the clean output",
    )

    runs = subparsers.add_parser("runs", help="Stored snapshot commands")
    runs_sub = runs.add_subparsers(dest="runs_command", required=True)
    runs_sub.add_parser("list", help="List stored snapshots")

    return parser.parse_args(list(argv))


def _run(parsed_args: argparse.Namespace) -> None:
    if parsed_args.command == "reconcile":
        outcome = reconcile_files(
            taxa=parsed_args.taxa,
            geo=parsed_args.geo,
            rules=parsed_args.rules,
            layers=parsed_args.layer,
            checklist=parsed_args.checklist,
            output=parsed_args.output,
            bundle=parsed_args.bundle,
            label=parsed_args.label,
            persist=parsed_args.persist,
            block_on_conflicts=False if parsed_args.keep_conflicts else None,
        )
        log.info("Reconciliation summary: %s", outcome.result.summary())
    elif parsed_args.command == "runs" and parsed_args.runs_command == "list":
        for run in list_runs():
            log.info(
                "%s %s label=%s layers=%s %s",
                run.run_id,
                run.created_at.isoformat(),
                run.label,
                ",".join(run.layer_names) or "-",
                run.counts,
            )
    else:
        raise ValueError(f"Unsupported command: {parsed_args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(verbose=parsed_args.verbose)

    try:
        _run(parsed_args)
    except USER_ERRORS as exc:
        print(f"Error: {exc}", file=sys.stderr)  # noqa: T201
        sys.exit(2)
    except Exception:
        log.exception("Fatal error during reconciliation")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()

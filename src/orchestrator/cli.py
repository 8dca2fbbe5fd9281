"""
Review Analysis CLI
===================

Command-line interface for the analysis orchestrator.

Commands:
    run         - Run every applicable analysis for a product
    reprocess   - Re-run a single analysis type
    status      - Show analysis status for a product

Usage:
    python -m src.orchestrator.cli run --product PRODUCT_ID --user USER_ID
    python -m src.orchestrator.cli reprocess --product PRODUCT_ID --user USER_ID --type swot
    python -m src.orchestrator.cli status --product PRODUCT_ID --user USER_ID --json
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime

from src.ai.analysis_types import ANALYSIS_ORDER
from src.data.config import get_settings
from src.data.db import close_pool

from .analysis_orchestrator import AnalysisOrchestrator
from .errors import AnalysisError
from .logging_config import setup_logging
from .status_tracker import StatusTracker


def cmd_run(args):
    """Run all analyses for a product."""
    print("=" * 60)
    print("REVIEW ANALYSIS RUN")
    print("=" * 60)
    print(f"Product: {args.product}")
    print(f"Started at: {datetime.utcnow().isoformat()}")
    print()

    orchestrator = AnalysisOrchestrator.create()
    try:
        summary = asyncio.run(orchestrator.process_all_analyses(args.product, args.user))
    except AnalysisError as e:
        print(f"ERROR: {e}")
        return 1
    except Exception as e:
        print(f"\nERROR: Analysis run failed: {e}")
        logging.exception("Analysis run failed")
        return 1

    print()
    print("=" * 60)
    print("RUN COMPLETE")
    print("=" * 60)
    print(f"Run ID: {summary.run_id}")
    print(f"Success: {'Yes' if summary.success else 'No'}")
    print(f"Completed ({len(summary.completed_types)}): {', '.join(summary.completed_types) or '-'}")
    if summary.skipped_types:
        print(f"Skipped: {', '.join(summary.skipped_types)}")
    if summary.errors:
        print()
        print("Errors:")
        for error in summary.errors:
            print(f"  ✗ {error}")

    if args.json:
        print()
        print(json.dumps(summary.to_dict(), indent=2))

    return 0 if summary.success else 1


def cmd_reprocess(args):
    """Re-run one analysis type."""
    orchestrator = AnalysisOrchestrator.create()
    try:
        result = asyncio.run(orchestrator.reprocess_analysis(args.product, args.type, args.user))
    except (AnalysisError, ValueError) as e:
        print(f"ERROR: {e}")
        return 1

    if result.success:
        print(f"✓ {args.type} reprocessed")
        return 0
    print(f"✗ {args.type} failed: {result.error}")
    return 1


def cmd_status(args):
    """Show analysis status."""
    orchestrator = AnalysisOrchestrator.create()
    tracker = StatusTracker(orchestrator.repository)
    try:
        status = asyncio.run(tracker.get_analysis_status(args.product, args.user))
    except AnalysisError as e:
        print(f"ERROR: {e}")
        return 1

    if args.json:
        print(json.dumps(status.to_dict(), indent=2, default=str))
        return 0

    print("=" * 60)
    print(f"ANALYSIS STATUS: {args.product}")
    print("=" * 60)
    print(f"Processing: {'Yes' if status.is_processing else 'No'}")
    print(f"Progress: {len(status.completed_types)}/{status.total_expected} ({status.progress_percentage}%)")
    print()
    for analysis_type, state in status.per_type_status.items():
        icon = {"completed": "✓", "failed": "✗"}.get(state, "·")
        print(f"  {icon} {analysis_type:28} {state}")

    if status.latest_run:
        run = status.latest_run
        print()
        print(f"Last run: {run.run_id} ({run.status}) started {run.started_at}")

    return 0


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="review-analysis",
        description="Review Analysis Orchestrator CLI",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    def add_target(sub):
        sub.add_argument("--product", required=True, help="Product ID")
        sub.add_argument("--user", required=True, help="Owning user ID")

    run_parser = subparsers.add_parser("run", help="Run all applicable analyses")
    add_target(run_parser)
    run_parser.add_argument("--json", action="store_true", help="Output summary as JSON")

    reprocess_parser = subparsers.add_parser("reprocess", help="Re-run one analysis type")
    add_target(reprocess_parser)
    reprocess_parser.add_argument(
        "--type",
        required=True,
        choices=[t.value for t in ANALYSIS_ORDER],
        help="Analysis type to re-run",
    )

    status_parser = subparsers.add_parser("status", help="Show analysis status")
    add_target(status_parser)
    status_parser.add_argument("--json", action="store_true", help="Output as JSON")

    args = parser.parse_args(argv)

    setup_logging(get_settings().logging, level="DEBUG" if args.verbose else None)

    if args.command is None:
        parser.print_help()
        return 1

    commands = {
        "run": cmd_run,
        "reprocess": cmd_reprocess,
        "status": cmd_status,
    }

    try:
        return commands[args.command](args)
    finally:
        close_pool()


if __name__ == "__main__":
    sys.exit(main())

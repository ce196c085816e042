#!/usr/bin/env python3
"""
Drive the voucher pipeline by hand: ingest a batch, materialize, dispatch, inspect.

Each phase is one command, mirroring how the pipeline is triggered in
production (one trigger per phase).  SMS messages are written to the log
by LoggingSmsSender instead of being sent.

Usage:
    python3 scripts/run_order.py [--config <yaml>] [--db-url <url>] <command> [options]

Examples:
    # Accept a batch; prints the new order id
    python3 scripts/run_order.py ingest --file recipients.csv --created-by ops@example.com

    # Create and allot the vouchers
    python3 scripts/run_order.py materialize --order-id <uuid>

    # One dispatch pass (re-run until the order is processed)
    python3 scripts/run_order.py dispatch --order-id <uuid>

    # Where the order stands
    python3 scripts/run_order.py summary --order-id <uuid>
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from uuid import UUID

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run voucher pipeline phases: ingest -> materialize -> dispatch.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Configuration YAML (default: packaged default set).",
    )
    parser.add_argument(
        "--db-url",
        default=None,
        help="Database URL (default: database.url from the configuration).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Validate a batch file and create the order.")
    ingest.add_argument("--file", required=True, type=Path, help="Path to the CSV batch.")
    ingest.add_argument("--created-by", required=True, help="Resolved identity of the uploader.")

    for name, help_text in (
        ("materialize", "Create and allot the vouchers of a CREATED order."),
        ("dispatch", "Run one dispatch pass over the order's ALLOTTED vouchers."),
        ("summary", "Print voucher counts and retry totals for an order."),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("--order-id", required=True, type=UUID, help="Order UUID.")

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    # Lazy imports so we fail fast on args first
    from voucher_config import get_active_config
    from voucher_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
    from voucher_kernel.exceptions import VoucherKernelError
    from voucher_kernel.logging_config import configure_logging

    from voucher_batch.notify import LoggingSmsSender, SmsNotifier
    from voucher_batch.orchestrator import OrderService

    try:
        config = get_active_config(args.config)
    except (OSError, ValueError) as e:
        print(f"ERROR: Failed to load config: {e}", file=sys.stderr)
        return 1

    configure_logging(level=config.logging.level.upper())

    db_url = args.db_url or config.database.url
    try:
        engine = init_engine_from_url(db_url, echo=config.database.echo)
        create_tables(engine)
    except Exception as e:
        print(f"ERROR: Database init failed: {e}", file=sys.stderr)
        return 1

    service = OrderService.from_config(
        config,
        session_factory=get_session_factory(),
        notifier=SmsNotifier(LoggingSmsSender()),
    )

    try:
        if args.command == "ingest":
            source_path = args.file.resolve()
            if not source_path.is_file():
                print(f"ERROR: File not found: {source_path}", file=sys.stderr)
                return 1
            with source_path.open("rb") as fh:
                order = service.create_order(fh, args.created_by)
            print(f"Order {order.id} created with {order.voucher_count} vouchers declared.")
            return 0

        if args.command == "materialize":
            result = service.create_vouchers(args.order_id)
            if result.skipped:
                print(f"Order already {result.order_status.value}; nothing to do.")
                return 0
            print(f"  Materialized: {result.materialized}, Allotted: {result.allotted}")
            if result.count_mismatch:
                print(
                    f"  WARNING: declared {result.declared_count} vouchers, "
                    f"materialized {result.materialized}."
                )
            return 0

        if args.command == "dispatch":
            result = service.process_order(args.order_id)
            print(
                f"  Attempted: {result.attempted}, Succeeded: {result.succeeded}, "
                f"Failed: {result.failed}, Skipped: {result.skipped}, "
                f"Exhausted: {result.exhausted}"
            )
            failures = [r for r in result.voucher_results if r.error]
            for r in failures[:10]:
                print(f"  {r.code} ({r.status.value}, retries={r.retry_count}): {r.error}")
            if len(failures) > 10:
                print(f"  ... and {len(failures) - 10} more.")
            print(f"Order status: {result.order_status.value}")
            return 0 if result.completed else 1

        summary = service.summarize_order(args.order_id)
        print(f"Order {summary.order_id}: {summary.order_status.value}")
        print(f"  Declared vouchers: {summary.declared_count}")
        for status, count in summary.voucher_counts.items():
            print(f"  {status.value}: {count}")
        print(f"  Total retries: {summary.total_retries}")
        print(
            f"  Failing: {summary.failing_vouchers}, Halted: {summary.halted_vouchers}, "
            f"Exhausted: {summary.exhausted_vouchers}"
        )
        if summary.needs_rerun:
            print("  Dispatch pass needed.")
        elif summary.stuck:
            print("  Stuck: only exhausted vouchers remain.")
        return 0
    except VoucherKernelError as e:
        print(f"ERROR [{e.code}]: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

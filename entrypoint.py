"""Backend entrypoint. ``serve`` starts uvicorn with port from env; ``sweep`` runs one auto-invest sweep."""
import argparse
import os
import sys
import uvicorn

from autoinvest.core.timezone import parse_iso_date


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Auto-invest engine")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="Run the HTTP API")

    sweep = sub.add_parser("sweep", help="Run one auto-invest sweep")
    sweep.add_argument("--as-of", type=parse_iso_date, default=None, help="Run as if today were YYYY-MM-DD")
    sweep.add_argument("--dry-run", action="store_true", help="Preview without writing anything")
    sweep.add_argument("--database-url", default=None, help="Override the configured database URL")
    sweep.add_argument("--log-level", default=None, help="Override the configured log level")

    return parser.parse_args(argv)


def serve() -> None:
    from autoinvest.main import app

    port = int(os.environ.get("BACKEND_PORT", "8001"))
    uvicorn.run(app, host="127.0.0.1", port=port)


def sweep(args: argparse.Namespace) -> int:
    from autoinvest.app_context import AppContext
    from autoinvest.config.logging_config import setup_logging
    from autoinvest.core.exceptions import SweepAbortedError

    setup_logging(args.log_level)
    context = AppContext(database_url=args.database_url)
    context.initialize()
    try:
        summary = context.run_sweep(as_of=args.as_of, dry_run=args.dry_run)
    except SweepAbortedError as exc:
        print(f"sweep aborted: {exc.message}", file=sys.stderr)
        return 2
    finally:
        context.close()

    for log in summary.logs:
        print(f"{log.status.value:8} {log.symbol or '-':10} {log.scheduled_date or '-'}  {log.message}")
    print(
        f"processed={summary.processed} success={summary.success_count} "
        f"skipped={summary.skipped_count} error={summary.error_count} preview={summary.preview_count}"
    )
    return 1 if summary.error_count else 0


def main(argv=None) -> int:
    args = parse_args(argv)
    if args.command == "sweep":
        return sweep(args)
    serve()
    return 0


if __name__ == "__main__":
    sys.exit(main())

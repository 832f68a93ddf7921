"""
Command-line interface.

    rent-reclaim init [--output config.json]
    rent-reclaim index --import accounts.json
    rent-reclaim analyze [ADDRESS ...]
    rent-reclaim reclaim [--live] [--shards N] [ADDRESS ...]
    rent-reclaim report
    rent-reclaim serve [--host H] [--port P]
    rent-reclaim watch --interval SEC [--live]

Exit codes: 0 ok, 1 at least one account failed (or a command error), 2 ConfigError.
"""

from __future__ import annotations

import argparse
import json
import signal
import sys
import threading
from typing import Sequence

from rent_reclaim import __version__
from rent_reclaim.alerts.engine import build_alert_engine
from rent_reclaim.audit.sink import AuditSink
from rent_reclaim.config.settings import ReclaimSettings, load_settings, write_example_config
from rent_reclaim.core.exceptions import AuditWriteError, ConfigError, StoreError
from rent_reclaim.database.factory import open_stores
from rent_reclaim.indexer.account_index import AccountIndex
from rent_reclaim.pipeline.report import BatchSummary, format_audit_report, format_report
from rent_reclaim.pipeline.runner import MODE_DRY_RUN, MODE_LIVE, build_pipeline
from rent_reclaim.reclaim_logging import get_logger
from rent_reclaim.reclaim_logging.logger import set_log_level
from rent_reclaim.scheduler.engine import run_periodic, run_sharded, run_with_retry

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rent-reclaim", description="Reclaim rent from inactive sponsored Solana accounts.")
    parser.add_argument("--config", "-c", default=None, help="JSON config file (env vars are used when omitted)")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    p_init = sub.add_parser("init", help="Write an example config file")
    p_init.add_argument("--output", "-o", default="config.json")
    p_init.add_argument("--force", action="store_true", help="Overwrite an existing file")

    p_index = sub.add_parser("index", help="Import sponsored accounts into the index")
    p_index.add_argument("--import", dest="import_path", required=True, help="JSON array of account records")

    p_analyze = sub.add_parser("analyze", help="Dry-run analysis; nothing is sent")
    p_analyze.add_argument("addresses", nargs="*", help="Limit to these addresses (default: whole index)")
    p_analyze.add_argument("--json", action="store_true", help="Print the summary as JSON")

    p_reclaim = sub.add_parser("reclaim", help="Reclaim approved accounts (dry-run unless --live)")
    p_reclaim.add_argument("addresses", nargs="*")
    p_reclaim.add_argument("--live", action="store_true", help="Sign and submit transactions")
    p_reclaim.add_argument("--shards", type=int, default=1, help="Parallel pipelines over disjoint shards")
    p_reclaim.add_argument("--json", action="store_true")

    sub.add_parser("report", help="Summarise the audit trail")

    p_serve = sub.add_parser("serve", help="Run the read-only dashboard")
    p_serve.add_argument("--host", default=None)
    p_serve.add_argument("--port", type=int, default=None)

    p_watch = sub.add_parser("watch", help="Run reclaim periodically until interrupted")
    p_watch.add_argument("--interval", type=float, required=True, help="Seconds between runs")
    p_watch.add_argument("--live", action="store_true")
    p_watch.add_argument("--shards", type=int, default=1)
    return parser


def _exit_code(summary: BatchSummary) -> int:
    return EXIT_FAILED if summary.failed else EXIT_OK


def _print_summary(summary: BatchSummary, as_json: bool) -> None:
    if as_json:
        print(json.dumps(summary.to_dict(), indent=2, default=str))
    else:
        print(format_report(summary))


def _run_batch(settings: ReclaimSettings, addresses: list[str], mode: str, shards: int) -> BatchSummary:
    alerts = build_alert_engine(settings)

    def factory():
        return build_pipeline(settings, alerts=alerts)

    def operation() -> BatchSummary:
        if shards > 1:
            if not addresses:
                targets = [r.address for r in factory().index.list()]
            else:
                targets = addresses
            return run_sharded(factory, targets, mode, shards)
        return factory().process_batch(addresses or None, mode)

    try:
        return run_with_retry(operation)
    except ConfigError:
        raise
    except Exception as e:
        if alerts is not None:
            alerts.on_error(f"{type(e).__name__}: {e}")
        raise


def _cmd_init(args: argparse.Namespace) -> int:
    path = write_example_config(args.output, overwrite=args.force)
    print(f"Wrote example config to {path}")
    return EXIT_OK


def _cmd_index(args: argparse.Namespace, settings: ReclaimSettings) -> int:
    store, log = open_stores(settings)
    index = AccountIndex(store, AuditSink(log))
    imported = index.import_file(args.import_path)
    print(f"Imported {imported} new account(s); {index.statistics()['total_tracked']} tracked")
    return EXIT_OK


def _cmd_report(settings: ReclaimSettings) -> int:
    store, log = open_stores(settings)
    audit = AuditSink(log)
    index = AccountIndex(store, audit)
    print(format_audit_report(audit.summary(), index.statistics(), audit.total_reclaimed_lamports()))
    return EXIT_OK


def _cmd_serve(args: argparse.Namespace, settings: ReclaimSettings) -> int:
    import uvicorn

    from rent_reclaim.api_server.server import create_app

    store, log = open_stores(settings)
    audit = AuditSink(log)
    app = create_app(AccountIndex(store, audit), audit)
    host = args.host or settings.dashboard_host
    port = args.port or settings.dashboard_port
    logger.info("dashboard_starting", host=host, port=port)
    uvicorn.run(app, host=host, port=port, log_level=settings.log_level.lower())
    return EXIT_OK


def _cmd_watch(args: argparse.Namespace, settings: ReclaimSettings) -> int:
    mode = MODE_LIVE if args.live else MODE_DRY_RUN
    settings.validate(live=args.live)
    stop_event = threading.Event()

    def _stop(signum, frame) -> None:
        logger.info("watch_stop_requested", signal=signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)
    any_failed = False

    def job() -> None:
        nonlocal any_failed
        summary = _run_batch(settings, [], mode, args.shards)
        any_failed = any_failed or summary.failed > 0
        print(format_report(summary))

    run_periodic(job, args.interval, stop_event)
    return EXIT_FAILED if any_failed else EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.log_level:
        set_log_level(args.log_level)
    try:
        if args.command == "init":
            return _cmd_init(args)
        settings = load_settings(args.config)
        set_log_level(args.log_level or settings.log_level)
        if args.command == "index":
            return _cmd_index(args, settings)
        if args.command == "analyze":
            summary = _run_batch(settings, list(args.addresses), MODE_DRY_RUN, 1)
            _print_summary(summary, args.json)
            return _exit_code(summary)
        if args.command == "reclaim":
            mode = MODE_LIVE if args.live else MODE_DRY_RUN
            summary = _run_batch(settings, list(args.addresses), mode, args.shards)
            _print_summary(summary, args.json)
            return _exit_code(summary)
        if args.command == "report":
            return _cmd_report(settings)
        if args.command == "serve":
            return _cmd_serve(args, settings)
        if args.command == "watch":
            return _cmd_watch(args, settings)
    except ConfigError as e:
        logger.error("config_error", error=str(e))
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG
    except (AuditWriteError, StoreError) as e:
        logger.error("store_error", error=str(e))
        print(f"Storage error: {e}", file=sys.stderr)
        return EXIT_FAILED
    return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())

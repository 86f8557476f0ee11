#!/usr/bin/env python3
"""
Stock Ledger Command Line

Records trades, imports broker CSV exports and prints holdings from the
same JSON ledger the API serves.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from loguru import logger

from stockledger.config import Settings, get_settings
from stockledger.core.exceptions.ledger import LedgerException
from stockledger.core.types import format_quantity
from stockledger.logging_setup import setup_logging
from stockledger.services import LedgerService


def build_service(args: argparse.Namespace) -> LedgerService:
    overrides = {}
    if args.data_dir:
        overrides["data_dir"] = Path(args.data_dir)
    if args.backup_dir:
        overrides["backup_dir"] = Path(args.backup_dir)
    settings: Settings = get_settings().model_copy(update=overrides)

    service = LedgerService.from_settings(settings)
    result = asyncio.run(service.startup())
    logger.debug(f"Ledger source: {result.source}")
    return service


def cmd_holdings(service: LedgerService, args: argparse.Namespace) -> int:
    summaries = service.holdings()
    if not summaries:
        print("No holdings")
        return 0
    print(service.aggregator.to_frame(summaries).to_string(index=False))
    return 0


def cmd_timeline(service: LedgerService, args: argparse.Namespace) -> int:
    timeline = service.timeline(args.market, args.symbol)
    for entry in timeline.entries:
        print(
            f"{entry.index:>3} {entry.timestamp} {entry.side.value:<4} "
            f"{format_quantity(entry.quantity):>10} @ {entry.price:<10g} fee {entry.fee:<8g} "
            f"-> qty {format_quantity(entry.quantity_after)}, avg {entry.average_cost_after:.4f}"
        )
    print(
        f"{timeline.instrument}: qty {format_quantity(timeline.holding_quantity)}, "
        f"avg {timeline.average_cost:.4f}, realized {timeline.realized_pnl:.2f} {timeline.currency}"
    )
    return 0


def cmd_add(service: LedgerService, args: argparse.Namespace) -> int:
    result = service.add_trade(
        {
            "market": args.market,
            "symbol": args.symbol,
            "side": args.side,
            "date": args.date,
            "time": args.time,
            "quantity": args.qty,
            "price": args.price,
            "fee": args.fee,
        }
    )
    logger.success(
        f"Recorded {result.record.id}: {result.timeline.instrument} now holds "
        f"{format_quantity(result.timeline.holding_quantity)} @ {result.timeline.average_cost:.4f}"
    )
    return 0


def cmd_delete(service: LedgerService, args: argparse.Namespace) -> int:
    result = service.delete_trade(args.trade_id)
    logger.success(f"Deleted {args.trade_id} from {result.record.instrument}")
    return 0


def cmd_import_csv(service: LedgerService, args: argparse.Namespace) -> int:
    text = Path(args.file).read_text(encoding="utf-8-sig")
    report = service.import_csv(text)
    logger.success(report.message())
    return 0


def cmd_export_json(service: LedgerService, args: argparse.Namespace) -> int:
    filename, text = service.export_json()
    target = Path(args.file) if args.file else Path(filename)
    target.write_text(text, encoding="utf-8")
    logger.success(f"Exported ledger to {target}")
    return 0


def cmd_export_csv(service: LedgerService, args: argparse.Namespace) -> int:
    filename, text = service.export_instrument_csv(args.market, args.symbol)
    target = Path(args.file) if args.file else Path(filename)
    target.write_text(text, encoding="utf-8")
    logger.success(f"Exported timeline to {target}")
    return 0


def cmd_restore(service: LedgerService, args: argparse.Namespace) -> int:
    try:
        document = json.loads(Path(args.file).read_text(encoding="utf-8"))
    except ValueError as e:
        logger.error(f"{args.file} is not valid JSON: {e}")
        return 1
    ledger = service.restore_document(document)
    logger.success(f"Restored {len(ledger)} trades from {args.file}")
    return 0


COMMANDS = {
    "holdings": cmd_holdings,
    "timeline": cmd_timeline,
    "add": cmd_add,
    "delete": cmd_delete,
    "import-csv": cmd_import_csv,
    "export-json": cmd_export_json,
    "export-csv": cmd_export_csv,
    "restore": cmd_restore,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Average-cost stock trade ledger",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python ledger_cli.py add --market TW --symbol 2330 --side BUY --date 2024-01-02 --qty 100 --price 586 --fee 20
  python ledger_cli.py import-csv broker_export.csv
  python ledger_cli.py export-csv TW 2330
  python ledger_cli.py holdings
        """,
    )
    parser.add_argument("--data-dir", type=str, help="Directory holding the ledger document")
    parser.add_argument("--backup-dir", type=str, help="Directory mirroring the ledger document")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("holdings", help="Print current holdings")

    timeline = sub.add_parser("timeline", help="Print the replay of one instrument")
    timeline.add_argument("market")
    timeline.add_argument("symbol")

    add = sub.add_parser("add", help="Record a trade")
    add.add_argument("--market", required=True)
    add.add_argument("--symbol", required=True)
    add.add_argument("--side", required=True, help="BUY or SELL")
    add.add_argument("--date", required=True, help="YYYY-MM-DD")
    add.add_argument("--time", default=None, help="HH:MM or HH:MM:SS")
    add.add_argument("--qty", required=True, type=float)
    add.add_argument("--price", required=True, type=float)
    add.add_argument("--fee", default=0.0, type=float)

    delete = sub.add_parser("delete", help="Delete a trade by id")
    delete.add_argument("trade_id")

    import_csv = sub.add_parser("import-csv", help="Import a CSV trade list")
    import_csv.add_argument("file")

    export_json = sub.add_parser("export-json", help="Write the ledger backup document")
    export_json.add_argument("file", nargs="?", default=None)

    export_csv = sub.add_parser("export-csv", help="Write one instrument's timeline as CSV")
    export_csv.add_argument("market")
    export_csv.add_argument("symbol")
    export_csv.add_argument("file", nargs="?", default=None)

    restore = sub.add_parser("restore", help="Replace the ledger with a backup document")
    restore.add_argument("file")

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    setup_logging("DEBUG" if args.debug else get_settings().log_level)

    try:
        service = build_service(args)
        return COMMANDS[args.command](service, args)
    except LedgerException as e:
        logger.error(str(e))
        return 1
    except OSError as e:
        logger.error(f"File error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""
Operator CLI for the finance cache.

Pulls prices / news from Alpha Vantage into MongoDB, or prints what is cached.

Usage:
    python -m Tools.run_stocks --pull-stock AAPL
    python -m Tools.run_stocks --pull-news 20251201-20251202
    python -m Tools.run_stocks --symbol IBM [--date 20251223]
    python -m Tools.run_stocks --news --from 20251221 --to 20251222 [--keyword trading]
"""

import argparse
import asyncio
import json
import logging
import sys

from Finance.API.app import FinanceApp, configure_logging
from Finance.API.settings import load_settings
from Finance.Domain.dates import parse_date_range, to_stock_date
from Finance.Domain.errors import FinanceDataError

logger = logging.getLogger(__name__)

EXAMPLES = """examples:
  python -m Tools.run_stocks --pull-stock AAPL                     Pull AAPL stock data from Alpha Vantage API
  python -m Tools.run_stocks --pull-news 20251201-20251202         Pull news from Dec 1-2, 2025
  python -m Tools.run_stocks --symbol IBM                          Get latest 100 IBM stock prices
  python -m Tools.run_stocks --symbol IBM --date 20251223          Get IBM price for Dec 23, 2025
  python -m Tools.run_stocks --news --from 20251221 --to 20251222  Query news from Dec 21-22
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="run_stocks",
        description="Pull Alpha Vantage data into MongoDB and query the cache.",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    action = parser.add_mutually_exclusive_group()
    action.add_argument("--pull-stock", metavar="SYMBOL", help="Pull stock data for a symbol from Alpha Vantage API")
    action.add_argument("--pull-news", metavar="RANGE", help="Pull news data for a date range (YYYYMMDD-YYYYMMDD)")
    action.add_argument("-s", "--symbol", help="Query stock data for a symbol from MongoDB")
    action.add_argument("-n", "--news", action="store_true", help="Query news data from MongoDB")
    parser.add_argument("-d", "--date", help="Specific date for stock query (YYYYMMDD)")
    parser.add_argument("-f", "--from", dest="date_from", help="Start date for news query (YYYYMMDD)")
    parser.add_argument("-t", "--to", dest="date_to", help="End date for news query (YYYYMMDD)")
    parser.add_argument("-k", "--keyword", help="Keyword filter for news query (title or summary)")
    return parser


def _dump(data) -> None:
    print(json.dumps(data, indent=2, default=str))


async def run(args: argparse.Namespace, app: FinanceApp) -> int:
    service = app.query_service

    if args.pull_stock:
        print(f"Pulling stock data for {args.pull_stock}...")
        count = await service.pull_stock(args.pull_stock)
        print(f"Successfully pulled {count} stock records for {args.pull_stock}")

    elif args.pull_news:
        time_from, time_to = parse_date_range(args.pull_news)
        print(f"Pulling news from {time_from} to {time_to}...")
        count = await service.pull_news(time_from, time_to)
        print(f"Successfully pulled {count} news articles")

    elif args.symbol:
        docs = await service.read_prices(args.symbol, args.date)
        if not docs:
            on_date = f" on {to_stock_date(args.date)}" if args.date else ""
            print(f"No stock data found for {args.symbol}{on_date}")
        else:
            _dump(docs[0] if args.date else docs)

    elif args.news:
        docs = await service.read_news(args.date_from, args.date_to, args.keyword)
        if not docs:
            print(f"No news found between {args.date_from} and {args.date_to}")
        else:
            print(f"Found {len(docs)} news articles:")
            _dump(docs)

    return 0


async def _main(args: argparse.Namespace) -> int:
    async with FinanceApp.from_settings() as app:
        return await run(args, app)


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not (args.pull_stock or args.pull_news or args.symbol or args.news):
        parser.print_help()
        return 0
    if args.news and not (args.date_from and args.date_to):
        parser.error(
            "--news requires both --from and --to options "
            "(example: --news --from 20251221 --to 20251222)"
        )

    configure_logging(load_settings().log_level)
    try:
        return asyncio.run(_main(args))
    except FinanceDataError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

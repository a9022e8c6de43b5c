# Tools/mcp_finance_data.py
"""
Finance Data MCP Server
Serves cached Alpha Vantage daily prices and news sentiment from MongoDB.

Tools:
- get_stock_prices: daily OHLCV for a symbol, auto-pulled from the API on a cache miss
- get_news: cached news articles in a date range, optionally filtered by keyword

Usage:
    python -m Tools.mcp_finance_data                 # stdio
    python -m Tools.mcp_finance_data --sse --port 3001
"""

import argparse
import asyncio
import logging
from typing import Annotated, Any, Dict, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.tools import Tool
from fastmcp.tools.tool_transform import ArgTransform
from pydantic import Field

from Finance.API.app import FinanceApp, configure_logging
from Finance.API.settings import load_settings
from Finance.Domain.dates import to_stock_date, validate_compact_date
from Finance.Domain.errors import FinanceDataError
from Finance.Domain.models import normalize_symbol

logger = logging.getLogger(__name__)

SERVER_NAME = "alphavantage-mcp-server"
SERVER_INSTRUCTIONS = "Alpha Vantage Stock and News Data MCP Server"

STOCK_PRICES_DESCRIPTION = (
    "Query stock price data from MongoDB for a given stock symbol. Returns daily OHLCV "
    "(Open, High, Low, Close, Volume) data. If the data is not found in MongoDB, it will "
    "automatically pull it from the Alpha Vantage API first. If a specific date is provided, "
    "returns data for that date only. Otherwise, returns the latest 100 trading days sorted by "
    "date descending. Example response: {\"symbol\": \"AAPL\", \"date\": \"2025-12-23\", "
    "\"open\": 270.97, \"high\": 272.45, \"low\": 269.56, \"close\": 272.36, \"volume\": 29360026}"
)

NEWS_DESCRIPTION = (
    "Query financial news articles from MongoDB within a date range. Optionally filter by keyword "
    "in title or summary. Returns news with sentiment analysis, topics, and ticker sentiment data. "
    "Example response: {\"title\": \"(MXI) Price Dynamics and Execution-Aware Positioning\", "
    "\"time_published\": \"20251222T000000\", \"overall_sentiment_score\": 0.045162, "
    "\"overall_sentiment_label\": \"Neutral\", \"ticker_sentiment\": [{\"ticker\": \"MXI\", "
    "\"ticker_sentiment_label\": \"Neutral\"}]}"
)


def _check_price_query(symbol: str, date: Optional[str]) -> None:
    normalize_symbol(symbol)
    if date:
        to_stock_date(date)


def _check_news_query(date_from: str, date_to: str) -> None:
    validate_compact_date(date_from)
    validate_compact_date(date_to)


def create_server(app: FinanceApp) -> FastMCP:
    """Build the MCP server around an already-wired FinanceApp."""
    mcp = FastMCP(name=SERVER_NAME, instructions=SERVER_INSTRUCTIONS)

    async def _call(tool_name: str, coro_factory, check=None) -> Dict[str, Any]:
        try:
            # malformed input is refused before MongoDB is touched
            if check is not None:
                check()
            await app.ensure_connected()
            return await coro_factory()
        except FinanceDataError as e:
            logger.error(f"Error executing {tool_name}: {e}")
            raise ToolError(str(e)) from e

    @mcp.tool(name="get_stock_prices", description=STOCK_PRICES_DESCRIPTION)
    async def get_stock_prices(
        symbol: Annotated[str, Field(description="Stock ticker symbol (e.g., 'AAPL', 'IBM', 'MSFT', 'GOOGL')")],
        date: Annotated[Optional[str], Field(
            description="Optional. Specific date in YYYYMMDD format (e.g., '20251223'). "
                        "If omitted, returns the latest 100 prices."
        )] = None,
    ) -> Dict[str, Any]:
        return await _call(
            "get_stock_prices",
            lambda: app.query_service.get_prices(symbol, date),
            check=lambda: _check_price_query(symbol, date),
        )

    # "from" is a Python keyword, so the function takes date_from / date_to and
    # the published tool renames them.
    async def get_news(
        date_from: str,
        date_to: str,
        keyword: Optional[str] = None,
    ) -> Dict[str, Any]:
        return await _call(
            "get_news",
            lambda: app.query_service.get_news(date_from, date_to, keyword),
            check=lambda: _check_news_query(date_from, date_to),
        )

    news_tool = Tool.from_function(get_news, name="get_news", description=NEWS_DESCRIPTION)
    mcp.add_tool(Tool.from_tool(
        news_tool,
        transform_args={
            "date_from": ArgTransform(name="from", description="Start date in YYYYMMDD format (e.g., '20251221')"),
            "date_to": ArgTransform(name="to", description="End date in YYYYMMDD format (e.g., '20251222')"),
            "keyword": ArgTransform(
                description="Optional keyword to filter news articles. Searches in both title and "
                            "summary fields using case-insensitive matching."
            ),
        },
    ))

    return mcp


async def serve(transport: str, host: str, port: int) -> None:
    app = FinanceApp.from_settings()
    mcp = create_server(app)
    try:
        if transport == "stdio":
            logger.info("Alpha Vantage MCP server running on stdio")
            await mcp.run_async(transport="stdio")
        else:
            logger.info(f"Alpha Vantage MCP server running on {transport} at http://{host}:{port}")
            await mcp.run_async(transport=transport, host=host, port=port)
    finally:
        await app.close()


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=SERVER_INSTRUCTIONS)
    parser.add_argument(
        "--transport",
        choices=["stdio", "sse", "streamable-http"],
        default="stdio",
        help="MCP transport (default: stdio)",
    )
    parser.add_argument("--sse", action="store_true", help="Shortcut for --transport sse")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=3001)
    args = parser.parse_args(argv)
    if args.sse:
        args.transport = "sse"
    return args


def main(argv=None) -> None:
    args = parse_args(argv)
    configure_logging(load_settings().log_level)
    try:
        asyncio.run(serve(args.transport, args.host, args.port))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")


if __name__ == "__main__":
    main()

"""
Read side of the finance data layer.

``get_prices`` reads a symbol's partition and, on a miss, pulls the symbol from
Alpha Vantage once before reading again. ``get_news`` only ever reads; news is
filled explicitly through ``pull_news``.

Both return plain JSON-ready dicts ``{"message", "data", "error"?}`` so a bad
symbol never surfaces as an exception at the tool layer.
"""
from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Awaitable, Callable, Dict, List, Optional

from Finance.Domain.dates import news_query_bound, to_stock_date, validate_compact_date
from Finance.Domain.errors import ConfigurationError, ParseError
from Finance.Domain.market_data_fetcher import MarketDataFetcher
from Finance.Domain.models import NEWS_PARTITION, normalize_symbol, price_partition
from Finance.Domain.news_fetcher import NewsFetcher
from Finance.Ports.Outbound.document_store_interface import DocumentStore

logger = logging.getLogger(__name__)

DEFAULT_PRICE_LIMIT = 100

SOURCE_CACHE = "cache"
SOURCE_API = "api"


def _result(message: str, data: Any, error: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    result: Dict[str, Any] = {"message": message, "data": data}
    if error is not None:
        result["error"] = error
    result.update(extra)
    return result


class QueryService:
    def __init__(
            self,
            store: DocumentStore,
            market_fetcher: MarketDataFetcher,
            news_fetcher: NewsFetcher,
            price_limit: int = DEFAULT_PRICE_LIMIT,
    ):
        self.store = store
        self.market_fetcher = market_fetcher
        self.news_fetcher = news_fetcher
        self.price_limit = price_limit
        # one pending upstream pull per symbol / news window
        self._inflight: Dict[str, asyncio.Task] = {}

    # ------------------------------------------------------------------
    # Single-flight pulls
    # ------------------------------------------------------------------

    async def _single_flight(self, key: str, pull: Callable[[], Awaitable[int]]) -> int:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(pull())
            self._inflight[key] = task

            def _forget(done: asyncio.Task, key: str = key) -> None:
                if self._inflight.get(key) is done:
                    del self._inflight[key]
                # mark the outcome retrieved even when every waiter was cancelled
                if not done.cancelled():
                    done.exception()

            task.add_done_callback(_forget)
        else:
            logger.info(f"Joining in-flight pull for {key}")
        # a cancelled caller must not cancel the pull other callers wait on
        return await asyncio.shield(task)

    async def pull_stock(self, symbol: str) -> int:
        symbol = normalize_symbol(symbol)
        return await self._single_flight(
            f"stock:{symbol}", lambda: self.market_fetcher.fetch_and_store(symbol)
        )

    async def pull_news(self, time_from: str, time_to: str) -> int:
        return await self._single_flight(
            f"news:{time_from}:{time_to}",
            lambda: self.news_fetcher.fetch_and_store(time_from, time_to),
        )

    # ------------------------------------------------------------------
    # Cache-only reads
    # ------------------------------------------------------------------

    async def _read_prices(self, partition: str, stock_date: Optional[str]) -> List[Dict[str, Any]]:
        if stock_date:
            return await self.store.find(partition, {"date": stock_date})
        return await self.store.find(
            partition, {}, sort={"date": -1}, limit=self.price_limit
        )

    async def read_prices(self, symbol: str, date: Optional[str] = None) -> List[Dict[str, Any]]:
        """Read without filling. ``date`` is ``YYYYMMDD``."""
        partition = price_partition(symbol)
        stock_date = to_stock_date(date) if date else None
        return await self._read_prices(partition, stock_date)

    async def read_news(self, date_from: str, date_to: str, keyword: Optional[str] = None) -> List[Dict[str, Any]]:
        filter: Dict[str, Any] = {
            "time_published": {
                "$gte": news_query_bound(date_from),
                "$lte": news_query_bound(date_to, is_end=True),
            }
        }
        if keyword:
            pattern = re.escape(keyword)
            filter["$or"] = [
                {"title": {"$regex": pattern, "$options": "i"}},
                {"summary": {"$regex": pattern, "$options": "i"}},
            ]
        return await self.store.find(NEWS_PARTITION, filter)

    # ------------------------------------------------------------------
    # Tools
    # ------------------------------------------------------------------

    async def get_prices(self, symbol: str, date: Optional[str] = None) -> Dict[str, Any]:
        symbol = normalize_symbol(symbol)
        partition = price_partition(symbol)
        stock_date = to_stock_date(date) if date else None
        on_date = f" on {stock_date}" if stock_date else ""
        empty: Any = None if stock_date else []

        docs = await self._read_prices(partition, stock_date)
        if docs:
            return _result(self._found_message(symbol, docs, stock_date), self._shape(docs, stock_date),
                           source=SOURCE_CACHE)

        logger.info(f"Stock data not found for {symbol}{on_date}, pulling from Alpha Vantage API...")
        try:
            count = await self.pull_stock(symbol)
        except ConfigurationError as e:
            logger.warning(f"Auto-pull for {symbol} failed: {e}")
            return _result(
                f"No stock data found for {symbol}. Auto-pull failed: {e}. "
                f"Please create a .keylist file with your Alpha Vantage API key(s), "
                f"or manually pull the data using: python -m Tools.run_stocks --pull-stock {symbol}",
                None,
                error="Missing API key list",
            )
        except ParseError as e:
            logger.warning(f"Auto-pull for {symbol} returned no usable data: {e}")
            return _result(
                f"No stock data found for {symbol}{on_date}. The API returned no price series for this symbol.",
                None,
                error=str(e),
            )
        except Exception as e:
            logger.error(f"Auto-pull for {symbol} failed: {e}", exc_info=True)
            return _result(
                f"No stock data found for {symbol}. Auto-pull failed: {e}",
                None,
                error=str(e),
            )
        logger.info(f"Pulled {count} records for {symbol}")

        docs = await self._read_prices(partition, stock_date)
        if not docs:
            return _result(
                f"No stock data found for {symbol}{on_date} (even after pulling from API)",
                empty,
                source=SOURCE_API,
            )

        return _result(
            f"{self._found_message(symbol, docs, stock_date)} (freshly pulled from API)",
            self._shape(docs, stock_date),
            source=SOURCE_API,
        )

    async def get_news(self, date_from: str, date_to: str, keyword: Optional[str] = None) -> Dict[str, Any]:
        validate_compact_date(date_from)
        validate_compact_date(date_to)

        docs = await self.read_news(date_from, date_to, keyword)
        keyword_info = f' matching keyword "{keyword}"' if keyword else ""

        if not docs:
            return _result(
                f"No news articles found between {date_from} and {date_to}{keyword_info}",
                [],
                count=0,
            )
        return _result(
            f"Found {len(docs)} news articles between {date_from} and {date_to}{keyword_info}",
            docs,
            count=len(docs),
        )

    @staticmethod
    def _found_message(symbol: str, docs: List[Dict[str, Any]], stock_date: Optional[str]) -> str:
        if stock_date:
            return f"Stock data for {symbol} on {stock_date}"
        return f"Found {len(docs)} stock price records for {symbol}"

    @staticmethod
    def _shape(docs: List[Dict[str, Any]], stock_date: Optional[str]) -> Any:
        return docs[0] if stock_date else docs

# Finance/API/app.py
"""
Service root: owns the store connection, the HTTP client and the key pool,
and wires them into the fetchers and the query service.
"""
import asyncio
import logging
from typing import Optional

from Finance.Adapters.Outbound.alphavantage_adapter import AlphaVantageAdapter
from Finance.Adapters.Outbound.mongodb_adapter import MongoDBAdapter
from Finance.API.settings import Settings, load_settings
from Finance.Domain.key_rotator import KeyRotator
from Finance.Domain.market_data_fetcher import MarketDataFetcher
from Finance.Domain.news_fetcher import DEFAULT_NEWS_LIMIT, NewsFetcher
from Finance.Domain.query_service import DEFAULT_PRICE_LIMIT, QueryService
from Finance.Domain.rate_limiter import RateLimiter
from Finance.Ports.Outbound.document_store_interface import DocumentStore
from Finance.Ports.Outbound.market_api_interface import MarketDataApi

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    # basicConfig writes to stderr, which keeps stdout free for the stdio transport
    logging.basicConfig(level=level, format=LOG_FORMAT)


class FinanceApp:
    def __init__(
            self,
            store: DocumentStore,
            api: MarketDataApi,
            keys: KeyRotator,
            limiter: RateLimiter,
            news_pull_limit: int = DEFAULT_NEWS_LIMIT,
            price_query_limit: int = DEFAULT_PRICE_LIMIT,
    ):
        self.store = store
        self.api = api
        self.keys = keys
        self.limiter = limiter
        self.market_fetcher = MarketDataFetcher(api, store, keys, limiter)
        self.news_fetcher = NewsFetcher(api, store, keys, limiter, limit=news_pull_limit)
        self.query_service = QueryService(
            store, self.market_fetcher, self.news_fetcher, price_limit=price_query_limit
        )
        self._connected = False
        self._connect_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "FinanceApp":
        settings = settings or load_settings()
        return cls(
            store=MongoDBAdapter(
                connection_string=settings.mongodb_connection_string,
                database=settings.mongodb_database,
            ),
            api=AlphaVantageAdapter(
                base_url=settings.alphavantage_base_url,
                timeout=settings.http_timeout,
            ),
            keys=KeyRotator(path=settings.keylist_path),
            limiter=RateLimiter(settings.pace_seconds),
            news_pull_limit=settings.news_pull_limit,
            price_query_limit=settings.price_query_limit,
        )

    async def ensure_connected(self) -> None:
        async with self._connect_lock:
            if not self._connected:
                await self.store.connect()
                self._connected = True

    async def close(self) -> None:
        if self._connected:
            await self.store.disconnect()
            self._connected = False
        await self.api.close()

    async def __aenter__(self) -> "FinanceApp":
        await self.ensure_connected()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

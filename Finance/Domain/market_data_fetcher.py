"""
Pulls TIME_SERIES_DAILY for one symbol and upserts every trading day into the
symbol's partition, keyed by date.
"""
import logging
from typing import Any, Dict

from Finance.Domain.errors import ApiError, ParseError
from Finance.Domain.key_rotator import KeyRotator
from Finance.Domain.models import PricePoint, normalize_symbol, price_partition
from Finance.Domain.rate_limiter import RateLimiter
from Finance.Ports.Outbound.document_store_interface import DocumentStore
from Finance.Ports.Outbound.market_api_interface import MarketDataApi

logger = logging.getLogger(__name__)

TIME_SERIES_FIELD = "Time Series (Daily)"


def missing_field_message(data: Dict[str, Any], field: str) -> str:
    message = f"Invalid API response: missing '{field}' field"
    # quota exhaustion comes back as 200 with only a Note/Information text
    notice = data.get("Note") or data.get("Information")
    if notice:
        message = f"{message} ({notice})"
    return message


class MarketDataFetcher:
    def __init__(
            self,
            api: MarketDataApi,
            store: DocumentStore,
            keys: KeyRotator,
            limiter: RateLimiter,
    ):
        self.api = api
        self.store = store
        self.keys = keys
        self.limiter = limiter

    async def fetch_and_store(self, symbol: str) -> int:
        """
        Pull daily prices for ``symbol`` and upsert them.

        Returns:
            Number of trading days upserted. Zero is a valid result when the
            provider returned an empty series.

        Raises:
            ConfigurationError, NetworkError, ApiError, ParseError, CacheError
        """
        symbol = normalize_symbol(symbol)
        api_key = self.keys.next_credential()

        logger.info(f"Pulling daily prices for {symbol}")
        try:
            data = await self.api.query({
                "function": "TIME_SERIES_DAILY",
                "symbol": symbol,
                "apikey": api_key,
            })
        except (ApiError, ParseError):
            # an answered request counts against the quota even when it failed
            await self.limiter.pace()
            raise

        try:
            return await self._store_series(symbol, data)
        finally:
            await self.limiter.pace()

    async def _store_series(self, symbol: str, data: Dict[str, Any]) -> int:
        time_series = data.get(TIME_SERIES_FIELD)
        if time_series is None:
            raise ParseError(missing_field_message(data, TIME_SERIES_FIELD))
        if not isinstance(time_series, dict):
            raise ParseError(f"Invalid API response: '{TIME_SERIES_FIELD}' is not an object")

        partition = price_partition(symbol)
        count = 0
        for date, values in time_series.items():
            point = PricePoint.from_daily_entry(symbol, date, values)
            await self.store.upsert(partition, {"date": point.date}, point.model_dump())
            count += 1

        logger.info(f"Upserted {count} price records into {partition}")
        return count

import logging

from Finance.Domain.errors import ApiError, ParseError
from Finance.Domain.key_rotator import KeyRotator
from Finance.Domain.market_data_fetcher import missing_field_message
from Finance.Domain.models import NEWS_PARTITION, NewsArticle
from Finance.Domain.rate_limiter import RateLimiter
from Finance.Ports.Outbound.document_store_interface import DocumentStore
from Finance.Ports.Outbound.market_api_interface import MarketDataApi

logger = logging.getLogger(__name__)

DEFAULT_NEWS_LIMIT = 1000


class NewsFetcher:
    """Pulls NEWS_SENTIMENT for a time window into the shared news partition."""

    def __init__(
            self,
            api: MarketDataApi,
            store: DocumentStore,
            keys: KeyRotator,
            limiter: RateLimiter,
            limit: int = DEFAULT_NEWS_LIMIT,
    ):
        self.api = api
        self.store = store
        self.keys = keys
        self.limiter = limiter
        self.limit = limit

    async def fetch_and_store(self, time_from: str, time_to: str) -> int:
        """
        Args:
            time_from: Start of the window, ``YYYYMMDDTHHMM``
            time_to: End of the window, ``YYYYMMDDTHHMM``

        Returns:
            Number of articles upserted, keyed by ``time_published``.
        """
        api_key = self.keys.next_credential()

        logger.info(f"Pulling news from {time_from} to {time_to}")
        try:
            data = await self.api.query({
                "function": "NEWS_SENTIMENT",
                "apikey": api_key,
                "limit": str(self.limit),
                "time_from": time_from,
                "time_to": time_to,
            })
        except (ApiError, ParseError):
            await self.limiter.pace()
            raise

        try:
            return await self._store_feed(data)
        finally:
            await self.limiter.pace()

    async def _store_feed(self, data) -> int:
        feed = data.get("feed")
        if feed is None:
            raise ParseError(missing_field_message(data, "feed"))
        if not isinstance(feed, list):
            raise ParseError("Invalid API response: 'feed' field is not a list")

        count = 0
        for item in feed:
            article = NewsArticle.from_feed_item(item)
            await self.store.upsert(
                NEWS_PARTITION,
                {"time_published": article.time_published},
                article.model_dump(),
            )
            count += 1

        logger.info(f"Upserted {count} news articles")
        return count

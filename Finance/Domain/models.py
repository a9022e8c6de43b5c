"""Typed records stored in the cache, plus the partition naming rules."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from Finance.Domain.errors import InvalidInputError, ParseError

DATABASE_NAME = "finance"
NEWS_PARTITION = "news"

# Alpha Vantage TIME_SERIES_DAILY field names
_OHLCV_FIELDS = {
    "open": "1. open",
    "high": "2. high",
    "low": "3. low",
    "close": "4. close",
    "volume": "5. volume",
}


def normalize_symbol(symbol: str) -> str:
    if not isinstance(symbol, str) or not symbol.strip():
        raise InvalidInputError("Symbol cannot be empty.")
    symbol = symbol.strip().upper()
    if " " in symbol:
        raise InvalidInputError("Symbol must not contain spaces.")
    if len(symbol) > 15:
        raise InvalidInputError("Symbol too long.")
    return symbol


def price_partition(symbol: str) -> str:
    return f"stock-{normalize_symbol(symbol)}"


class PricePoint(BaseModel):
    symbol: str
    date: str
    open: float
    high: float
    low: float
    close: float
    volume: int = Field(ge=0)

    @classmethod
    def from_daily_entry(cls, symbol: str, date: str, values: Dict[str, Any]) -> "PricePoint":
        """Build a record from one ``Time Series (Daily)`` entry."""
        if not isinstance(values, dict):
            raise ParseError(f"Invalid daily entry for {symbol} on {date}: expected an object")
        try:
            fields = {name: values[key] for name, key in _OHLCV_FIELDS.items()}
        except KeyError as e:
            raise ParseError(f"Invalid daily entry for {symbol} on {date}: missing {e.args[0]!r}") from e
        try:
            # volume arrives as an integer string; int() rejects "1.5" as it should
            fields["volume"] = int(fields["volume"])
            return cls(symbol=symbol, date=date, **fields)
        except (TypeError, ValueError, ValidationError) as e:
            raise ParseError(f"Invalid daily entry for {symbol} on {date}: {e}") from e


class Topic(BaseModel):
    topic: str
    relevance_score: float


class TickerSentiment(BaseModel):
    ticker: str
    relevance_score: float
    ticker_sentiment_score: float
    ticker_sentiment_label: str


class NewsArticle(BaseModel):
    title: str
    url: str
    time_published: str
    authors: List[str] = Field(default_factory=list)
    summary: str = ""
    banner_image: Optional[str] = None
    source: Optional[str] = None
    category_within_source: Optional[str] = None
    source_domain: Optional[str] = None
    topics: List[Topic] = Field(default_factory=list)
    overall_sentiment_score: float
    overall_sentiment_label: str
    ticker_sentiment: List[TickerSentiment] = Field(default_factory=list)

    @field_validator("authors", "topics", "ticker_sentiment", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return [] if value is None else value

    @field_validator("banner_image", mode="before")
    @classmethod
    def _blank_as_none(cls, value):
        return value or None

    @classmethod
    def from_feed_item(cls, item: Dict[str, Any]) -> "NewsArticle":
        """Build a record from one entry of the news ``feed`` array."""
        if not isinstance(item, dict):
            raise ParseError("Invalid feed item: expected an object")
        try:
            return cls.model_validate(item)
        except ValidationError as e:
            published = item.get("time_published", "?")
            raise ParseError(f"Invalid feed item published at {published}: {e}") from e

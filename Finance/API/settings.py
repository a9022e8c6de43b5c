# Finance/API/settings.py
import os
from typing import Optional

import dotenv
from pydantic import BaseModel

from Finance.Adapters.Outbound.alphavantage_adapter import ALPHA_BASE
from Finance.Domain.errors import ConfigurationError
from Finance.Domain.models import DATABASE_NAME
from Finance.Domain.news_fetcher import DEFAULT_NEWS_LIMIT
from Finance.Domain.query_service import DEFAULT_PRICE_LIMIT
from Finance.Domain.rate_limiter import DEFAULT_PACE_SECONDS


class Settings(BaseModel):
    mongodb_connection_string: Optional[str] = None
    mongodb_database: str = DATABASE_NAME
    keylist_path: Optional[str] = None
    alphavantage_base_url: str = ALPHA_BASE
    pace_seconds: float = DEFAULT_PACE_SECONDS
    http_timeout: float = 30.0
    news_pull_limit: int = DEFAULT_NEWS_LIMIT
    price_query_limit: int = DEFAULT_PRICE_LIMIT
    log_level: str = "INFO"


def _number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e
    if value < 0:
        raise ConfigurationError(f"{name} must be >= 0, got {raw!r}")
    return value


def load_settings(load_env_file: bool = True) -> Settings:
    """Read settings from the environment (and ``.env`` when present)."""
    if load_env_file:
        dotenv.load_dotenv()

    return Settings(
        mongodb_connection_string=os.getenv("MONGODB_CONNECTION_STRING") or None,
        mongodb_database=os.getenv("MONGODB_DATABASE") or DATABASE_NAME,
        keylist_path=os.getenv("KEYLIST_PATH") or None,
        alphavantage_base_url=os.getenv("ALPHAVANTAGE_BASE_URL") or ALPHA_BASE,
        pace_seconds=_number("ALPHAVANTAGE_PACE_SECONDS", DEFAULT_PACE_SECONDS, float),
        http_timeout=_number("ALPHAVANTAGE_TIMEOUT", 30.0, float),
        news_pull_limit=_number("NEWS_PULL_LIMIT", DEFAULT_NEWS_LIMIT, int),
        price_query_limit=_number("PRICE_QUERY_LIMIT", DEFAULT_PRICE_LIMIT, int),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )

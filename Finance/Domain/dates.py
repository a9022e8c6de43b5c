"""
Date helpers shared by the query tools and the CLI.

Callers speak ``YYYYMMDD``; the stock partitions store ``YYYY-MM-DD`` and the
news partition stores ``YYYYMMDDTHHMMSS``. Every conversion validates its input
first so a malformed date never reaches the cache or the network.
"""
import re
from datetime import datetime
from typing import Tuple

from Finance.Domain.errors import InvalidInputError

_COMPACT_DATE = re.compile(r"^\d{8}$")
_STOCK_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DATE_RANGE = re.compile(r"^(\d{8})-(\d{8})$")


def _check_calendar(value: str, fmt: str, original: str) -> None:
    try:
        datetime.strptime(value, fmt)
    except ValueError as e:
        raise InvalidInputError(f"Invalid date: {original} is not a calendar date") from e


def validate_compact_date(date_str: str) -> str:
    if not isinstance(date_str, str) or not _COMPACT_DATE.match(date_str):
        raise InvalidInputError(f"Invalid date format: {date_str}. Expected YYYYMMDD")
    _check_calendar(date_str, "%Y%m%d", date_str)
    return date_str


def to_stock_date(date_str: str) -> str:
    """``20251223`` -> ``2025-12-23``."""
    validate_compact_date(date_str)
    return f"{date_str[0:4]}-{date_str[4:6]}-{date_str[6:8]}"


def from_stock_date(stock_date: str) -> str:
    """``2025-12-23`` -> ``20251223``."""
    if not isinstance(stock_date, str) or not _STOCK_DATE.match(stock_date):
        raise InvalidInputError(f"Invalid date format: {stock_date}. Expected YYYY-MM-DD")
    _check_calendar(stock_date, "%Y-%m-%d", stock_date)
    return stock_date.replace("-", "")


def news_query_bound(date_str: str, is_end: bool = False) -> str:
    """
    Bound used against stored ``time_published`` values.

    The end bound includes seconds so articles published during the last
    minute of the day still compare below it.
    """
    validate_compact_date(date_str)
    return f"{date_str}T235959" if is_end else f"{date_str}T000000"


def news_api_bound(date_str: str, is_end: bool = False) -> str:
    """Bound in the ``YYYYMMDDTHHMM`` form the news endpoint accepts."""
    validate_compact_date(date_str)
    return f"{date_str}T2359" if is_end else f"{date_str}T0000"


def parse_date_range(range_str: str) -> Tuple[str, str]:
    """
    ``20251201-20251202`` -> (``20251201T0000``, ``20251202T2359``).
    """
    match = _DATE_RANGE.match(range_str or "")
    if not match:
        raise InvalidInputError(
            f"Invalid date range format: {range_str}. Expected YYYYMMDD-YYYYMMDD"
        )
    start, end = match.groups()
    if start > end:
        raise InvalidInputError(f"Invalid date range: {start} is after {end}")
    return news_api_bound(start), news_api_bound(end, is_end=True)

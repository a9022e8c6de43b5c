"""
Tests for the cache-fill flow behind get_stock_prices and the news reads.
"""
import asyncio
import gc

import pytest

from Finance.Domain.errors import ApiError, InvalidInputError, NetworkError
from Finance.Domain.key_rotator import KeyRotator
from tests.fakes import article, daily_payload, make_app, ohlcv

XYZ_SERIES = daily_payload({
    "2025-12-23": ohlcv("10.00", "11.00", "9.50", "10.50", "1000"),
    "2025-12-22": ohlcv("9.80", "10.20", "9.70", "10.00", "900"),
})


@pytest.mark.asyncio
async def test_miss_triggers_one_fetch_then_serves_from_cache():
    app = make_app({"TIME_SERIES_DAILY": XYZ_SERIES})
    service = app.query_service

    first = await service.get_prices("XYZ")
    assert first["source"] == "api"
    assert "freshly pulled from API" in first["message"]
    assert [d["date"] for d in first["data"]] == ["2025-12-23", "2025-12-22"]
    assert len(app.api.calls) == 1

    second = await service.get_prices("XYZ")
    assert second["source"] == "cache"
    assert "freshly" not in second["message"]
    assert second["data"] == first["data"]
    assert len(app.api.calls) == 1


@pytest.mark.asyncio
async def test_cache_hit_never_calls_api():
    app = make_app({"TIME_SERIES_DAILY": ApiError("should not be called")})
    await app.store.upsert("stock-IBM", {"date": "2025-12-23"}, {"symbol": "IBM", "date": "2025-12-23"})

    result = await app.query_service.get_prices("IBM")

    assert result["source"] == "cache"
    assert result["message"] == "Found 1 stock price records for IBM"
    assert app.api.calls == []


@pytest.mark.asyncio
async def test_latest_prices_sorted_descending_and_limited():
    app = make_app()
    app.query_service.price_limit = 3
    for day in ["2025-12-01", "2025-12-05", "2025-12-03", "2025-12-04", "2025-12-02"]:
        await app.store.upsert("stock-IBM", {"date": day}, {"symbol": "IBM", "date": day})

    result = await app.query_service.get_prices("IBM")

    assert [d["date"] for d in result["data"]] == ["2025-12-05", "2025-12-04", "2025-12-03"]


@pytest.mark.asyncio
async def test_date_query_returns_single_record():
    app = make_app({"TIME_SERIES_DAILY": XYZ_SERIES})

    result = await app.query_service.get_prices("XYZ", "20251222")

    assert result["message"] == "Stock data for XYZ on 2025-12-22 (freshly pulled from API)"
    assert result["data"]["close"] == 10.00
    assert result["data"]["date"] == "2025-12-22"


@pytest.mark.asyncio
async def test_date_missing_even_after_fetch():
    app = make_app({"TIME_SERIES_DAILY": XYZ_SERIES})

    result = await app.query_service.get_prices("XYZ", "20200101")

    assert result["data"] is None
    assert "even after pulling from API" in result["message"]
    assert "error" not in result


@pytest.mark.asyncio
async def test_empty_series_is_not_found_not_error():
    app = make_app({"TIME_SERIES_DAILY": daily_payload({})})

    result = await app.query_service.get_prices("XYZ")

    assert result["data"] == []
    assert "even after pulling from API" in result["message"]


@pytest.mark.asyncio
async def test_invalid_symbol_becomes_not_found_result():
    app = make_app({"TIME_SERIES_DAILY": {"Meta Data": {}}})

    result = await app.query_service.get_prices("NOTATICKER")

    assert result["data"] is None
    assert result["message"].startswith("No stock data found for NOTATICKER")
    assert "Time Series (Daily)" in result["error"]


@pytest.mark.asyncio
async def test_missing_keylist_gives_actionable_message(tmp_path):
    app = make_app({"TIME_SERIES_DAILY": XYZ_SERIES})
    keys = KeyRotator(path=tmp_path / ".keylist")
    app.market_fetcher.keys = keys

    result = await app.query_service.get_prices("XYZ")

    assert result["data"] is None
    assert result["error"] == "Missing API key list"
    assert ".keylist" in result["message"]
    assert "--pull-stock XYZ" in result["message"]
    assert app.api.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [NetworkError("connection reset"), ApiError("status 503"), RuntimeError("boom")])
async def test_other_fetch_failures_carry_raw_error(error):
    app = make_app({"TIME_SERIES_DAILY": error})

    result = await app.query_service.get_prices("XYZ")

    assert result["data"] is None
    assert result["error"] == str(error)
    assert "Auto-pull failed" in result["message"]


@pytest.mark.asyncio
@pytest.mark.parametrize("symbol,date", [("XYZ", "2025-12-23"), ("XYZ", "2025123"), ("", None), ("BRK B", None)])
async def test_bad_input_rejected_before_any_io(symbol, date):
    app = make_app({"TIME_SERIES_DAILY": XYZ_SERIES})

    with pytest.raises(InvalidInputError):
        await app.query_service.get_prices(symbol, date)
    assert app.api.calls == []
    assert app.store.partitions == {}


@pytest.mark.asyncio
async def test_concurrent_misses_share_one_fetch():
    app = make_app({"TIME_SERIES_DAILY": XYZ_SERIES})
    app.api.gate = asyncio.Event()

    pending = [asyncio.create_task(app.query_service.get_prices("XYZ")) for _ in range(3)]
    await asyncio.sleep(0.01)
    app.api.gate.set()
    results = await asyncio.gather(*pending)

    assert len(app.api.calls) == 1
    assert all(len(r["data"]) == 2 for r in results)
    assert app.query_service._inflight == {}


@pytest.mark.asyncio
async def test_failed_pull_whose_callers_all_left_is_still_collected():
    loop = asyncio.get_running_loop()
    reported = []
    loop.set_exception_handler(lambda _loop, context: reported.append(context))
    try:
        app = make_app({"TIME_SERIES_DAILY": NetworkError("connection reset")})
        app.api.gate = asyncio.Event()

        caller = asyncio.create_task(app.query_service.pull_stock("XYZ"))
        await asyncio.sleep(0.01)
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller

        app.api.gate.set()
        await asyncio.sleep(0.01)
        assert app.query_service._inflight == {}

        del caller
        gc.collect()
        assert not [c for c in reported if "never retrieved" in c.get("message", "")]
    finally:
        loop.set_exception_handler(None)


@pytest.mark.asyncio
async def test_pull_news_stores_window():
    app = make_app({"NEWS_SENTIMENT": {"feed": [article("20251221T093000")]}})

    assert await app.query_service.pull_news("20251221T0000", "20251221T2359") == 1
    assert app.api.calls[0]["time_from"] == "20251221T0000"


async def _seed_news(app):
    feed = [
        article("20251220T235959", title="Old trading news"),
        article("20251221T000000", title="Trading volumes surge", summary="Busy session."),
        article("20251221T120000", title="Fed holds rates", summary="Algorithmic TRADING desks react."),
        article("20251222T235930", title="Late close", summary="Nothing to see."),
        article("20251223T000000", title="Next day trading", summary=""),
    ]
    app.api.responses["NEWS_SENTIMENT"] = {"feed": feed}
    await app.query_service.pull_news("20251220T0000", "20251223T2359")


@pytest.mark.asyncio
async def test_get_news_returns_whole_range_without_keyword():
    app = make_app()
    await _seed_news(app)

    result = await app.query_service.get_news("20251221", "20251222")

    assert result["count"] == 3
    assert sorted(d["time_published"] for d in result["data"]) == [
        "20251221T000000", "20251221T120000", "20251222T235930",
    ]
    assert result["message"] == "Found 3 news articles between 20251221 and 20251222"


@pytest.mark.asyncio
async def test_get_news_keyword_matches_title_or_summary_case_insensitively():
    app = make_app()
    await _seed_news(app)

    result = await app.query_service.get_news("20251221", "20251222", keyword="trading")

    titles = sorted(d["title"] for d in result["data"])
    assert titles == ["Fed holds rates", "Trading volumes surge"]
    assert 'matching keyword "trading"' in result["message"]


@pytest.mark.asyncio
async def test_keyword_is_matched_literally():
    app = make_app()
    await _seed_news(app)

    result = await app.query_service.get_news("20251221", "20251222", keyword="(")

    assert result["data"] == []


@pytest.mark.asyncio
async def test_get_news_empty_is_not_an_error():
    app = make_app()

    result = await app.query_service.get_news("20251221", "20251222")

    assert result == {
        "message": "No news articles found between 20251221 and 20251222",
        "data": [],
        "count": 0,
    }
    assert app.api.calls == []


@pytest.mark.asyncio
async def test_get_news_rejects_malformed_dates():
    app = make_app()
    with pytest.raises(InvalidInputError):
        await app.query_service.get_news("2025-12-21", "20251222")

import json
import pytest
from unittest.mock import AsyncMock, MagicMock, patch
import httpx
from app.services import market_data


CHART = {
    "chart": {
        "result": [
            {"meta": {"regularMarketPrice": 110.0, "previousClose": 100.0, "currency": "USD"}}
        ]
    }
}


def _fake_redis(cached=None):
    redis = MagicMock()
    redis.get = AsyncMock(return_value=cached)
    redis.set = AsyncMock()
    return redis


def _fake_client(response=None, error=None):
    client = AsyncMock()
    if error is not None:
        client.get = AsyncMock(side_effect=error)
    else:
        client.get = AsyncMock(return_value=response)
    client.__aenter__.return_value = client
    return client


def test_parse_chart():
    quote = market_data.parse_chart("AAPL", CHART)
    assert quote["price"] == 110.0
    assert quote["change"] == 10.0
    assert quote["change_pct"] == 10.0
    assert quote["currency"] == "USD"


def test_parse_chart_without_price():
    assert market_data.parse_chart("AAPL", {"chart": {"result": []}}) is None
    assert market_data.parse_chart("AAPL", {"chart": {"result": [{"meta": {}}]}}) is None


def test_crypto_symbols_are_quoted_against_usd():
    assert market_data.to_upstream_symbol("BTC") == "BTC-USD"
    assert market_data.to_upstream_symbol("AAPL") == "AAPL"


@pytest.mark.asyncio
async def test_cached_quote_skips_upstream():
    cached = json.dumps({"symbol": "AAPL", "price": 1.0})
    redis = _fake_redis(cached)
    with patch("app.services.market_data.get_redis", AsyncMock(return_value=redis)), \
         patch("app.services.market_data.httpx.AsyncClient") as MockClient:
        quote = await market_data.get_quote("aapl")
    assert quote == {"symbol": "AAPL", "price": 1.0}
    redis.get.assert_awaited_once_with("market:AAPL:quote")
    MockClient.assert_not_called()


@pytest.mark.asyncio
async def test_cache_miss_fetches_and_stores():
    redis = _fake_redis()
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = CHART

    with patch("app.services.market_data.get_redis", AsyncMock(return_value=redis)), \
         patch("app.services.market_data.httpx.AsyncClient") as MockClient:
        client = _fake_client(response)
        MockClient.return_value = client
        quote = await market_data.get_quote("ETH")

    assert quote["symbol"] == "ETH"
    assert quote["price"] == 110.0
    assert client.get.await_args.args[0].endswith("/v8/finance/chart/ETH-USD")
    key, payload = redis.set.await_args.args
    assert key == "market:ETH:quote"
    assert json.loads(payload)["price"] == 110.0


@pytest.mark.asyncio
async def test_upstream_error_returns_none():
    redis = _fake_redis()
    with patch("app.services.market_data.get_redis", AsyncMock(return_value=redis)), \
         patch("app.services.market_data.httpx.AsyncClient") as MockClient:
        MockClient.return_value = _fake_client(error=httpx.ConnectError("down"))
        assert await market_data.get_quote("AAPL") is None
    redis.set.assert_not_awaited()


@pytest.mark.asyncio
async def test_non_200_returns_none():
    redis = _fake_redis()
    response = MagicMock()
    response.status_code = 404
    with patch("app.services.market_data.get_redis", AsyncMock(return_value=redis)), \
         patch("app.services.market_data.httpx.AsyncClient") as MockClient:
        MockClient.return_value = _fake_client(response)
        assert await market_data.get_quote("NOPE") is None


@pytest.mark.asyncio
async def test_get_quotes_dedupes():
    with patch("app.services.market_data.get_quote", AsyncMock(return_value={"price": 1})) as get_quote:
        quotes = await market_data.get_quotes(["btc", " BTC ", "aapl", ""])
    assert set(quotes) == {"BTC", "AAPL"}
    assert get_quote.await_count == 2


@pytest.mark.asyncio
async def test_quote_endpoint_404_when_unavailable(client):
    with patch("app.routers.market.get_quote", AsyncMock(return_value=None)):
        resp = await client.get("/api/market/XYZ/quote")
    assert resp.status_code == 404

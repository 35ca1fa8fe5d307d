"""
market_data.py
- Quote lookup for UI-adjacent reads (portfolio valuation, trade screens)
- Quotes are cached in Redis and fetched over HTTP on a miss

Nothing here is ever called inside a ledger transaction: a stale or missing
quote can only change what a caller decides to submit as a price.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

import httpx

from app.config import settings
from app.core.redis import get_redis
from app.services.portfolio import CRYPTO_SYMBOLS

logger = logging.getLogger(__name__)


def quote_key(symbol: str) -> str:
    return f"market:{symbol}:quote"


def to_upstream_symbol(symbol: str) -> str:
    # Crypto is quoted against USD upstream; equities go through unchanged.
    if CRYPTO_SYMBOLS.match(symbol):
        return f"{symbol}-USD"
    return symbol


def parse_chart(symbol: str, data: dict) -> Optional[dict]:
    result = ((data or {}).get("chart") or {}).get("result") or []
    if not result:
        return None
    meta = result[0].get("meta") or {}
    price = meta.get("regularMarketPrice")
    if not price:
        return None
    previous = meta.get("previousClose") or price
    change = price - previous
    change_pct = (change / previous * 100) if previous else 0.0
    return {
        "symbol": symbol,
        "price": round(float(price), 2),
        "change": round(float(change), 2),
        "change_pct": round(float(change_pct), 2),
        "currency": meta.get("currency") or "USD",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


async def fetch_quote(symbol: str) -> Optional[dict]:
    upstream = to_upstream_symbol(symbol)
    async with httpx.AsyncClient(timeout=10.0) as client:
        r = await client.get(
            f"{settings.QUOTE_BASE_URL}/v8/finance/chart/{upstream}",
            headers={"User-Agent": "Mozilla/5.0"},
        )
    if r.status_code != 200:
        logger.warning("Quote fetch for %s failed with HTTP %s", symbol, r.status_code)
        return None
    return parse_chart(symbol, r.json())


async def get_quote(symbol: str) -> Optional[dict]:
    """Cached quote for ``symbol`` or ``None`` when no source has one."""
    symbol = symbol.strip().upper()
    redis = await get_redis()
    cached = await redis.get(quote_key(symbol))
    if cached:
        return json.loads(cached)

    try:
        quote = await fetch_quote(symbol)
    except httpx.HTTPError as e:
        logger.warning("Quote fetch for %s failed: %s", symbol, e)
        return None
    if quote is None:
        return None

    await redis.set(quote_key(symbol), json.dumps(quote), ex=settings.QUOTE_CACHE_TTL_SEC)
    return quote


async def get_quotes(symbols: Iterable[str]) -> Dict[str, Optional[dict]]:
    result = {}
    for symbol in symbols:
        symbol = symbol.strip().upper()
        if symbol and symbol not in result:
            result[symbol] = await get_quote(symbol)
    return result

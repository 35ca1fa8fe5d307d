from fastapi import APIRouter, HTTPException, Query
from app.services.market_data import get_quote, get_quotes

router = APIRouter(prefix="/api/market", tags=["market"])

@router.get("/quotes")
async def batch_quotes(symbols: str = Query(..., description="Comma-separated symbols")):
    wanted = [s for s in symbols.split(",") if s.strip()]
    if not wanted:
        raise HTTPException(400, "At least one symbol is required")
    return {"quotes": await get_quotes(wanted)}

@router.get("/{symbol}/quote")
async def quote(symbol: str):
    data = await get_quote(symbol)
    if not data:
        raise HTTPException(404, "Quote not available")
    return data

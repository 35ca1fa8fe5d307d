from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.core.deps import get_current_user
from app.models.user import User
from app.schemas.trade import OpenTradeRequest
from app.services.trades import open_trade, close_trade_self, list_trades
from app.routers.serializers import trade_dict

router = APIRouter(prefix="/api/trades", tags=["trades"])


@router.get("")
async def my_trades(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return {"trades": [trade_dict(t) for t in await list_trades(db, user.id)]}


@router.post("")
async def start_trade(
    body: OpenTradeRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    trade = await open_trade(db, user.id, body.amount, body.currency.value)
    return {"trade": trade_dict(trade)}


@router.patch("/{trade_id}")
async def close_trade(
    trade_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Self-close: the principal comes back, profit is always 0."""
    trade = await close_trade_self(db, user.id, trade_id)
    return {"trade": trade_dict(trade)}

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.core.deps import get_current_user
from app.models.user import User
from app.schemas.portfolio import BuyRequest, SellRequest
from app.services import portfolio
from app.routers.serializers import position_dict, transaction_dict

router = APIRouter(prefix="/api", tags=["portfolio"])


@router.get("/portfolio")
async def get_portfolio(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return {"portfolio": [position_dict(p) for p in await portfolio.list_positions(db, user.id)]}


@router.post("/portfolio/buy")
async def buy(
    body: BuyRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    tx = await portfolio.buy(
        db, user.id, body.symbol, body.asset_type, body.quantity, body.price, body.currency.value
    )
    return {"transaction_id": tx.id}


@router.post("/portfolio/sell")
async def sell(
    body: SellRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    tx = await portfolio.sell(db, user.id, body.symbol, body.quantity, body.price, body.currency.value)
    return {"transaction_id": tx.id}


@router.get("/transactions")
async def get_transactions(
    limit: int = Query(100, ge=1, le=500),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rows = await portfolio.list_transactions(db, user.id, limit=limit)
    return {"transactions": [transaction_dict(t) for t in rows]}

from decimal import Decimal
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.core.deps import require_admin
from app.models.user import User
from app.models.transfer import TransferStatus
from app.schemas.balance import SetBalanceRequest
from app.schemas.portfolio import SetPositionRequest
from app.schemas.transfer import AdminTransferCreateRequest, SettleTransferRequest
from app.schemas.trade import AdminCloseTradeRequest
from app.schemas.user import CreateUserRequest
from app.services import ledger, portfolio, transfers, trades
from app.routers.serializers import balance_dict, position_dict, transfer_dict, trade_dict

router = APIRouter(prefix="/api/admin", tags=["admin"])


# ── Accounts & balances ────────────────────────────────────────────

@router.post("/users", status_code=201)
async def create_user(
    body: CreateUserRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await ledger.create_account(db, body.email, body.role)
    return {"id": user.id, "email": user.email, "role": user.role.value}


@router.put("/users/{user_id}/balance")
async def set_user_balance(
    user_id: int,
    body: SetBalanceRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    balance = await ledger.set_balance(db, user_id, body.currency.value, body.amount)
    return {"balance": balance_dict(balance)}


# ── Portfolio overrides ────────────────────────────────────────────

@router.get("/portfolio/{user_id}")
async def user_portfolio(
    user_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return {"portfolio": [position_dict(p) for p in await portfolio.list_positions(db, user_id)]}


@router.put("/portfolio/{user_id}")
async def set_user_position(
    user_id: int,
    body: SetPositionRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    position = await portfolio.set_position(
        db,
        user_id,
        body.symbol,
        body.quantity,
        body.average_buy_price,
        asset_type=body.asset_type,
        currency=body.currency.value if body.currency else None,
    )
    if position is None:
        return {"message": "Asset removed from portfolio", "symbol": body.symbol.strip().upper()}
    return {"position": position_dict(position)}


@router.delete("/portfolio/{user_id}")
async def remove_user_position(
    user_id: int,
    symbol: str = Query(..., min_length=1, max_length=20),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await portfolio.set_position(db, user_id, symbol, Decimal("0"), Decimal("0"))
    return {"message": "Asset removed from portfolio", "symbol": portfolio.normalize_symbol(symbol)}


# ── Transfer settlement ────────────────────────────────────────────

@router.get("/transfers")
async def list_transfers(
    status: str = "all",
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    wanted: Optional[TransferStatus] = None
    if status != "all":
        try:
            wanted = TransferStatus(status.upper())
        except ValueError:
            raise HTTPException(400, f"Unknown status: {status}")
    rows = await transfers.list_all_transfers(db, status=wanted)
    return {"transfers": [transfer_dict(t) for t in rows]}


@router.post("/transfers", status_code=201)
async def record_transfer(
    body: AdminTransferCreateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Record an externally settled transfer. Balances are not touched."""
    payload = body.model_dump(exclude={"user_id", "status", "created_at"})
    transfer = await transfers.admin_create_transfer(
        db, body.user_id, payload, body.status, created_at=body.created_at
    )
    return {"transfer": transfer_dict(transfer)}


@router.patch("/transfers/{transfer_id}")
async def settle_transfer(
    transfer_id: int,
    body: SettleTransferRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    transfer = await transfers.settle_transfer(db, transfer_id, body.status)
    return {"transfer": transfer_dict(transfer)}


# ── Trade settlement ───────────────────────────────────────────────

@router.get("/trades")
async def list_trades(
    limit: int = Query(100, ge=1, le=500),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return {"trades": [trade_dict(t) for t in await trades.list_all_trades(db, limit=limit)]}


@router.patch("/trades/{trade_id}")
async def close_trade(
    trade_id: int,
    body: AdminCloseTradeRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    trade = await trades.close_trade_admin(
        db, trade_id, body.profit, trading_pair=body.trading_pair, comment=body.admin_comment
    )
    return {"trade": trade_dict(trade)}

"""
Single-slot speculative trade per user.

ACTIVE -> CLOSED_BY_USER | CLOSED_BY_ADMIN, both terminal. The principal is
escrowed implicitly: it is debited from the Balance on open and lives only
on the Trade row until close.
"""
import logging
from decimal import Decimal, ROUND_HALF_EVEN
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import AlreadyClosed, ConflictingActiveTrade, NotFound, NotOwner, ValidationError
from app.database import utcnow
from app.models.trade import Trade, TradeStatus
from app.services.ledger import (
    credit, debit, ledger_transaction, require_amount, require_currency, require_positive, to_amount,
)

logger = logging.getLogger(__name__)

PERCENT_QUANT = Decimal("0.01")
# Numeric(12, 2)
PERCENT_LIMIT = Decimal("1e10")


def profit_percent(principal: Decimal, profit: Decimal) -> Decimal:
    return (profit / principal * 100).quantize(PERCENT_QUANT, rounding=ROUND_HALF_EVEN)


async def get_active_trade(db: AsyncSession, user_id: int, lock: bool = False) -> Optional[Trade]:
    stmt = select(Trade).where(Trade.user_id == user_id, Trade.status == TradeStatus.ACTIVE)
    if lock:
        stmt = stmt.with_for_update()
    return await db.scalar(stmt)


async def _load_locked(db: AsyncSession, trade_id: int) -> Optional[Trade]:
    return await db.scalar(
        select(Trade)
        .where(Trade.id == trade_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )


async def open_trade(db: AsyncSession, user_id: int, amount: Decimal, currency: str) -> Trade:
    currency = require_currency(currency)
    amount = require_positive("Amount", amount)

    async with ledger_transaction(db, user_id):
        if await get_active_trade(db, user_id, lock=True):
            raise ConflictingActiveTrade("You already have an active trade")
        await debit(db, user_id, currency, amount)
        trade = Trade(user_id=user_id, amount=amount, currency=currency, status=TradeStatus.ACTIVE)
        db.add(trade)
        try:
            await db.flush()
        except IntegrityError:
            # Another process won the race on the partial unique index.
            raise ConflictingActiveTrade("You already have an active trade")

    logger.info("User %s opened trade %s with %s %s", user_id, trade.id, amount, currency)
    return trade


async def close_trade_self(db: AsyncSession, user_id: int, trade_id: int) -> Trade:
    """Owner closes the trade and gets exactly the principal back, never a profit."""
    trade = await db.get(Trade, trade_id)
    if trade is None:
        raise NotFound(f"Trade {trade_id} not found")
    if trade.user_id != user_id:
        raise NotOwner("This trade belongs to another user")

    async with ledger_transaction(db, user_id):
        trade = await _load_locked(db, trade_id)
        if trade.status != TradeStatus.ACTIVE:
            raise AlreadyClosed(f"Trade {trade_id} is already closed")

        await credit(db, user_id, trade.currency, Decimal(trade.amount))
        trade.status = TradeStatus.CLOSED_BY_USER
        trade.profit = Decimal("0")
        trade.profit_percent = Decimal("0")
        trade.closed_at = utcnow()

    logger.info("User %s closed trade %s, returned %s %s", user_id, trade_id, trade.amount, trade.currency)
    return trade


async def close_trade_admin(
    db: AsyncSession,
    trade_id: int,
    profit_amount: Decimal,
    trading_pair: Optional[str] = None,
    comment: Optional[str] = None,
) -> Trade:
    """Admin closes the trade and credits principal + profit (profit may be negative)."""
    profit = require_amount("Profit", profit_amount)

    trade = await db.get(Trade, trade_id)
    if trade is None:
        raise NotFound(f"Trade {trade_id} not found")

    async with ledger_transaction(db, trade.user_id):
        trade = await _load_locked(db, trade_id)
        if trade.status != TradeStatus.ACTIVE:
            raise AlreadyClosed(f"Trade {trade_id} is already closed")

        principal = Decimal(trade.amount)
        if profit < -principal:
            raise ValidationError(
                "Loss cannot exceed the trade principal",
                details={"principal": str(principal), "profit": str(profit)},
            )
        percent = profit_percent(principal, profit)
        if abs(percent) >= PERCENT_LIMIT:
            raise ValidationError(
                "Profit is out of range for this principal",
                details={"principal": str(principal), "profit": str(profit)},
            )
        total_return = to_amount(principal + profit)

        await credit(db, trade.user_id, trade.currency, total_return)
        trade.status = TradeStatus.CLOSED_BY_ADMIN
        trade.profit = profit
        trade.profit_percent = percent
        trade.trading_pair = trading_pair or None
        trade.admin_comment = comment or None
        trade.closed_at = utcnow()

    logger.info(
        "Admin closed trade %s for user %s: profit %s (%s%%), returned %s %s",
        trade_id, trade.user_id, profit, trade.profit_percent, total_return, trade.currency,
    )
    return trade


async def list_trades(db: AsyncSession, user_id: int, limit: int = 50) -> List[Trade]:
    rows = await db.scalars(
        select(Trade)
        .where(Trade.user_id == user_id)
        .order_by(Trade.created_at.desc(), Trade.id.desc())
        .limit(limit)
    )
    return list(rows)


async def list_all_trades(db: AsyncSession, limit: int = 100) -> List[Trade]:
    rows = await db.scalars(select(Trade).order_by(Trade.created_at.desc(), Trade.id.desc()).limit(limit))
    return list(rows)

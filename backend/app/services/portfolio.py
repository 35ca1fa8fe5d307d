import logging
import re
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import InsufficientAssets, ValidationError
from app.models.portfolio import PortfolioPosition, AssetType
from app.models.transaction import Transaction, TransactionType
from app.services.ledger import (
    credit, debit, ledger_transaction, require_amount, require_currency, require_positive, require_user, to_amount,
)

logger = logging.getLogger(__name__)

# Symbols that an admin override files under CRYPTO when no asset type is given.
CRYPTO_SYMBOLS = re.compile(
    r"^(BTC|ETH|USDC|LTC|XRP|ADA|BNB|SOL|DOGE|XMR|LINK|SHIB|AVAX|XLM|NEAR|DOT)$"
)


def normalize_symbol(symbol: str) -> str:
    symbol = (symbol or "").strip().upper()
    if not symbol:
        raise ValidationError("Symbol is required")
    return symbol


def guess_asset_type(symbol: str) -> AssetType:
    return AssetType.CRYPTO if CRYPTO_SYMBOLS.match(symbol) else AssetType.STOCK


def weighted_average(old_qty: Decimal, old_avg: Decimal, qty: Decimal, price: Decimal) -> Decimal:
    """Average cost after adding ``qty`` at ``price`` to an existing lot."""
    new_qty = old_qty + qty
    return to_amount((old_qty * old_avg + qty * price) / new_qty)


async def get_position(db: AsyncSession, user_id: int, symbol: str, lock: bool = False) -> Optional[PortfolioPosition]:
    stmt = select(PortfolioPosition).where(
        PortfolioPosition.user_id == user_id,
        PortfolioPosition.symbol == symbol,
    )
    if lock:
        stmt = stmt.with_for_update()
    stmt = stmt.execution_options(populate_existing=True)
    return await db.scalar(stmt)


async def list_positions(db: AsyncSession, user_id: int) -> List[PortfolioPosition]:
    rows = await db.scalars(
        select(PortfolioPosition)
        .where(PortfolioPosition.user_id == user_id)
        .order_by(PortfolioPosition.symbol)
    )
    return list(rows)


async def list_transactions(db: AsyncSession, user_id: int, limit: int = 100) -> List[Transaction]:
    rows = await db.scalars(
        select(Transaction)
        .where(Transaction.user_id == user_id)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .limit(limit)
    )
    return list(rows)


async def buy(
    db: AsyncSession,
    user_id: int,
    symbol: str,
    asset_type: AssetType,
    quantity: Decimal,
    price: Decimal,
    currency: str,
) -> Transaction:
    """Debit cash and add ``quantity`` to the position at weighted-average cost."""
    symbol = normalize_symbol(symbol)
    asset_type = AssetType(asset_type)
    currency = require_currency(currency)
    quantity = require_positive("Quantity", quantity)
    price = require_positive("Price", price)
    total = require_amount("Total", quantity * price)

    async with ledger_transaction(db, user_id):
        await debit(db, user_id, currency, total)

        position = await get_position(db, user_id, symbol, lock=True)
        if position:
            old_qty = Decimal(position.quantity)
            position.average_buy_price = weighted_average(
                old_qty, Decimal(position.average_buy_price), quantity, price
            )
            position.quantity = require_amount("Quantity", old_qty + quantity)
        else:
            db.add(PortfolioPosition(
                user_id=user_id,
                symbol=symbol,
                asset_type=asset_type,
                quantity=quantity,
                average_buy_price=price,
                currency=currency,
            ))

        tx = Transaction(
            user_id=user_id,
            type=TransactionType.BUY,
            symbol=symbol,
            asset_type=asset_type,
            quantity=quantity,
            price=price,
            total_amount=total,
            currency=currency,
        )
        db.add(tx)
        await db.flush()

    logger.info("User %s bought %s %s @ %s %s (tx %s)", user_id, quantity, symbol, price, currency, tx.id)
    return tx


async def sell(
    db: AsyncSession,
    user_id: int,
    symbol: str,
    quantity: Decimal,
    price: Decimal,
    currency: str,
) -> Transaction:
    """Reduce the position and credit the proceeds in the caller's ``currency``.

    The average buy price is left untouched; a position sold down to exactly
    zero is deleted so a later buy starts a fresh cost basis.
    """
    symbol = normalize_symbol(symbol)
    currency = require_currency(currency)
    quantity = require_positive("Quantity", quantity)
    price = require_positive("Price", price)
    total = require_amount("Total", quantity * price)

    async with ledger_transaction(db, user_id):
        position = await get_position(db, user_id, symbol, lock=True)
        held = Decimal(position.quantity) if position else Decimal("0")
        if position is None or held < quantity:
            raise InsufficientAssets(
                f"Not enough {symbol} to sell",
                details={"symbol": symbol, "available": str(held), "requested": str(quantity)},
            )

        remaining = to_amount(held - quantity)
        asset_type = position.asset_type
        if remaining == 0:
            await db.delete(position)
        else:
            position.quantity = remaining

        await credit(db, user_id, currency, total)

        tx = Transaction(
            user_id=user_id,
            type=TransactionType.SELL,
            symbol=symbol,
            asset_type=asset_type,
            quantity=quantity,
            price=price,
            total_amount=total,
            currency=currency,
        )
        db.add(tx)
        await db.flush()

    logger.info("User %s sold %s %s @ %s %s (tx %s)", user_id, quantity, symbol, price, currency, tx.id)
    return tx


async def set_position(
    db: AsyncSession,
    user_id: int,
    symbol: str,
    quantity: Decimal,
    average_buy_price: Decimal,
    asset_type: Optional[AssetType] = None,
    currency: Optional[str] = None,
) -> Optional[PortfolioPosition]:
    """Administrative override of a position. Quantity 0 removes it.

    Returns the position, or ``None`` when it was removed.
    """
    symbol = normalize_symbol(symbol)
    quantity = require_amount("Quantity", quantity)
    average_buy_price = require_amount("Average buy price", average_buy_price)
    if quantity < 0 or average_buy_price < 0:
        raise ValidationError("Quantity and price must not be negative")
    if currency is not None:
        currency = require_currency(currency)
    await require_user(db, user_id)

    async with ledger_transaction(db, user_id):
        position = await get_position(db, user_id, symbol, lock=True)
        if quantity == 0:
            if position:
                await db.delete(position)
            position = None
        elif position:
            position.quantity = quantity
            position.average_buy_price = average_buy_price
            if asset_type is not None:
                position.asset_type = AssetType(asset_type)
            if currency is not None:
                position.currency = currency
        else:
            position = PortfolioPosition(
                user_id=user_id,
                symbol=symbol,
                asset_type=AssetType(asset_type) if asset_type else guess_asset_type(symbol),
                quantity=quantity,
                average_buy_price=average_buy_price,
                currency=currency,
            )
            db.add(position)

    if position is None:
        logger.info("Admin removed %s from user %s", symbol, user_id)
    else:
        logger.info("Admin set %s for user %s: %s @ %s", symbol, user_id, quantity, average_buy_price)
    return position

"""
Balance ledger: per-user, per-currency cash amounts.

Every money movement in the system goes through ``debit`` / ``credit`` here,
always inside a ``ledger_transaction`` opened by the calling operation so the
balance change and its sibling rows (position, trade, transfer) commit
together or not at all.
"""
import logging
from contextlib import asynccontextmanager
from decimal import Decimal, InvalidOperation, ROUND_HALF_EVEN
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import InsufficientFunds, NotFound, ValidationError
from app.core.locks import user_lock
from app.models.balance import AMOUNT_LIMIT, Balance, Currency, SEED_CURRENCIES
from app.models.user import User, UserRole

logger = logging.getLogger(__name__)

AMOUNT_QUANT = Decimal("0.00000001")
SUPPORTED_CURRENCIES = frozenset(c.value for c in Currency)


def to_amount(value) -> Decimal:
    """Coerce to Decimal and quantize to the ledger's 8 decimal places."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(AMOUNT_QUANT, rounding=ROUND_HALF_EVEN)


def require_currency(currency: str) -> str:
    code = str(getattr(currency, "value", currency)).upper()
    if code not in SUPPORTED_CURRENCIES:
        raise ValidationError(f"Unsupported currency: {currency}")
    return code


def require_amount(name: str, value) -> Decimal:
    """Quantize ``value`` and check it fits a ledger column (sign not checked)."""
    try:
        value = to_amount(value)
    except InvalidOperation:
        raise ValidationError(f"{name} must be a number below {AMOUNT_LIMIT:f}")
    if not value.is_finite():
        raise ValidationError(f"{name} must be a number")
    if abs(value) >= AMOUNT_LIMIT:
        raise ValidationError(
            f"{name} must be below {AMOUNT_LIMIT:f}",
            details={"limit": str(AMOUNT_LIMIT), "value": str(value)},
        )
    return value


def require_positive(name: str, value: Decimal) -> Decimal:
    value = require_amount(name, value)
    if value <= 0:
        raise ValidationError(f"{name} must be greater than 0")
    return value


@asynccontextmanager
async def ledger_transaction(db: AsyncSession, user_id: int):
    """One atomic unit of ledger work for ``user_id``.

    Holds the user's lock for the whole read-modify-write, commits once on
    success and rolls back on any exception before re-raising it.
    """
    async with user_lock(user_id):
        try:
            yield
            await db.commit()
        except Exception:
            await db.rollback()
            raise


async def get_balance_row(db: AsyncSession, user_id: int, currency: str, lock: bool = False) -> Optional[Balance]:
    stmt = select(Balance).where(Balance.user_id == user_id, Balance.currency == currency)
    if lock:
        stmt = stmt.with_for_update()
    stmt = stmt.execution_options(populate_existing=True)
    return await db.scalar(stmt)


async def get_balance(db: AsyncSession, user_id: int, currency: str) -> Decimal:
    row = await get_balance_row(db, user_id, require_currency(currency))
    return Decimal(row.amount) if row else Decimal("0")


async def list_balances(db: AsyncSession, user_id: int) -> List[Balance]:
    rows = await db.scalars(
        select(Balance).where(Balance.user_id == user_id).order_by(Balance.currency)
    )
    return list(rows)


async def debit(db: AsyncSession, user_id: int, currency: str, amount: Decimal) -> Balance:
    """Remove ``amount`` from the balance; fails if the balance would go negative."""
    currency = require_currency(currency)
    amount = require_amount("Amount", amount)
    row = await get_balance_row(db, user_id, currency, lock=True)
    available = Decimal(row.amount) if row else Decimal("0")
    if row is None or available < amount:
        raise InsufficientFunds(
            f"Insufficient {currency} balance",
            details={"currency": currency, "available": str(available), "requested": str(amount)},
        )
    row.amount = to_amount(available - amount)
    return row


async def credit(db: AsyncSession, user_id: int, currency: str, amount: Decimal) -> Balance:
    """Add ``amount`` to the balance, creating the row on first credit."""
    currency = require_currency(currency)
    amount = require_amount("Amount", amount)
    row = await get_balance_row(db, user_id, currency, lock=True)
    if row is None:
        row = Balance(user_id=user_id, currency=currency, amount=amount)
        db.add(row)
    else:
        row.amount = require_amount(f"{currency} balance", Decimal(row.amount) + amount)
    return row


async def seed_balances(db: AsyncSession, user_id: int) -> None:
    for currency in SEED_CURRENCIES:
        db.add(Balance(user_id=user_id, currency=currency.value, amount=Decimal("0")))


async def create_account(db: AsyncSession, email: str, role: UserRole = UserRole.USER) -> User:
    """Create a user together with its zero seed balances."""
    existing = await db.scalar(select(User).where(User.email == email))
    if existing:
        raise ValidationError(f"User {email} already exists")
    user = User(email=email, role=role)
    db.add(user)
    try:
        await db.flush()
        await seed_balances(db, user.id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await db.refresh(user)
    logger.info("Created account %s (%s) with seed balances", user.id, role.value)
    return user


async def require_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFound(f"User {user_id} not found")
    return user


async def set_balance(db: AsyncSession, user_id: int, currency: str, amount: Decimal) -> Balance:
    """Administrative override: write ``amount`` as the new balance.

    Skips the sufficient-funds check on purpose; only non-negativity holds.
    """
    currency = require_currency(currency)
    amount = require_amount("Amount", amount)
    if amount < 0:
        raise ValidationError("Amount cannot be negative")
    await require_user(db, user_id)

    async with ledger_transaction(db, user_id):
        row = await get_balance_row(db, user_id, currency, lock=True)
        if row is None:
            row = Balance(user_id=user_id, currency=currency, amount=amount)
            db.add(row)
        else:
            row.amount = amount

    logger.info("Admin set %s balance of user %s to %s", currency, user_id, amount)
    return row

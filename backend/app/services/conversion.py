import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ValidationError
from app.services.ledger import credit, debit, ledger_transaction, require_amount, require_currency, require_positive

logger = logging.getLogger(__name__)

# Static bidirectional rate table, including the USDC stablecoin.
EXCHANGE_RATES = {
    "EUR": {"USD": Decimal("1.09"), "GBP": Decimal("0.86"), "CHF": Decimal("0.95"), "USDC": Decimal("1.09")},
    "USD": {"EUR": Decimal("0.92"), "GBP": Decimal("0.79"), "CHF": Decimal("0.87"), "USDC": Decimal("1.00")},
    "GBP": {"EUR": Decimal("1.17"), "USD": Decimal("1.27"), "CHF": Decimal("1.10"), "USDC": Decimal("1.27")},
    "CHF": {"EUR": Decimal("1.05"), "USD": Decimal("1.15"), "GBP": Decimal("0.91"), "USDC": Decimal("1.15")},
    "USDC": {"EUR": Decimal("0.92"), "USD": Decimal("1.00"), "GBP": Decimal("0.79"), "CHF": Decimal("0.87")},
}


def get_rate(from_currency: str, to_currency: str) -> Decimal:
    rate = EXCHANGE_RATES.get(from_currency, {}).get(to_currency)
    if rate is None:
        # A gap in the table is a data bug; 1:1 keeps the conversion going.
        logger.warning("No exchange rate for %s->%s, falling back to 1", from_currency, to_currency)
        return Decimal("1")
    return rate


async def convert(db: AsyncSession, user_id: int, from_currency: str, to_currency: str, amount: Decimal) -> dict:
    """Move ``amount`` of ``from_currency`` into ``to_currency`` at the table rate.

    Conversions write no Transaction row; only buys and sells appear in history.
    """
    from_currency = require_currency(from_currency)
    to_currency = require_currency(to_currency)
    if from_currency == to_currency:
        raise ValidationError("Choose two different currencies")
    amount = require_positive("Amount", amount)

    rate = get_rate(from_currency, to_currency)
    converted = require_amount("Converted amount", amount * rate)

    async with ledger_transaction(db, user_id):
        await debit(db, user_id, from_currency, amount)
        await credit(db, user_id, to_currency, converted)

    logger.info("User %s converted %s %s -> %s %s @ %s", user_id, amount, from_currency, converted, to_currency, rate)
    return {"from_amount": amount, "to_amount": converted, "rate": rate}

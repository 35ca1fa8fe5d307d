import pytest
from decimal import Decimal
from app.core.errors import AlreadyClosed, ConflictingActiveTrade, InsufficientFunds, NotFound, NotOwner, ValidationError
from app.models.trade import TradeStatus
from app.services import ledger, trades


@pytest.mark.asyncio
async def test_open_debits_principal(db, make_user):
    user = await make_user(EUR=500)
    trade = await trades.open_trade(db, user.id, Decimal("100"), "EUR")
    assert trade.status == TradeStatus.ACTIVE
    assert await ledger.get_balance(db, user.id, "EUR") == Decimal("400")
    active = await trades.get_active_trade(db, user.id)
    assert active.id == trade.id


@pytest.mark.asyncio
async def test_second_active_trade_rejected(db, make_user):
    user = await make_user(EUR=500)
    await trades.open_trade(db, user.id, Decimal("100"), "EUR")
    with pytest.raises(ConflictingActiveTrade):
        await trades.open_trade(db, user.id, Decimal("50"), "USD")
    assert await ledger.get_balance(db, user.id, "EUR") == Decimal("400")


@pytest.mark.asyncio
async def test_open_without_funds(db, make_user):
    user = await make_user(EUR=10)
    with pytest.raises(InsufficientFunds):
        await trades.open_trade(db, user.id, Decimal("100"), "EUR")
    assert await trades.get_active_trade(db, user.id) is None


@pytest.mark.asyncio
async def test_self_close_returns_principal_only(db, make_user):
    user = await make_user(EUR=100)
    trade = await trades.open_trade(db, user.id, Decimal("100"), "EUR")
    assert await ledger.get_balance(db, user.id, "EUR") == Decimal("0")

    closed = await trades.close_trade_self(db, user.id, trade.id)
    assert closed.status == TradeStatus.CLOSED_BY_USER
    assert Decimal(closed.profit) == 0
    assert Decimal(closed.profit_percent) == 0
    assert closed.closed_at is not None
    assert await ledger.get_balance(db, user.id, "EUR") == Decimal("100")

    # A new trade may be opened once the slot is free.
    await trades.open_trade(db, user.id, Decimal("40"), "EUR")


@pytest.mark.asyncio
async def test_self_close_guards(db, make_user):
    owner = await make_user(EUR=100)
    other = await make_user()
    trade = await trades.open_trade(db, owner.id, Decimal("100"), "EUR")

    with pytest.raises(NotOwner):
        await trades.close_trade_self(db, other.id, trade.id)
    with pytest.raises(NotFound):
        await trades.close_trade_self(db, owner.id, 9999)

    await trades.close_trade_self(db, owner.id, trade.id)
    with pytest.raises(AlreadyClosed):
        await trades.close_trade_self(db, owner.id, trade.id)
    assert await ledger.get_balance(db, owner.id, "EUR") == Decimal("100")


@pytest.mark.asyncio
async def test_admin_close_with_profit(db, make_user):
    user = await make_user(EUR=100)
    trade = await trades.open_trade(db, user.id, Decimal("100"), "EUR")

    closed = await trades.close_trade_admin(db, trade.id, Decimal("25"), trading_pair="BTC/EUR", comment="good run")
    assert closed.status == TradeStatus.CLOSED_BY_ADMIN
    assert Decimal(closed.profit) == Decimal("25")
    assert Decimal(closed.profit_percent) == Decimal("25.00")
    assert closed.trading_pair == "BTC/EUR"
    assert await ledger.get_balance(db, user.id, "EUR") == Decimal("125")

    with pytest.raises(AlreadyClosed):
        await trades.close_trade_admin(db, trade.id, Decimal("1"))
    assert await ledger.get_balance(db, user.id, "EUR") == Decimal("125")


@pytest.mark.asyncio
async def test_admin_close_with_loss(db, make_user):
    user = await make_user(USD=200)
    trade = await trades.open_trade(db, user.id, Decimal("200"), "USD")
    closed = await trades.close_trade_admin(db, trade.id, Decimal("-50"))
    assert Decimal(closed.profit_percent) == Decimal("-25.00")
    assert await ledger.get_balance(db, user.id, "USD") == Decimal("150")


@pytest.mark.asyncio
async def test_admin_close_loss_cannot_exceed_principal(db, make_user):
    user = await make_user(USD=200)
    trade = await trades.open_trade(db, user.id, Decimal("200"), "USD")
    with pytest.raises(ValidationError):
        await trades.close_trade_admin(db, trade.id, Decimal("-200.01"))
    active = await trades.get_active_trade(db, user.id)
    assert active.id == trade.id

    await trades.close_trade_admin(db, trade.id, Decimal("-200"))
    assert await ledger.get_balance(db, user.id, "USD") == Decimal("0")


@pytest.mark.asyncio
async def test_admin_close_rejects_non_numeric_profit(db, make_user):
    user = await make_user(USD=10)
    trade = await trades.open_trade(db, user.id, Decimal("10"), "USD")
    with pytest.raises(ValidationError):
        await trades.close_trade_admin(db, trade.id, "lots")
    with pytest.raises(NotFound):
        await trades.close_trade_admin(db, 9999, Decimal("0"))


def test_profit_percent_rounding():
    assert trades.profit_percent(Decimal("3"), Decimal("1")) == Decimal("33.33")


@pytest.mark.asyncio
async def test_admin_close_profit_percent_out_of_range(db, make_user):
    user = await make_user(EUR=1)
    trade = await trades.open_trade(db, user.id, Decimal("0.00000001"), "EUR")
    with pytest.raises(ValidationError):
        await trades.close_trade_admin(db, trade.id, Decimal("1000000"))
    with pytest.raises(ValidationError):
        await trades.close_trade_admin(db, trade.id, Decimal("1e12"))
    active = await trades.get_active_trade(db, user.id)
    assert active.id == trade.id

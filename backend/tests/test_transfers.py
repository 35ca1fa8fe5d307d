import pytest
from decimal import Decimal
from app.core.errors import AlreadySettled, InsufficientFunds, NotFound, ValidationError
from app.models.transfer import TransferStatus, TransferType
from app.services import ledger, transfers


FIAT = {
    "type": "FIAT",
    "amount": "250",
    "currency": "EUR",
    "recipient": "Jane Doe",
    "iban": "de89 3704 0044 0532 0130 00",
    "purpose": "Rent",
}
CRYPTO = {
    "type": "CRYPTO",
    "amount": "0.5",
    "crypto_address": "bc1qxy2kgdygjrsqtzq2n0yrf2493p83kkfjhx0wlh",
    "crypto_currency": "btc",
}


def test_validate_fiat_builds_draft():
    draft = transfers.validate_transfer(FIAT)
    assert isinstance(draft, transfers.FiatTransfer)
    assert draft.type == TransferType.FIAT
    assert draft.amount == Decimal("250")
    assert draft.iban == "DE89370400440532013000"


def test_validate_crypto_builds_draft():
    draft = transfers.validate_transfer(CRYPTO)
    assert isinstance(draft, transfers.CryptoTransfer)
    assert draft.crypto_currency == "BTC"


@pytest.mark.parametrize("missing", ["currency", "recipient", "iban"])
def test_validate_fiat_requires_fields(missing):
    payload = dict(FIAT)
    payload.pop(missing)
    with pytest.raises(ValidationError):
        transfers.validate_transfer(payload)


@pytest.mark.parametrize("payload", [
    {**CRYPTO, "crypto_address": "  "},
    {**CRYPTO, "amount": "0"},
    {**CRYPTO, "type": "WIRE"},
    {k: v for k, v in CRYPTO.items() if k != "amount"},
])
def test_validate_rejects_bad_payloads(payload):
    with pytest.raises(ValidationError):
        transfers.validate_transfer(payload)


@pytest.mark.asyncio
async def test_fiat_transfer_debits_on_creation(db, make_user):
    user = await make_user(EUR=1000)
    transfer = await transfers.create_transfer(db, user.id, FIAT)
    assert transfer.status == TransferStatus.PENDING
    assert await ledger.get_balance(db, user.id, "EUR") == Decimal("750")


@pytest.mark.asyncio
async def test_fiat_transfer_insufficient_funds_creates_nothing(db, make_user):
    user = await make_user(EUR=100)
    with pytest.raises(InsufficientFunds):
        await transfers.create_transfer(db, user.id, FIAT)
    assert await transfers.list_transfers(db, user.id) == []
    assert await ledger.get_balance(db, user.id, "EUR") == Decimal("100")


@pytest.mark.asyncio
async def test_crypto_transfer_leaves_balances_alone(db, make_user):
    user = await make_user(EUR=10)
    transfer = await transfers.create_transfer(db, user.id, CRYPTO)
    assert transfer.type == TransferType.CRYPTO
    assert transfer.currency is None
    assert await ledger.get_balance(db, user.id, "EUR") == Decimal("10")

    await transfers.settle_transfer(db, transfer.id, TransferStatus.REJECTED)
    assert await ledger.get_balance(db, user.id, "EUR") == Decimal("10")


@pytest.mark.asyncio
async def test_reject_refunds_exactly_once(db, make_user):
    user = await make_user(EUR=1000)
    transfer = await transfers.create_transfer(db, user.id, FIAT)

    settled = await transfers.settle_transfer(db, transfer.id, TransferStatus.REJECTED)
    assert settled.status == TransferStatus.REJECTED
    assert settled.processed_at is not None
    assert await ledger.get_balance(db, user.id, "EUR") == Decimal("1000")

    with pytest.raises(AlreadySettled):
        await transfers.settle_transfer(db, transfer.id, TransferStatus.REJECTED)
    with pytest.raises(AlreadySettled):
        await transfers.settle_transfer(db, transfer.id, TransferStatus.COMPLETED)
    assert await ledger.get_balance(db, user.id, "EUR") == Decimal("1000")


@pytest.mark.asyncio
async def test_complete_keeps_debit(db, make_user):
    user = await make_user(EUR=1000)
    transfer = await transfers.create_transfer(db, user.id, FIAT)
    await transfers.settle_transfer(db, transfer.id, "COMPLETED")
    assert await ledger.get_balance(db, user.id, "EUR") == Decimal("750")


@pytest.mark.asyncio
async def test_settle_validation(db, make_user):
    user = await make_user(EUR=1000)
    transfer = await transfers.create_transfer(db, user.id, FIAT)
    with pytest.raises(ValidationError):
        await transfers.settle_transfer(db, transfer.id, TransferStatus.PENDING)
    with pytest.raises(NotFound):
        await transfers.settle_transfer(db, 9999, TransferStatus.COMPLETED)


@pytest.mark.asyncio
async def test_admin_create_records_without_balance_change(db, make_user):
    user = await make_user(EUR=5)
    transfer = await transfers.admin_create_transfer(db, user.id, FIAT, TransferStatus.COMPLETED)
    assert transfer.status == TransferStatus.COMPLETED
    assert transfer.processed_at is not None
    assert await ledger.get_balance(db, user.id, "EUR") == Decimal("5")

    # Already terminal, so no later refund can happen.
    with pytest.raises(AlreadySettled):
        await transfers.settle_transfer(db, transfer.id, TransferStatus.REJECTED)


@pytest.mark.asyncio
async def test_admin_create_rejects_pending(db, make_user):
    user = await make_user()
    with pytest.raises(ValidationError):
        await transfers.admin_create_transfer(db, user.id, FIAT, TransferStatus.PENDING)
    with pytest.raises(NotFound):
        await transfers.admin_create_transfer(db, 9999, FIAT, TransferStatus.REJECTED)


@pytest.mark.asyncio
async def test_list_all_filters_by_status(db, make_user):
    user = await make_user(EUR=1000)
    first = await transfers.create_transfer(db, user.id, FIAT)
    await transfers.create_transfer(db, user.id, CRYPTO)
    await transfers.settle_transfer(db, first.id, TransferStatus.COMPLETED)

    pending = await transfers.list_all_transfers(db, status=TransferStatus.PENDING)
    assert [t.type for t in pending] == [TransferType.CRYPTO]
    assert len(await transfers.list_all_transfers(db)) == 2


@pytest.mark.parametrize("field, size", [
    ("purpose", 501),
    ("iban", 65),
    ("recipient", 256),
])
def test_validate_rejects_overlong_fiat_fields(field, size):
    with pytest.raises(ValidationError):
        transfers.validate_transfer({**FIAT, field: "A" * size})


def test_validate_rejects_overlong_crypto_fields():
    with pytest.raises(ValidationError):
        transfers.validate_transfer({**CRYPTO, "crypto_address": "x" * 256})
    with pytest.raises(ValidationError):
        transfers.validate_transfer({**CRYPTO, "crypto_currency": "X" * 21})


def test_validate_accepts_fields_at_column_width():
    draft = transfers.validate_transfer({**FIAT, "purpose": "p" * 500})
    assert len(draft.purpose) == 500

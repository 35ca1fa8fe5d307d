"""
Outbound transfer workflow.

FIAT transfers debit the ledger eagerly on creation and are refunded if an
admin rejects them. CRYPTO transfers never touch the ledger: the funds leave
through an external wallet the ledger does not custody, and nothing is
refunded on rejection.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Mapping, Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import AlreadySettled, NotFound, ValidationError
from app.database import utcnow
from app.models.transfer import Transfer, TransferStatus, TransferType
from app.services.ledger import (
    credit, debit, ledger_transaction, require_currency, require_positive, require_user,
)

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = (TransferStatus.COMPLETED, TransferStatus.REJECTED)


@dataclass(frozen=True)
class FiatTransfer:
    amount: Decimal
    currency: str
    recipient: str
    iban: str
    purpose: Optional[str] = None

    type = TransferType.FIAT


@dataclass(frozen=True)
class CryptoTransfer:
    amount: Decimal
    crypto_address: str
    crypto_currency: str

    type = TransferType.CRYPTO


TransferDraft = Union[FiatTransfer, CryptoTransfer]


def _text(payload: Mapping, key: str) -> Optional[str]:
    value = payload.get(key)
    if value is None:
        return None
    value = str(value).strip()
    limit = Transfer.__table__.c[key].type.length
    if len(value) > limit:
        raise ValidationError(f"{key} must be at most {limit} characters")
    return value or None


def validate_transfer(payload: Mapping) -> TransferDraft:
    """Check the type-specific required fields and build a transfer draft.

    Pure: reads nothing from the database and writes nothing.
    """
    raw_type = payload.get("type")
    try:
        transfer_type = TransferType(getattr(raw_type, "value", raw_type))
    except ValueError:
        raise ValidationError("Transfer type must be FIAT or CRYPTO")

    if payload.get("amount") is None:
        raise ValidationError("Amount is required")
    amount = require_positive("Amount", payload["amount"])

    if transfer_type == TransferType.FIAT:
        currency = _text(payload, "currency")
        recipient = _text(payload, "recipient")
        iban = _text(payload, "iban")
        if not currency or not recipient or not iban:
            raise ValidationError("FIAT transfers require currency, recipient and IBAN")
        return FiatTransfer(
            amount=amount,
            currency=require_currency(currency),
            recipient=recipient,
            iban=iban.replace(" ", "").upper(),
            purpose=_text(payload, "purpose"),
        )

    crypto_address = _text(payload, "crypto_address")
    crypto_currency = _text(payload, "crypto_currency")
    if not crypto_address or not crypto_currency:
        raise ValidationError("CRYPTO transfers require address and crypto currency")
    return CryptoTransfer(
        amount=amount,
        crypto_address=crypto_address,
        crypto_currency=crypto_currency.upper(),
    )


def _build(user_id: int, draft: TransferDraft, status: TransferStatus) -> Transfer:
    transfer = Transfer(user_id=user_id, type=draft.type, status=status, amount=draft.amount)
    if isinstance(draft, FiatTransfer):
        transfer.currency = draft.currency
        transfer.recipient = draft.recipient
        transfer.iban = draft.iban
        transfer.purpose = draft.purpose
    else:
        transfer.crypto_address = draft.crypto_address
        transfer.crypto_currency = draft.crypto_currency
    return transfer


async def create_transfer(db: AsyncSession, user_id: int, payload: Mapping) -> Transfer:
    draft = validate_transfer(payload)

    async with ledger_transaction(db, user_id):
        if isinstance(draft, FiatTransfer):
            await debit(db, user_id, draft.currency, draft.amount)
        transfer = _build(user_id, draft, TransferStatus.PENDING)
        db.add(transfer)
        await db.flush()

    logger.info("User %s created %s transfer %s for %s", user_id, draft.type.value, transfer.id, draft.amount)
    return transfer


async def _load_locked(db: AsyncSession, transfer_id: int) -> Optional[Transfer]:
    return await db.scalar(
        select(Transfer)
        .where(Transfer.id == transfer_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )


async def settle_transfer(db: AsyncSession, transfer_id: int, status: TransferStatus) -> Transfer:
    """Move a PENDING transfer to COMPLETED or REJECTED.

    Rejecting a FIAT transfer credits the amount back; this is the only
    automatic refund in the ledger. Terminal transfers cannot be settled again.
    """
    try:
        status = TransferStatus(getattr(status, "value", status))
    except ValueError:
        raise ValidationError(f"Invalid status: {status}")
    if status not in TERMINAL_STATUSES:
        raise ValidationError("Status must be COMPLETED or REJECTED")

    transfer = await db.get(Transfer, transfer_id)
    if transfer is None:
        raise NotFound(f"Transfer {transfer_id} not found")

    async with ledger_transaction(db, transfer.user_id):
        transfer = await _load_locked(db, transfer_id)
        if transfer.status != TransferStatus.PENDING:
            raise AlreadySettled(f"Transfer {transfer_id} is already {transfer.status.value}")

        if status == TransferStatus.REJECTED and transfer.type == TransferType.FIAT and transfer.currency:
            await credit(db, transfer.user_id, transfer.currency, Decimal(transfer.amount))

        transfer.status = status
        transfer.processed_at = utcnow()

    logger.info("Transfer %s settled as %s", transfer_id, status.value)
    return transfer


async def admin_create_transfer(
    db: AsyncSession,
    user_id: int,
    payload: Mapping,
    status: TransferStatus,
    created_at: Optional[datetime] = None,
) -> Transfer:
    """Record an externally settled transfer without touching any balance."""
    try:
        status = TransferStatus(getattr(status, "value", status))
    except ValueError:
        raise ValidationError(f"Invalid status: {status}")
    if status not in TERMINAL_STATUSES:
        # A PENDING row here could later be refunded without ever having been debited.
        raise ValidationError("Directly created transfers must be COMPLETED or REJECTED")
    draft = validate_transfer(payload)
    await require_user(db, user_id)

    async with ledger_transaction(db, user_id):
        transfer = _build(user_id, draft, status)
        transfer.created_at = created_at or utcnow()
        transfer.processed_at = utcnow()
        db.add(transfer)
        await db.flush()

    logger.info("Admin recorded %s transfer %s for user %s", status.value, transfer.id, user_id)
    return transfer


async def list_transfers(db: AsyncSession, user_id: int, limit: int = 100) -> List[Transfer]:
    rows = await db.scalars(
        select(Transfer)
        .where(Transfer.user_id == user_id)
        .order_by(Transfer.created_at.desc(), Transfer.id.desc())
        .limit(limit)
    )
    return list(rows)


async def list_all_transfers(
    db: AsyncSession, status: Optional[TransferStatus] = None, limit: int = 100
) -> List[Transfer]:
    query = select(Transfer)
    if status is not None:
        query = query.where(Transfer.status == status)
    rows = await db.scalars(query.order_by(Transfer.created_at.desc(), Transfer.id.desc()).limit(limit))
    return list(rows)

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field
from app.models.balance import AMOUNT_LIMIT
from app.models.transfer import TransferType, TransferStatus

class TransferCreateRequest(BaseModel):
    # Type-specific required fields are checked by services.transfers.validate_transfer
    type: TransferType
    amount: Decimal = Field(gt=0, lt=AMOUNT_LIMIT)
    currency: Optional[str] = Field(default=None, max_length=10)
    recipient: Optional[str] = Field(default=None, max_length=255)
    iban: Optional[str] = Field(default=None, max_length=64)
    purpose: Optional[str] = Field(default=None, max_length=500)
    crypto_address: Optional[str] = Field(default=None, max_length=255)
    crypto_currency: Optional[str] = Field(default=None, max_length=20)

class SettleTransferRequest(BaseModel):
    status: TransferStatus

class AdminTransferCreateRequest(TransferCreateRequest):
    user_id: int
    status: TransferStatus
    created_at: Optional[datetime] = None

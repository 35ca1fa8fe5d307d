from sqlalchemy import Column, Integer, String, Numeric, DateTime, Enum, ForeignKey
from sqlalchemy.sql import func
import enum
from app.database import Base, utcnow


class TransferType(str, enum.Enum):
    FIAT = "FIAT"
    CRYPTO = "CRYPTO"


class TransferStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"


class Transfer(Base):
    __tablename__ = "transfers"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(Enum(TransferType, name="transfer_type"), nullable=False)
    status = Column(Enum(TransferStatus, name="transfer_status"), nullable=False, default=TransferStatus.PENDING)
    amount = Column(Numeric(precision=20, scale=8), nullable=False)
    # FIAT fields
    currency = Column(String(10), nullable=True)
    recipient = Column(String(255), nullable=True)
    iban = Column(String(64), nullable=True)
    purpose = Column(String(500), nullable=True)
    # CRYPTO fields
    crypto_address = Column(String(255), nullable=True)
    crypto_currency = Column(String(20), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    processed_at = Column(DateTime(timezone=True), nullable=True)

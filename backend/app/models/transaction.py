from sqlalchemy import Column, Integer, String, Numeric, DateTime, Enum, ForeignKey
from sqlalchemy.sql import func
import enum
from app.database import Base, utcnow
from app.models.portfolio import AssetType

class TransactionType(str, enum.Enum):
    BUY = "BUY"
    SELL = "SELL"

class Transaction(Base):
    """Append-only buy/sell history. Rows are never updated or deleted."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(Enum(TransactionType, name="transaction_type"), nullable=False)
    symbol = Column(String(20), nullable=False)
    asset_type = Column(Enum(AssetType, name="asset_type"), nullable=False)
    quantity = Column(Numeric(precision=20, scale=8), nullable=False)
    price = Column(Numeric(precision=20, scale=8), nullable=False)
    total_amount = Column(Numeric(precision=20, scale=8), nullable=False)
    currency = Column(String(10), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

from sqlalchemy import Column, Integer, String, Numeric, DateTime, Enum, ForeignKey, Index, text
from sqlalchemy.sql import func
import enum
from app.database import Base, utcnow

class TradeStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    CLOSED_BY_USER = "CLOSED_BY_USER"
    CLOSED_BY_ADMIN = "CLOSED_BY_ADMIN"

class Trade(Base):
    """Speculative position. ``amount`` is the escrowed principal: it left the
    user's Balance on open and only comes back on close, so balances alone
    understate a user's holdings while a trade is ACTIVE."""

    __tablename__ = "trades"
    __table_args__ = (
        Index(
            "uq_trade_user_active",
            "user_id",
            unique=True,
            postgresql_where=text("status = 'ACTIVE'"),
            sqlite_where=text("status = 'ACTIVE'"),
        ),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(precision=20, scale=8), nullable=False)
    currency = Column(String(10), nullable=False)
    status = Column(Enum(TradeStatus, name="trade_status"), nullable=False, default=TradeStatus.ACTIVE)
    profit = Column(Numeric(precision=20, scale=8), nullable=True)
    profit_percent = Column(Numeric(precision=12, scale=2), nullable=True)
    trading_pair = Column(String(20), nullable=True)
    admin_comment = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    closed_at = Column(DateTime(timezone=True), nullable=True)

from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
import enum
from decimal import Decimal
from app.database import Base

class Currency(str, enum.Enum):
    EUR = "EUR"
    USD = "USD"
    GBP = "GBP"
    CHF = "CHF"
    USDC = "USDC"

# Numeric(20, 8) leaves 12 integer digits; every stored amount stays below this.
AMOUNT_LIMIT = Decimal("1e12")

# Zero rows created for every new account; USDC appears on first credit.
SEED_CURRENCIES = (Currency.EUR, Currency.USD, Currency.GBP, Currency.CHF)

class Balance(Base):
    __tablename__ = "balances"
    __table_args__ = (
        UniqueConstraint("user_id", "currency", name="uq_balance_user_currency"),
        CheckConstraint("amount >= 0", name="ck_balance_amount_non_negative"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    currency = Column(String(10), nullable=False)
    amount = Column(Numeric(precision=20, scale=8), nullable=False, default=0)

    user = relationship("User", back_populates="balances")

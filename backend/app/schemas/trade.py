from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field
from app.models.balance import AMOUNT_LIMIT, Currency

class OpenTradeRequest(BaseModel):
    amount: Decimal = Field(gt=0, lt=AMOUNT_LIMIT)
    currency: Currency

class AdminCloseTradeRequest(BaseModel):
    profit: Decimal = Field(default=Decimal("0"), gt=-AMOUNT_LIMIT, lt=AMOUNT_LIMIT)
    trading_pair: Optional[str] = Field(default=None, max_length=20)
    admin_comment: Optional[str] = Field(default=None, max_length=500)

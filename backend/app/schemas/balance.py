from decimal import Decimal
from pydantic import BaseModel, Field
from app.models.balance import AMOUNT_LIMIT, Currency

class ConvertRequest(BaseModel):
    from_currency: Currency
    to_currency: Currency
    amount: Decimal = Field(gt=0, lt=AMOUNT_LIMIT)

class SetBalanceRequest(BaseModel):
    currency: Currency
    amount: Decimal = Field(ge=0, lt=AMOUNT_LIMIT)

from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field
from app.models.balance import AMOUNT_LIMIT, Currency
from app.models.portfolio import AssetType

class BuyRequest(BaseModel):
    symbol: str = Field(min_length=1, max_length=20)
    asset_type: AssetType
    quantity: Decimal = Field(gt=0, lt=AMOUNT_LIMIT)
    price: Decimal = Field(gt=0, lt=AMOUNT_LIMIT)
    currency: Currency

class SellRequest(BaseModel):
    symbol: str = Field(min_length=1, max_length=20)
    quantity: Decimal = Field(gt=0, lt=AMOUNT_LIMIT)
    price: Decimal = Field(gt=0, lt=AMOUNT_LIMIT)
    currency: Currency

class SetPositionRequest(BaseModel):
    symbol: str = Field(min_length=1, max_length=20)
    quantity: Decimal = Field(ge=0, lt=AMOUNT_LIMIT)
    average_buy_price: Decimal = Field(ge=0, lt=AMOUNT_LIMIT)
    asset_type: Optional[AssetType] = None
    currency: Optional[Currency] = None

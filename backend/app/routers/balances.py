from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.core.deps import get_current_user
from app.models.user import User
from app.schemas.balance import ConvertRequest
from app.services.ledger import list_balances
from app.services.conversion import convert
from app.routers.serializers import balance_dict

router = APIRouter(prefix="/api", tags=["balances"])


@router.get("/balances")
async def get_balances(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return {"balances": [balance_dict(b) for b in await list_balances(db, user.id)]}


@router.post("/convert")
async def convert_currency(
    body: ConvertRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await convert(db, user.id, body.from_currency.value, body.to_currency.value, body.amount)
    return {
        "from_amount": str(result["from_amount"]),
        "to_amount": str(result["to_amount"]),
        "rate": str(result["rate"]),
    }

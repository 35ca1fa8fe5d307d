from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.core.deps import get_current_user
from app.models.user import User
from app.schemas.transfer import TransferCreateRequest
from app.services.transfers import create_transfer, list_transfers
from app.routers.serializers import transfer_dict

router = APIRouter(prefix="/api/transfers", tags=["transfers"])


@router.get("")
async def my_transfers(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return {"transfers": [transfer_dict(t) for t in await list_transfers(db, user.id)]}


@router.post("", status_code=201)
async def request_transfer(
    body: TransferCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """FIAT transfers are debited now and wait for admin settlement."""
    transfer = await create_transfer(db, user.id, body.model_dump())
    return {"transfer_id": transfer.id, "status": transfer.status.value}

"""Customer delivery addresses."""

from fastapi import APIRouter, Depends, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.store_service.models import Address
from services.store_service.schemas import AddressCreate, AddressResponse
from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/addresses", tags=["addresses"])


@router.get("", response_model=list[AddressResponse])
async def list_my_addresses(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    result = await db.execute(
        select(Address)
        .where(Address.user_id == current_user.user_id)
        .order_by(desc(Address.created_at))
    )
    return result.scalars().all()


@router.post("", response_model=AddressResponse, status_code=status.HTTP_201_CREATED)
async def create_address(
    body: AddressCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Save an address. Coordinates are optional; without them orders go to the default store."""
    address = Address(user_id=current_user.user_id, **body.model_dump())
    db.add(address)
    await db.commit()
    await db.refresh(address)
    return address

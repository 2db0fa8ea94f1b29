from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from backend.auth.dependencies import current_user_id
from backend.auth.services import serialize_user
from backend.common.utils import success_response
from backend.db.dependencies import get_session
from backend.user.models import AddressIn, AddressUpdateIn, ProfileUpdateIn
from backend.user.repository import addresses_for_user
from backend.user.services import (create_address, delete_address, get_profile, serialize_address,
                                   update_address, update_profile)

user_router = APIRouter()


@user_router.get("/me")
async def get_user_profile(user_id: int = Depends(current_user_id), session: AsyncSession = Depends(get_session)):
    user = await get_profile(session, user_id)
    return success_response(serialize_user(user))


@user_router.put("/me")
async def update_user_profile(payload: ProfileUpdateIn, user_id: int = Depends(current_user_id),
                              session: AsyncSession = Depends(get_session)):
    user = await update_profile(session, user_id, payload)
    return success_response(serialize_user(user))


@user_router.get("/addresses")
async def list_addresses(user_id: int = Depends(current_user_id), session: AsyncSession = Depends(get_session)):
    addresses = await addresses_for_user(session, user_id)
    return success_response({"addresses": [serialize_address(a) for a in addresses]})


@user_router.post("/addresses")
async def add_address(payload: AddressIn, user_id: int = Depends(current_user_id),
                      session: AsyncSession = Depends(get_session)):
    address = await create_address(session, user_id, payload)
    return success_response(serialize_address(address), status_code=status.HTTP_201_CREATED)


@user_router.put("/addresses/{address_id}")
async def edit_address(address_id: int, payload: AddressUpdateIn, user_id: int = Depends(current_user_id),
                       session: AsyncSession = Depends(get_session)):
    address = await update_address(session, user_id, address_id, payload)
    return success_response(serialize_address(address))


@user_router.delete("/addresses/{address_id}")
async def remove_address(address_id: int, user_id: int = Depends(current_user_id),
                         session: AsyncSession = Depends(get_session)):
    await delete_address(session, user_id, address_id)
    return success_response({"message": "Address deleted"})

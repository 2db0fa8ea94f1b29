from fastapi import HTTPException, status
from backend.auth.repository import user_by_id
from backend.common.utils import now
from backend.common.validation import check, validate_address, validate_name, validate_phone, validate_postal_code
from backend.schema.full_schema import Address, Users
from backend.user.constants import ADDRESS_NOT_FOUND, logger
from backend.user.models import AddressIn, AddressUpdateIn, ProfileUpdateIn
from backend.user.repository import address_for_user, clear_default_addresses


def serialize_address(address: Address) -> dict:
    return {
        "id": address.id,
        "type": address.type,
        "is_default": address.is_default,
        "name": address.name,
        "phone": address.phone,
        "address_line1": address.address_line1,
        "address_line2": address.address_line2,
        "city": address.city,
        "state": address.state,
        "postal_code": address.postal_code,
        "country": address.country,
        "landmark": address.landmark,
        "created_at": address.created_at,
    }


async def get_profile(session, user_id: int) -> Users:
    user = await user_by_id(session, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


async def update_profile(session, user_id: int, payload: ProfileUpdateIn) -> Users:
    user = await get_profile(session, user_id)

    # empty values leave the stored ones untouched
    if payload.name:
        check(validate_name, payload.name.strip())
        user.name = payload.name.strip()
    if payload.phone:
        check(validate_phone, payload.phone.strip())
        user.phone = payload.phone.strip()
    user.updated_at = now()

    session.add(user)
    await session.commit()
    logger.info("user.profile.updated", extra={"user_id": user.id})
    return user


def _validate_address(address_line1, city, state, country, postal_code, phone) -> None:
    check(validate_address, address_line1, city, state, country)
    check(validate_postal_code, postal_code)
    check(validate_phone, phone)


async def create_address(session, user_id: int, payload: AddressIn) -> Address:
    _validate_address(payload.address_line1, payload.city, payload.state, payload.country,
                      payload.postal_code, payload.phone)

    if payload.is_default:
        await clear_default_addresses(session, user_id)

    address = Address(user_id=user_id, **payload.model_dump())
    session.add(address)
    await session.commit()
    logger.info("address.created", extra={"user_id": user_id, "address_id": address.id})
    return address


async def update_address(session, user_id: int, address_id: int, payload: AddressUpdateIn) -> Address:
    address = await address_for_user(session, address_id, user_id)
    if address is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=ADDRESS_NOT_FOUND)

    updates = payload.model_dump(exclude_unset=True)
    merged = {**serialize_address(address), **updates}
    _validate_address(merged["address_line1"], merged["city"], merged["state"], merged["country"],
                      merged["postal_code"], merged["phone"])

    if updates.get("is_default"):
        await clear_default_addresses(session, user_id)

    for field, value in updates.items():
        setattr(address, field, value)
    address.updated_at = now()

    session.add(address)
    await session.commit()
    return address


async def delete_address(session, user_id: int, address_id: int) -> None:
    address = await address_for_user(session, address_id, user_id)
    if address is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=ADDRESS_NOT_FOUND)
    await session.delete(address)
    await session.commit()

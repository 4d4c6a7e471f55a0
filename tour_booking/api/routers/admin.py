"""
Operator endpoints for bookings and availability.

Authentication is handled in front of this service; nothing here checks
credentials.
"""

from fastapi import APIRouter, Depends, Response, status

from tour_booking.api.dependencies import get_use_cases
from tour_booking.api.schemas.bookings import (
    AdminBookingResponse,
    CreateSlotRequest,
    ExpirePendingResponse,
    SlotResponse,
    UpdateBookingRequest,
    UpdateSlotRequest,
)

router = APIRouter(prefix="/admin")


# Declared before the /bookings/{booking_id} routes so the literal path wins.
@router.post(
    "/bookings/expire-pending",
    response_model=ExpirePendingResponse,
    status_code=status.HTTP_200_OK,
)
async def expire_pending_bookings(use_cases=Depends(get_use_cases)) -> ExpirePendingResponse:
    return await use_cases["expire_pending"].execute()


@router.get("/bookings/{booking_id}", response_model=AdminBookingResponse)
async def get_booking(booking_id: str, use_cases=Depends(get_use_cases)) -> AdminBookingResponse:
    return await use_cases["get_booking"].execute(booking_id)


@router.put("/bookings/{booking_id}", response_model=AdminBookingResponse)
async def update_booking(
    booking_id: str,
    payload: UpdateBookingRequest,
    use_cases=Depends(get_use_cases),
) -> AdminBookingResponse:
    return await use_cases["update_booking"].execute(booking_id, payload)


@router.post("/bookings/{booking_id}/cancel", response_model=AdminBookingResponse)
async def cancel_booking(
    booking_id: str, use_cases=Depends(get_use_cases)
) -> AdminBookingResponse:
    return await use_cases["cancel_booking"].execute(booking_id)


@router.delete("/bookings/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_booking(booking_id: str, use_cases=Depends(get_use_cases)) -> Response:
    await use_cases["delete_booking"].execute(booking_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/bookings/{booking_id}/send-email")
async def send_confirmation_email(booking_id: str, use_cases=Depends(get_use_cases)) -> dict:
    await use_cases["resend_confirmation"].execute(booking_id)
    return {"success": True}


@router.post(
    "/tours/{tour_id}/availability",
    response_model=SlotResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_slot(
    tour_id: str,
    payload: CreateSlotRequest,
    use_cases=Depends(get_use_cases),
) -> SlotResponse:
    return await use_cases["create_slot"].execute(tour_id, payload)


@router.patch("/availability/{slot_id}", response_model=SlotResponse)
async def update_slot(
    slot_id: str,
    payload: UpdateSlotRequest,
    use_cases=Depends(get_use_cases),
) -> SlotResponse:
    return await use_cases["update_slot"].execute(slot_id, payload)

from datetime import date

from fastapi import APIRouter, Depends, Query, Request, status

from tour_booking.api.dependencies import get_use_cases
from tour_booking.api.schemas.bookings import (
    CreateBookingRequest,
    CreateBookingResponse,
    CreatePaymentIntentRequest,
    CreatePaymentIntentResponse,
    QuoteResponse,
    SelectionIn,
    SlotListResponse,
    VoucherResponse,
)
from tour_booking.infrastructure.db.retry import retry_on_deadlock

router = APIRouter()


@router.post(
    "/bookings",
    response_model=CreateBookingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_booking(
    payload: CreateBookingRequest,
    use_cases=Depends(get_use_cases),
) -> CreateBookingResponse:
    return await retry_on_deadlock(lambda: use_cases["create_booking"].execute(payload))


@router.get(
    "/bookings/{booking_id}/voucher",
    response_model=VoucherResponse,
    status_code=status.HTTP_200_OK,
)
async def get_voucher(
    booking_id: str,
    token: str | None = Query(default=None),
    use_cases=Depends(get_use_cases),
) -> VoucherResponse:
    return await use_cases["get_voucher"].execute(booking_id=booking_id, token=token)


@router.post(
    "/payments/intent",
    response_model=CreatePaymentIntentResponse,
    status_code=status.HTTP_200_OK,
)
async def create_payment_intent(
    payload: CreatePaymentIntentRequest,
    use_cases=Depends(get_use_cases),
) -> CreatePaymentIntentResponse:
    return await use_cases["create_payment_intent"].execute(payload)


@router.post("/webhooks/stripe", status_code=status.HTTP_200_OK)
async def stripe_webhook(
    request: Request,
    use_cases=Depends(get_use_cases),
) -> dict:
    raw_body = await request.body()
    signature = request.headers.get("Stripe-Signature")
    await retry_on_deadlock(
        lambda: use_cases["handle_webhook"].execute(raw_body=raw_body, signature=signature)
    )
    return {"received": True}


@router.post(
    "/tours/{tour_id}/quote",
    response_model=QuoteResponse,
    status_code=status.HTTP_200_OK,
)
async def quote_tour(
    tour_id: str,
    payload: SelectionIn,
    use_cases=Depends(get_use_cases),
) -> QuoteResponse:
    return await use_cases["quote_price"].execute(tour_id=tour_id, selection=payload)


@router.get(
    "/tours/{tour_id}/availability",
    response_model=SlotListResponse,
    status_code=status.HTTP_200_OK,
)
async def list_open_slots(
    tour_id: str,
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    use_cases=Depends(get_use_cases),
) -> SlotListResponse:
    return await use_cases["list_slots"].execute(tour_id, date_from, date_to)

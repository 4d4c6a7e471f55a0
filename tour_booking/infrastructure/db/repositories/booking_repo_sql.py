from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping, Sequence

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tour_booking.application.interfaces.booking_repo import UPDATABLE_FIELDS, BookingRepo
from tour_booking.domain.constants import BOOKING_STATUS_PENDING_PAYMENT
from tour_booking.domain.entities.booking import Booking, BookingItem, Customer
from tour_booking.domain.errors import BookingReferenceCollisionError
from tour_booking.infrastructure.db.tables import booking_items, bookings


def _item_row(booking_id: str, item: BookingItem) -> dict[str, Any]:
    return {
        "booking_id": booking_id,
        "item_type": item.item_type,
        "item_id": item.item_id,
        "item_name": item.name,
        "quantity": item.quantity,
        "unit_retail_price_snapshot": item.unit_retail_price_snapshot,
        "unit_net_price_snapshot": item.unit_net_price_snapshot,
        "subtotal_retail": item.subtotal_retail,
        "subtotal_net": item.subtotal_net,
        "metadata": item.metadata,
    }


def _row_to_item(row: Mapping[str, Any]) -> BookingItem:
    return BookingItem(
        id=row["id"],
        item_type=row["item_type"],
        item_id=row["item_id"],
        name=row["item_name"],
        quantity=row["quantity"],
        unit_retail_price_snapshot=Decimal(row["unit_retail_price_snapshot"]),
        unit_net_price_snapshot=Decimal(row["unit_net_price_snapshot"]),
        subtotal_retail=Decimal(row["subtotal_retail"]),
        subtotal_net=Decimal(row["subtotal_net"]),
        metadata=row["metadata"],
    )


class BookingRepoSQL(BookingRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _load(self, row: Mapping[str, Any] | None) -> Booking | None:
        if not row:
            return None
        item_rows = await self._session.execute(
            select(booking_items)
            .where(booking_items.c.booking_id == row["id"])
            .order_by(booking_items.c.id)
        )
        return Booking(
            id=row["id"],
            reference=row["reference"],
            tour_id=row["tour_id"],
            status=row["status"],
            customer=Customer(
                name=row["customer_name"],
                email=row["customer_email"],
                phone=row["customer_phone"],
                nationality=row["customer_nationality"],
            ),
            booking_date=row["booking_date"],
            language=row["language"],
            currency=row["currency"],
            voucher_token=row["voucher_token"],
            items=[_row_to_item(r) for r in item_rows.mappings().all()],
            total_retail=Decimal(row["total_retail"]),
            total_net=Decimal(row["total_net"]),
            availability_slot_id=row["availability_slot_id"],
            payment_intent_id=row["payment_intent_id"],
            notes=row["notes"],
            payment_failure_reason=row["payment_failure_reason"],
            payment_issue=row["payment_issue"],
            capacity_committed_units=row["capacity_committed_units"] or 0,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    async def get(self, booking_id: str) -> Booking | None:
        result = await self._session.execute(
            select(bookings).where(bookings.c.id == booking_id).limit(1)
        )
        return await self._load(result.mappings().first())

    async def get_by_reference(self, reference: str) -> Booking | None:
        result = await self._session.execute(
            select(bookings).where(bookings.c.reference == reference).limit(1)
        )
        return await self._load(result.mappings().first())

    async def create(self, booking: Booking) -> None:
        existing = await self._session.execute(
            select(func.count()).select_from(bookings).where(bookings.c.reference == booking.reference)
        )
        if existing.scalar_one():
            raise BookingReferenceCollisionError(booking.reference)

        values = {
            "id": booking.id,
            "reference": booking.reference,
            "tour_id": booking.tour_id,
            "status": booking.status,
            "customer_name": booking.customer.name,
            "customer_email": booking.customer.email,
            "customer_phone": booking.customer.phone,
            "customer_nationality": booking.customer.nationality,
            "booking_date": booking.booking_date,
            "language": booking.language,
            "currency": booking.currency,
            "total_retail": booking.total_retail,
            "total_net": booking.total_net,
            "availability_slot_id": booking.availability_slot_id,
            "payment_intent_id": booking.payment_intent_id,
            "voucher_token": booking.voucher_token,
            "notes": booking.notes,
            "payment_failure_reason": booking.payment_failure_reason,
            "payment_issue": booking.payment_issue,
            "capacity_committed_units": booking.capacity_committed_units,
            "created_at": booking.created_at,
            "updated_at": booking.updated_at,
        }
        try:
            # Savepoint so a lost race leaves the outer transaction usable for the retry.
            async with self._session.begin_nested():
                await self._session.execute(insert(bookings).values(values))
        except IntegrityError as exc:
            # Lost a race on the unique reference between the check and the insert.
            raise BookingReferenceCollisionError(booking.reference) from exc

        if booking.items:
            await self._session.execute(
                insert(booking_items), [_item_row(booking.id, item) for item in booking.items]
            )

    async def transition_status(
        self,
        booking_id: str,
        from_status: str,
        to_status: str,
        updated_at: datetime | None = None,
    ) -> bool:
        values: dict[str, Any] = {"status": to_status}
        if updated_at is not None:
            values["updated_at"] = updated_at
        result = await self._session.execute(
            update(bookings)
            .where(bookings.c.id == booking_id, bookings.c.status == from_status)
            .values(values)
        )
        return result.rowcount == 1

    async def update_fields(
        self,
        booking_id: str,
        changes: Mapping[str, Any],
        updated_at: datetime | None = None,
    ) -> None:
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable: {sorted(unknown)}")
        values = dict(changes)
        if updated_at is not None:
            values["updated_at"] = updated_at
        if not values:
            return
        await self._session.execute(
            update(bookings).where(bookings.c.id == booking_id).values(values)
        )

    async def replace_items(
        self,
        booking_id: str,
        items: Sequence[BookingItem],
        updated_at: datetime | None = None,
    ) -> None:
        await self._session.execute(
            delete(booking_items).where(booking_items.c.booking_id == booking_id)
        )
        if items:
            await self._session.execute(
                insert(booking_items), [_item_row(booking_id, item) for item in items]
            )
        values: dict[str, Any] = {
            "total_retail": sum((item.subtotal_retail for item in items), Decimal("0")),
            "total_net": sum((item.subtotal_net for item in items), Decimal("0")),
        }
        if updated_at is not None:
            values["updated_at"] = updated_at
        await self._session.execute(
            update(bookings).where(bookings.c.id == booking_id).values(values)
        )

    async def delete(self, booking_id: str) -> None:
        await self._session.execute(
            delete(booking_items).where(booking_items.c.booking_id == booking_id)
        )
        await self._session.execute(delete(bookings).where(bookings.c.id == booking_id))

    async def list_pending_payment_before(self, created_before: datetime) -> list[Booking]:
        result = await self._session.execute(
            select(bookings)
            .where(
                bookings.c.status == BOOKING_STATUS_PENDING_PAYMENT,
                bookings.c.payment_issue.is_(None),
                bookings.c.created_at < created_before,
            )
            .order_by(bookings.c.created_at)
        )
        return [await self._load(row) for row in result.mappings().all()]

import logging
import uuid
from datetime import date

from tour_booking.api.schemas.bookings import (
    CreateSlotRequest,
    SlotListResponse,
    SlotResponse,
    SlotView,
    UpdateSlotRequest,
)
from tour_booking.application.interfaces.availability_ledger import AvailabilityLedger
from tour_booking.application.interfaces.clock import Clock
from tour_booking.application.interfaces.tour_catalog import TourCatalog
from tour_booking.application.interfaces.transaction_manager import TransactionManager
from tour_booking.domain.entities.availability import AvailabilitySlot
from tour_booking.domain.errors import TourNotFoundError


class ListOpenSlotsUseCase:
    def __init__(self, availability_ledger: AvailabilityLedger) -> None:
        self._availability_ledger = availability_ledger

    async def execute(
        self, tour_id: str, date_from: date | None = None, date_to: date | None = None
    ) -> SlotListResponse:
        slots = await self._availability_ledger.find_open_slots(tour_id, date_from, date_to)
        return SlotListResponse(slots=[SlotView.from_slot(slot) for slot in slots])


class CreateSlotUseCase:
    def __init__(
        self,
        tour_catalog: TourCatalog,
        availability_ledger: AvailabilityLedger,
        clock: Clock,
        transaction_manager: TransactionManager,
    ) -> None:
        self._tour_catalog = tour_catalog
        self._availability_ledger = availability_ledger
        self._clock = clock
        self._transaction_manager = transaction_manager
        self._logger = logging.getLogger(__name__)

    async def execute(self, tour_id: str, request: CreateSlotRequest) -> SlotResponse:
        now = self._clock.now()
        async with self._transaction_manager.start():
            if await self._tour_catalog.get_tour(tour_id) is None:
                raise TourNotFoundError(tour_id)
            slot = await self._availability_ledger.create_slot(
                AvailabilitySlot(
                    id=str(uuid.uuid4()),
                    tour_id=tour_id,
                    date=request.date,
                    time_slot=request.time_slot,
                    capacity=request.capacity,
                    booked=0,
                    enabled=True,
                    created_at=now,
                    updated_at=now,
                )
            )
        self._logger.info(
            "Availability slot created",
            extra={"slot_id": slot.id, "tour_id": tour_id, "capacity": slot.capacity},
        )
        return SlotResponse(slot=SlotView.from_slot(slot))


class UpdateSlotUseCase:
    def __init__(
        self,
        availability_ledger: AvailabilityLedger,
        transaction_manager: TransactionManager,
    ) -> None:
        self._availability_ledger = availability_ledger
        self._transaction_manager = transaction_manager
        self._logger = logging.getLogger(__name__)

    async def execute(self, slot_id: str, request: UpdateSlotRequest) -> SlotResponse:
        async with self._transaction_manager.start():
            slot = await self._availability_ledger.update_slot(
                slot_id, enabled=request.enabled, capacity=request.capacity
            )
        self._logger.info(
            "Availability slot updated",
            extra={"slot_id": slot.id, "enabled": slot.enabled, "capacity": slot.capacity},
        )
        return SlotResponse(slot=SlotView.from_slot(slot))

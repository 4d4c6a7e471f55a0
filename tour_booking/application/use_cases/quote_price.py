from tour_booking.api.schemas.bookings import QuoteResponse, SelectionIn
from tour_booking.application.interfaces.tour_catalog import TourCatalog
from tour_booking.domain.errors import TourNotFoundError
from tour_booking.domain.pricing import quote_booking


class QuoteTourPriceUseCase:
    """Live totals for the booking widget. Nothing is persisted."""

    def __init__(self, tour_catalog: TourCatalog) -> None:
        self._tour_catalog = tour_catalog

    async def execute(self, tour_id: str, selection: SelectionIn) -> QuoteResponse:
        tour = await self._tour_catalog.get_tour(tour_id)
        if tour is None:
            raise TourNotFoundError(tour_id)
        quote = quote_booking(
            tour.pricing,
            selection.to_guest_selection(),
            selection.to_upsell_selections(),
            tour.upsell_index(),
        )
        return QuoteResponse.from_quote(quote)

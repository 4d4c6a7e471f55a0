from tour_booking.domain.entities.tour import Tour


class TourCatalog:
    """Read access to tours and their live pricing; editing tours lives elsewhere."""

    async def get_tour(self, tour_id: str) -> Tour | None:
        raise NotImplementedError

    async def save_tour(self, tour: Tour) -> None:
        raise NotImplementedError

import copy

from tour_booking.application.interfaces.tour_catalog import TourCatalog
from tour_booking.domain.entities.tour import Tour


class InMemoryTourCatalog(TourCatalog):
    def __init__(self) -> None:
        self.tours: dict[str, Tour] = {}

    async def get_tour(self, tour_id: str) -> Tour | None:
        tour = self.tours.get(tour_id)
        if tour is None:
            return None
        found = copy.copy(tour)
        found.upsells = [u for u in tour.upsells if u.active]
        return found

    async def save_tour(self, tour: Tour) -> None:
        self.tours[tour.id] = copy.copy(tour)

from sqlalchemy import delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tour_booking.application.interfaces.tour_catalog import TourCatalog
from tour_booking.domain.entities.tour import Tour
from tour_booking.domain.pricing import Upsell, parse_pricing_config, pricing_config_to_dict
from tour_booking.infrastructure.db.tables import tour_upsells, tours


class TourCatalogSQL(TourCatalog):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_tour(self, tour_id: str) -> Tour | None:
        result = await self._session.execute(
            select(tours).where(tours.c.id == tour_id).limit(1)
        )
        row = result.mappings().first()
        if not row:
            return None

        upsell_rows = await self._session.execute(
            select(tour_upsells)
            .where(tour_upsells.c.tour_id == tour_id, tour_upsells.c.active.is_(True))
            .order_by(tour_upsells.c.title)
        )
        return Tour(
            id=row["id"],
            name=row["name"],
            slug=row["slug"],
            pricing=parse_pricing_config(row["pricing_engine"]),
            requires_availability=bool(row["requires_availability"]),
            requires_online_payment=bool(row["requires_online_payment"]),
            upsells=[
                Upsell(
                    id=u["id"],
                    tour_id=u["tour_id"],
                    title=u["title"],
                    pricing_type=u["pricing_type"],
                    retail_price=u["retail_price"],
                    net_price=u["net_price"],
                    currency=u["currency"],
                    max_quantity=u["max_quantity"],
                    active=bool(u["active"]),
                )
                for u in upsell_rows.mappings().all()
            ],
        )

    async def save_tour(self, tour: Tour) -> None:
        values = {
            "name": tour.name,
            "slug": tour.slug,
            "pricing_engine": pricing_config_to_dict(tour.pricing),
            "requires_availability": tour.requires_availability,
            "requires_online_payment": tour.requires_online_payment,
        }
        existing = await self._session.execute(select(tours.c.id).where(tours.c.id == tour.id))
        if existing.scalar() is None:
            await self._session.execute(insert(tours).values(id=tour.id, **values))
        else:
            await self._session.execute(update(tours).where(tours.c.id == tour.id).values(values))

        await self._session.execute(delete(tour_upsells).where(tour_upsells.c.tour_id == tour.id))
        if tour.upsells:
            await self._session.execute(
                insert(tour_upsells),
                [
                    {
                        "id": u.id,
                        "tour_id": tour.id,
                        "title": u.title,
                        "pricing_type": u.pricing_type,
                        "retail_price": u.retail_price,
                        "net_price": u.net_price,
                        "currency": u.currency,
                        "max_quantity": u.max_quantity,
                        "active": u.active,
                    }
                    for u in tour.upsells
                ],
            )

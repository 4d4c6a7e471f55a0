import asyncio
import sys
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

# Add project root to sys.path
project_root = Path(__file__).resolve().parent.parent
sys.path.append(str(project_root))

from tour_booking.api.deps import AsyncSessionLocal, engine  # noqa: E402
from tour_booking.domain.entities.availability import AvailabilitySlot  # noqa: E402
from tour_booking.domain.entities.tour import Tour  # noqa: E402
from tour_booking.domain.pricing import FlatPerPerson, Upsell  # noqa: E402
from tour_booking.infrastructure.db.repositories.availability_ledger_sql import (  # noqa: E402
    AvailabilityLedgerSQL,
)
from tour_booking.infrastructure.db.repositories.tour_catalog_sql import TourCatalogSQL  # noqa: E402
from tour_booking.infrastructure.db.tables import metadata  # noqa: E402

DEMO_TOUR_ID = "demo-phi-phi"


async def seed():
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
        print("Created missing tables.")

    now = datetime.now(timezone.utc)
    tour = Tour(
        id=DEMO_TOUR_ID,
        name="Phi Phi Island Day Trip",
        slug="phi-phi-island-day-trip",
        pricing=FlatPerPerson(
            unit_retail_price=Decimal("1500"),
            unit_net_price=Decimal("1000"),
            currency="THB",
            min_guests=1,
            max_guests=10,
        ),
        upsells=[
            Upsell(
                id="demo-lunch",
                tour_id=DEMO_TOUR_ID,
                title="Seafood lunch",
                pricing_type="per_person",
                retail_price=Decimal("250"),
                net_price=Decimal("150"),
                currency="THB",
            ),
        ],
    )

    async with AsyncSessionLocal() as session:
        async with session.begin():
            await TourCatalogSQL(session).save_tour(tour)
            ledger = AvailabilityLedgerSQL(session)
            for offset in range(1, 8):
                day = date.today() + timedelta(days=offset)
                await ledger.create_slot(
                    AvailabilitySlot(
                        id=f"{DEMO_TOUR_ID}-{day.isoformat()}",
                        tour_id=DEMO_TOUR_ID,
                        date=day,
                        time_slot="08:30",
                        capacity=20,
                        booked=0,
                        enabled=True,
                        created_at=now,
                        updated_at=now,
                    )
                )
    print("Seeded demo tour with 7 days of availability.")


if __name__ == "__main__":
    asyncio.run(seed())

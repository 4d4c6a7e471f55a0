from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
)

metadata = MetaData()

tours = Table(
    "tours",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("slug", String(255), unique=True),
    Column("pricing_engine", JSON, nullable=False),
    Column("requires_availability", Boolean, nullable=False, default=True),
    Column("requires_online_payment", Boolean, nullable=False, default=True),
)

tour_upsells = Table(
    "tour_upsells",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("tour_id", String(36), ForeignKey("tours.id", ondelete="CASCADE"), nullable=False),
    Column("title", String(255), nullable=False),
    Column("pricing_type", String(20), nullable=False),
    Column("retail_price", Numeric(12, 2), nullable=False),
    Column("net_price", Numeric(12, 2), nullable=False),
    Column("currency", String(3), nullable=False),
    Column("max_quantity", Integer, nullable=False, default=10),
    Column("active", Boolean, nullable=False, default=True),
)

tour_availability = Table(
    "tour_availability",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("tour_id", String(36), ForeignKey("tours.id", ondelete="CASCADE"), nullable=False),
    Column("date", Date, nullable=False),
    Column("time_slot", String(20)),
    Column("capacity", Integer, nullable=False, default=20),
    Column("booked", Integer, nullable=False, default=0),
    Column("enabled", Boolean, nullable=False, default=True),
    Column("created_at", DateTime(timezone=True)),
    Column("updated_at", DateTime(timezone=True)),
    UniqueConstraint("tour_id", "date", "time_slot", name="uq_tour_availability_slot"),
)

bookings = Table(
    "bookings",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("reference", String(32), nullable=False, unique=True),
    Column("tour_id", String(36), nullable=False),
    Column("status", String(32), nullable=False),
    Column("customer_name", String(255), nullable=False),
    Column("customer_email", String(255), nullable=False),
    Column("customer_phone", String(50)),
    Column("customer_nationality", String(100)),
    Column("booking_date", Date, nullable=False),
    Column("language", String(10), nullable=False),
    Column("currency", String(3), nullable=False),
    Column("total_retail", Numeric(12, 2), nullable=False),
    Column("total_net", Numeric(12, 2), nullable=False),
    Column("availability_slot_id", String(36)),
    Column("payment_intent_id", String(255)),
    Column("voucher_token", String(128), nullable=False, unique=True),
    Column("notes", Text),
    Column("payment_failure_reason", String(500)),
    Column("payment_issue", String(50)),
    Column("capacity_committed_units", Integer, nullable=False, default=0),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

booking_items = Table(
    "booking_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "booking_id",
        String(36),
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("item_type", String(20), nullable=False),
    Column("item_id", String(36), nullable=False),
    Column("item_name", String(255), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("unit_retail_price_snapshot", Numeric(12, 2), nullable=False),
    Column("unit_net_price_snapshot", Numeric(12, 2), nullable=False),
    Column("subtotal_retail", Numeric(12, 2), nullable=False),
    Column("subtotal_net", Numeric(12, 2), nullable=False),
    Column("metadata", JSON),
)

from dataclasses import dataclass, field

from tour_booking.domain.pricing import PricingConfiguration, Upsell


@dataclass
class Tour:
    """Read model of a tour as far as booking is concerned."""

    id: str
    name: str
    pricing: PricingConfiguration
    slug: str | None = None
    requires_availability: bool = True
    requires_online_payment: bool = True
    upsells: list[Upsell] = field(default_factory=list)

    @property
    def currency(self) -> str:
        return self.pricing.currency

    def upsell_index(self) -> dict[str, Upsell]:
        return {upsell.id: upsell for upsell in self.upsells}

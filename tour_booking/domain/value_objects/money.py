"""Minor-unit conversion for amounts handed to the payment processor."""

from decimal import ROUND_HALF_UP, Decimal

# Currencies the payment processor expects without minor units.
ZERO_DECIMAL_CURRENCIES = frozenset(
    {
        "BIF", "CLP", "DJF", "GNF", "JPY", "KMF", "KRW", "MGA",
        "PYG", "RWF", "UGX", "VND", "VUV", "XAF", "XOF", "XPF",
    }
)


def is_zero_decimal(currency_code: str) -> bool:
    return currency_code.upper() in ZERO_DECIMAL_CURRENCIES


def to_minor_units(amount: Decimal, currency_code: str) -> int:
    """Convert an amount into the processor's smallest currency unit."""
    value = Decimal(str(amount))
    if not is_zero_decimal(currency_code):
        value = value * 100
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

"""Immutable domain value objects."""

from tour_booking.domain.value_objects.money import is_zero_decimal, to_minor_units

__all__ = ["is_zero_decimal", "to_minor_units"]

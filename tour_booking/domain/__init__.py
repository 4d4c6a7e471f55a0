"""
Domain layer - tour booking and pricing engine.

Pure business rules with no framework dependencies.

Structure:
- entities/: Booking aggregate, availability slots, tours
- value_objects/: minor-unit conversion for the payment processor
- pricing.py: pricing engine (configuration variants, upsells, quotes)
- errors.py: domain exceptions
- constants.py: statuses, event types and defaults
"""

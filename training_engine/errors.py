"""Exceptions raised by the strict calculators."""


class InvalidInputError(ValueError):
    """Required inputs are missing, non-positive or mathematically invalid."""

"""horizons: conversational calendar and project assistant."""

__version__ = "0.1.0"

"""Hourly ride-hailing demand: per sub-area model selection and 7-day forecast."""

__version__ = "0.1.0"

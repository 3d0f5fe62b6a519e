"""CRM Lead Engine - lead assignment and lead source analytics."""

__version__ = "1.0.0"

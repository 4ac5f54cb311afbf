"""eventgate: GA4 event ingestion gateway."""

__version__ = "1.0.0"

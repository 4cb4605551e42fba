"""Chronicle: journal entry ingestion and background aggregation."""

__version__ = "0.3.0"

"""callsync - call recording ingestion and upload."""

__version__ = "0.1.0"

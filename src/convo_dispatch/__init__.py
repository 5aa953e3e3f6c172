"""Daily conversation selection, redaction, and dispatch job."""

__version__ = "0.1.0"

"""HealthScope - AI analysis and chat layer for a personal health journal."""

__version__ = "0.1.0"

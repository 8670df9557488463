"""Hotroute - hot-reload coordination for API route modules."""

__version__ = "0.1.0"

"""Diagnostics and notification API."""

from hotroute.api.app import create_app

__all__ = ["create_app"]

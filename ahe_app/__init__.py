"""HTTP layer for the AHE calendar service."""

from .api import app

__all__ = ["app"]

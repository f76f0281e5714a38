"""HTTP server for media-drop."""

from .app import create_app

__all__ = ["create_app"]

"""HTTP layer: static files, the not-found page and the live-reload websocket."""

from livedir.api.app import create_app

__all__ = ["create_app"]

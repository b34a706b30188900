"""API route modules."""

from livedir.api.routes import ws

__all__ = ["ws"]

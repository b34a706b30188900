"""FastAPI dependencies."""

from fastapi import WebSocket

from livedir.events import ReloadHub


async def get_hub(websocket: WebSocket) -> ReloadHub:
    """Get the reload hub from app state."""
    return websocket.app.state.hub

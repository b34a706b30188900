"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import HTMLResponse, Response
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from livedir import __version__
from livedir.api.inject import LIVERELOAD_PATH, livereload_middleware
from livedir.api.routes import ws
from livedir.events import ReloadHub

logger = logging.getLogger(__name__)

MISSING_PAGE = """<!DOCTYPE html>
<html lang="en">
<head><style>body { background: black; color: white;}</style></head>
<body>Page Not Found</body>
</html>"""


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    logger.info(f"Serving {app.state.root}")

    yield

    logger.info("HTTP server shutting down")


async def not_found_handler(request: Request, exc: StarletteHTTPException) -> Response:
    """Serve the fixed not-found page for unresolved paths."""
    if exc.status_code == 404:
        return HTMLResponse(MISSING_PAGE, status_code=404)
    return await http_exception_handler(request, exc)


def create_app(root: str | Path, hub: ReloadHub | None = None) -> FastAPI:
    """Create the application serving ``root`` with live reload."""
    app = FastAPI(
        title="livedir",
        description="Static file server with live reload",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.root = Path(root)
    app.state.hub = hub or ReloadHub()

    app.add_exception_handler(StarletteHTTPException, not_found_handler)
    app.middleware("http")(livereload_middleware)

    app.include_router(ws.router, prefix=LIVERELOAD_PATH, tags=["livereload"])

    @app.get("/health")
    async def health_check() -> dict:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": __version__,
            "subscribers": app.state.hub.subscriber_count,
        }

    # Catch-all, so it must come after every other route
    app.mount("/", StaticFiles(directory=root, html=True), name="static")

    return app

# =============================================================================
# gateway/http_app.py  —  Streamable HTTP transport
# =============================================================================
#
# ENDPOINTS:
#   GET    /health  liveness check
#   POST   /mcp     submit a message; a request without a known
#                   mcp-session-id header opens a session, and only a
#                   successful initialize keeps it
#   GET    /mcp     server-push stream (SSE) for an existing session
#   DELETE /mcp     end a session (unknown identifier → 404)
#
# The session identifier travels ONLY in the mcp-session-id header, in both
# directions.  The body is never inspected for it.
#
# SHUTDOWN:
#   The app lifespan runs the SessionRouter: sessions' servers live in its
#   task group, and leaving it closes every session before the process exits.
# =============================================================================

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from starlette.applications import Starlette
from starlette.datastructures import Headers
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route
from starlette.types import Receive, Scope, Send

from gateway.sessions import SESSION_HEADER, SessionRouter

logger = logging.getLogger(__name__)


class McpEndpoint:
    """ASGI endpoint for /mcp: hands each method to the router."""

    def __init__(self, router: SessionRouter) -> None:
        self.router = router

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        session_id = Headers(scope=scope).get(SESSION_HEADER)
        method = scope["method"]
        if method == "POST":
            await self.router.route_request(session_id, scope, receive, send)
        elif method == "DELETE":
            await self.router.route_close(session_id, scope, receive, send)
        else:
            await self.router.route_stream(session_id, scope, receive, send)


def create_app(router: SessionRouter) -> Starlette:
    """Build the Starlette app bound to ``router``."""

    async def health(request: Request) -> Response:
        return JSONResponse({"status": "ok", "transport": "streamable-http"})

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        async with router.run():
            yield

    return Starlette(
        routes=[
            Route("/health", health, methods=["GET"]),
            Route("/mcp", McpEndpoint(router), methods=["GET", "POST", "DELETE"]),
        ],
        lifespan=lifespan,
    )

# =============================================================================
# gateway/sessions.py  —  Session Router
# =============================================================================
#
# WHAT THIS FILE DOES:
#   Owns the one piece of shared mutable state in the gateway: the map from
#   session identifier to protocol engine.  Nothing else reads or writes it.
#   In HTTP mode it also owns the task group every session's server runs in
#   (entered through run(), from the app lifespan).
#
# SESSION LIFECYCLE:
#     UNKNOWN ──route_request──▶ ACTIVE ──close_session / DELETE / shutdown──▶ CLOSED
#   CLOSED is terminal.  A closed identifier presented again is UNKNOWN, so
#   it gets a brand-new session (and a brand-new identifier).
#
# REGISTRATION ORDER:
#   open_session() is synchronous: the identifier is generated, the engine
#   built and the mapping inserted before route_request() reaches its first
#   await.  On a single event loop that means a second request carrying the
#   new identifier always finds it; it then waits inside the engine until
#   the session's server is connected.  A multi-threaded host would need a
#   lock around open_session().
#
# ESTABLISHING A SESSION:
#   A request without a known identifier gets a fresh session, but only a
#   successful answer establishes it.  Anything else (a non-initialize
#   request, which the transport refuses with 400, or a failure) rolls the
#   session back, and the rejected response goes out without an
#   mcp-session-id header.
#
# FAILURE POLICY:
#   Any exception while creating a session or forwarding to its engine is
#   logged and turned into a -32603 envelope, unless the engine had already
#   started the response.
# =============================================================================

import logging
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterator, Callable, Optional

import anyio
import httpx
from anyio.abc import TaskGroup
from mcp import types
from mcp.server.streamable_http import MCP_SESSION_ID_HEADER
from starlette.responses import Response
from starlette.types import Message, Receive, Scope, Send

from core.config import GatewaySettings
from core.shodan_client import ShodanApi
from core.token_budget import Estimator
from gateway.engine import ProtocolEngine
from tools.registry import build_tool_table

logger = logging.getLogger(__name__)

SESSION_HEADER = MCP_SESSION_ID_HEADER
SERVER_ERROR = -32000    # JSON-RPC implementation-defined server error

_SESSION_HEADER_KEY = SESSION_HEADER.encode("latin-1")

EngineFactory = Callable[[str], ProtocolEngine]


class SessionState(str, Enum):
    UNKNOWN = "unknown"
    ACTIVE = "active"
    CLOSED = "closed"


@dataclass
class Session:
    session_id: str
    engine: ProtocolEngine
    created_at: float = field(default_factory=time.time)
    state: SessionState = SessionState.ACTIVE


def error_response(status_code: int, code: int, message: str) -> Response:
    """A JSON-RPC error body with ``id: null`` and the given HTTP status."""
    body = types.JSONRPCError(
        jsonrpc="2.0", id=None, error=types.ErrorData(code=code, message=message)
    )
    return Response(
        body.model_dump_json(by_alias=True, exclude_unset=True),
        status_code=status_code,
        media_type="application/json",
    )


class _ResponseWatch:
    """ASGI ``send`` wrapper that records the response status.

    With ``hide_session`` set, an error response goes out without the
    mcp-session-id header: the session it names is about to be rolled back.
    """

    def __init__(self, send: Send, hide_session: bool = False) -> None:
        self._send = send
        self._hide_session = hide_session
        self.status: Optional[int] = None

    @property
    def started(self) -> bool:
        return self.status is not None

    @property
    def succeeded(self) -> bool:
        return self.status is not None and self.status < 400

    async def __call__(self, message: Message) -> None:
        if message["type"] == "http.response.start":
            self.status = message["status"]
            if self._hide_session and self.status >= 400:
                message = {**message, "headers": _drop_session_header(message.get("headers", []))}
        await self._send(message)


def _drop_session_header(headers) -> list:
    return [(key, value) for key, value in headers if key.lower() != _SESSION_HEADER_KEY]


class SessionRouter:
    """Maps session identifiers to independent protocol engines."""

    def __init__(
        self,
        engine_factory: EngineFactory,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self._engine_factory = engine_factory
        self._new_id = id_factory or (lambda: uuid.uuid4().hex)
        self._sessions: dict[str, Session] = {}
        self._shutting_down = False
        self._task_group: Optional[TaskGroup] = None

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    @property
    def session_ids(self) -> list[str]:
        return list(self._sessions)

    @property
    def shutting_down(self) -> bool:
        return self._shutting_down

    def state(self, session_id: Optional[str]) -> SessionState:
        if session_id and session_id in self._sessions:
            return SessionState.ACTIVE
        return SessionState.UNKNOWN

    def engine(self, session_id: str) -> Optional[ProtocolEngine]:
        session = self._sessions.get(session_id)
        return session.engine if session else None

    @asynccontextmanager
    async def run(self) -> AsyncIterator["SessionRouter"]:
        """Own the task group HTTP sessions serve in; shut down on exit."""
        async with anyio.create_task_group() as tg:
            self._task_group = tg
            logger.info("Session router started")
            try:
                yield self
            finally:
                with anyio.CancelScope(shield=True):
                    await self.shutdown()
                tg.cancel_scope.cancel()
                self._task_group = None

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------
    def open_session(self) -> Session:
        """Create and register a session.  Never suspends."""
        if self._shutting_down:
            raise RuntimeError("router is shutting down; no new sessions")

        session_id = self._new_id()
        while session_id in self._sessions:
            session_id = self._new_id()

        engine = self._engine_factory(session_id)
        session = Session(session_id=session_id, engine=engine)
        self._sessions[session_id] = session
        logger.info(f"MCP session initialized: {session_id} ({len(self._sessions)} active)")
        return session

    # -------------------------------------------------------------------------
    # Routing
    # -------------------------------------------------------------------------
    async def route_request(
        self, session_id: Optional[str], scope: Scope, receive: Receive, send: Send
    ) -> None:
        """Forward a POST to the session's engine, creating the session if needed."""
        session = self._sessions.get(session_id) if session_id else None
        if session is not None:
            await self._forward(session, scope, receive, send)
            return

        if self._shutting_down:
            await error_response(503, SERVER_ERROR, "Server is shutting down")(scope, receive, send)
            return

        watch = _ResponseWatch(send, hide_session=True)
        try:
            if self._task_group is None:
                raise RuntimeError("SessionRouter.run() is not active")
            session = self.open_session()
            # The client's stale identifier must not reach the new transport.
            scope = {**scope, "headers": _drop_session_header(scope.get("headers", []))}
            await self._task_group.start(session.engine.run_http)
            await session.engine.handle_http(scope, receive, watch)
        except Exception:
            logger.exception("Error handling MCP request")
            if not watch.started:
                await error_response(500, types.INTERNAL_ERROR, "Internal server error")(
                    scope, receive, send
                )
        finally:
            if session is not None and not watch.succeeded:
                await self._discard(session)

    async def route_stream(
        self, session_id: Optional[str], scope: Scope, receive: Receive, send: Send
    ) -> None:
        """Open the server-push stream; the session must already exist."""
        session = self._sessions.get(session_id) if session_id else None
        if session is None:
            await error_response(400, SERVER_ERROR, "Invalid or missing session ID")(
                scope, receive, send
            )
            return
        await self._forward(session, scope, receive, send)

    async def route_close(
        self, session_id: Optional[str], scope: Scope, receive: Receive, send: Send
    ) -> None:
        """End a session at the client's request (HTTP DELETE)."""
        session = self._sessions.get(session_id) if session_id else None
        if session is None:
            await error_response(404, types.INVALID_REQUEST, "Session not found")(
                scope, receive, send
            )
            return
        await self._forward(session, scope, receive, send)

    async def _forward(self, session: Session, scope: Scope, receive: Receive, send: Send) -> None:
        watch = _ResponseWatch(send)
        try:
            await session.engine.handle_http(scope, receive, watch)
        except Exception:
            logger.exception(f"Error handling MCP request for session {session.session_id}")
            if not watch.started:
                await error_response(500, types.INTERNAL_ERROR, "Internal server error")(
                    scope, receive, send
                )
        if session.engine.terminated:
            await self.close_session(session.session_id)

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------
    async def close_session(self, session_id: Optional[str]) -> bool:
        """Close one session.  Unknown or already-closed identifiers are a no-op."""
        session = self._sessions.pop(session_id, None) if session_id else None
        if session is None:
            return False
        session.state = SessionState.CLOSED
        await session.engine.close()
        logger.info(f"MCP session closed: {session_id} ({len(self._sessions)} active)")
        return True

    async def shutdown(self) -> None:
        """Close every active session.  Safe to call more than once."""
        if self._shutting_down:
            return
        self._shutting_down = True
        logger.info(f"Shutting down: closing {len(self._sessions)} session(s)")
        for session_id in list(self._sessions):
            try:
                await self.close_session(session_id)
            except Exception:
                logger.exception(f"Failed to close session {session_id}")

    async def _discard(self, session: Session) -> None:
        if self._sessions.get(session.session_id) is session:
            del self._sessions[session.session_id]
        session.state = SessionState.CLOSED
        try:
            with anyio.CancelScope(shield=True):
                await session.engine.close()
        except Exception:
            logger.exception(f"Failed to release session {session.session_id}")
        logger.info(f"MCP session rolled back: {session.session_id}")


def build_router(
    settings: GatewaySettings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    estimator: Optional[Estimator] = None,
    token_overrides: Optional[dict[str, int]] = None,
    json_response: bool = True,
) -> SessionRouter:
    """Wire settings, the tool table and the upstream client into a router.

    Every session gets its own ShodanApi; ``transport`` lets tests swap the
    network for an httpx.MockTransport.
    """
    tools = build_tool_table(token_overrides)

    def new_engine(session_id: str) -> ProtocolEngine:
        return ProtocolEngine(
            session_id=session_id,
            tools=tools,
            api=ShodanApi.from_settings(settings, transport=transport),
            max_tokens=settings.max_tokens,
            estimator=estimator,
            json_response=json_response,
        )

    return SessionRouter(new_engine)

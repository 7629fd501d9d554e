# =============================================================================
# gateway/engine.py  —  Protocol engine (one per session)
# =============================================================================
#
# WHAT THIS FILE DOES:
#   Binds ONE session's Lookup Pipelines to an MCP low-level Server.  The
#   engine owns:
#     - its pipelines (built from the shared tool table at construction)
#     - its upstream client (closed with the engine)
#     - its Server (handshake, ping, tools/list, tools/call)
#     - its StreamableHTTPServerTransport (HTTP mode only; stdio hands the
#       Server its streams directly through serve())
#
# ORDERING:
#   in_order() sits first in the Server's middleware chain and takes a FIFO
#   anyio.Lock, so messages for one session are processed in arrival order
#   even though the SDK dispatches each request in its own task.
#
# ERRORS:
#   Protocol mistakes (unknown method, bad params, calls before the
#   handshake) are answered by the SDK.  Tool failures never get that far:
#   the pipeline turns them into error-flagged results.
# =============================================================================

import logging
from typing import Optional

import anyio
from mcp import MCPError, types
from mcp.server import Server, ServerRequestContext
from mcp.server.context import CallNext, HandlerResult
from mcp.server.streamable_http import StreamableHTTPServerTransport
from starlette.types import Receive, Scope, Send

from core.config import SERVER_DESCRIPTION, SERVER_NAME, SERVER_VERSION
from core.models import Outcome, ToolResult
from core.shodan_client import ShodanApi
from core.token_budget import Estimator
from tools.pipeline import LookupPipeline, ToolSpec

logger = logging.getLogger(__name__)


class ProtocolEngine:
    """Stateful protocol handler for one session.

    Args:
        session_id: Identifier echoed in the mcp-session-id header.
        tools: The shared tool table; each engine builds its own pipelines.
        api: Upstream client owned (and closed) by this engine.
        max_tokens: Default output budget for tools without their own.
        estimator: Token counter handed to every pipeline.
        json_response: Answer HTTP POSTs with a JSON body instead of an
            SSE stream.
    """

    def __init__(
        self,
        session_id: str,
        tools: dict[str, ToolSpec],
        api: ShodanApi,
        max_tokens: int,
        estimator: Optional[Estimator] = None,
        json_response: bool = True,
    ) -> None:
        self.session_id = session_id
        self.api = api
        self.pipelines = {
            name: LookupPipeline(spec, api, max_tokens, estimator)
            for name, spec in tools.items()
        }

        self.handled = 0          # messages processed, notifications included
        self.closed = False

        self._lock = anyio.Lock()
        self._ready = anyio.Event()

        self.server = Server(
            SERVER_NAME,
            version=SERVER_VERSION,
            instructions=SERVER_DESCRIPTION,
            on_list_tools=self.list_tools,
            on_call_tool=self.call_tool,
        )
        self.server.middleware.insert(0, self.in_order)
        self.transport = StreamableHTTPServerTransport(
            mcp_session_id=session_id,
            is_json_response_enabled=json_response,
        )

    @property
    def terminated(self) -> bool:
        """True once the client ended the session with DELETE."""
        return self.transport.is_terminated

    # -------------------------------------------------------------------------
    # Middleware and handlers
    # -------------------------------------------------------------------------
    async def in_order(self, ctx: ServerRequestContext, call_next: CallNext) -> HandlerResult:
        async with self._lock:
            # close() may have run while this message waited for the lock
            if self.closed:
                raise MCPError(types.INVALID_REQUEST, f"Session {self.session_id} is closed")
            self.handled += 1
            return await call_next(ctx)

    async def list_tools(
        self, ctx: ServerRequestContext, params: Optional[types.PaginatedRequestParams]
    ) -> types.ListToolsResult:
        return types.ListToolsResult(tools=[
            types.Tool(
                name=pipeline.name,
                description=pipeline.spec.description,
                input_schema=pipeline.spec.input_schema(),
            )
            for pipeline in self.pipelines.values()
        ])

    async def call_tool(
        self, ctx: ServerRequestContext, params: types.CallToolRequestParams
    ) -> types.CallToolResult:
        pipeline = self.pipelines.get(params.name)
        if pipeline is None:
            result = ToolResult.failure(f"Unknown tool: {params.name}", Outcome.VALIDATION_ERROR)
        else:
            result = await pipeline.invoke(params.arguments)
        return types.CallToolResult(
            content=[types.TextContent(type="text", text=result.text)],
            is_error=result.is_error,
        )

    # -------------------------------------------------------------------------
    # Serving
    # -------------------------------------------------------------------------
    async def serve(self, read_stream, write_stream) -> None:
        """Run the Server over one stream pair until the read side closes."""
        await self.server.run(
            read_stream, write_stream, self.server.create_initialization_options()
        )

    async def run_http(self, *, task_status=anyio.TASK_STATUS_IGNORED) -> None:
        """Connect the HTTP transport and serve it; runs in the router's task group."""
        try:
            async with self.transport.connect() as (read_stream, write_stream):
                self._ready.set()
                task_status.started()
                await self.serve(read_stream, write_stream)
        finally:
            self._ready.set()
            logger.debug(f"[{self.session_id}] server task finished")

    async def handle_http(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Answer one HTTP request for this session through its transport."""
        await self._ready.wait()
        await self.transport.handle_request(scope, receive, send)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------
    async def close(self) -> None:
        """Stop accepting messages, end the server task, release the client."""
        if self.closed:
            return
        self.closed = True
        self._ready.set()
        if not self.transport.is_terminated:
            with anyio.CancelScope(shield=True):
                await self.transport.terminate()
        await self.api.aclose()

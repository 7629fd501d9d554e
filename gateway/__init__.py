# =============================================================================
# gateway/__init__.py
# =============================================================================
# This package speaks the protocol.  It owns everything with state and
# concurrency: sessions, the per-session protocol engine, and the two
# transports that carry framed messages in and out.
#
#   - engine.py    ProtocolEngine, one MCP low-level Server per session
#   - sessions.py  SessionRouter, the only owner of the session → engine map
#   - http_app.py  Starlette app for the streamable HTTP transport
#   - stdio.py     pipe transport over the SDK stdio_server
#
# It depends on tools/ (the tool table) and core/, never the other way round.
# =============================================================================

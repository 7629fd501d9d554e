# =============================================================================
# gateway/stdio.py  —  Pipe transport
# =============================================================================
#
# One implicit session for the whole process.  The SDK's stdio_server frames
# newline-delimited JSON on stdin and stdout; stdout is the wire, so nothing
# else may write to it (logging goes to stderr).  Lines that are not valid
# messages are dropped without ending the session, however long they are.
#
# The session ends on EOF or cancellation (SIGINT/SIGTERM from main.py);
# either way the router's shutdown hook closes it before returning.
# =============================================================================

import logging

from mcp.server.stdio import stdio_server

from gateway.sessions import SessionRouter

logger = logging.getLogger(__name__)


async def serve_stdio(router: SessionRouter, stdin=None, stdout=None) -> None:
    """Serve the single pipe session until EOF or cancellation.

    ``stdin`` and ``stdout`` default to the process's own streams; tests pass
    async text streams instead.
    """
    session = router.open_session()
    logger.info(f"Stdio transport ready (session {session.session_id})")
    try:
        async with stdio_server(stdin, stdout) as (read_stream, write_stream):
            await session.engine.serve(read_stream, write_stream)
        logger.info("stdin closed")
    finally:
        await router.shutdown()

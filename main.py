# =============================================================================
# main.py  —  Entry Point for the Shodan MCP gateway
# =============================================================================
#
# HOW TO RUN:
#   python main.py                       # stdio (pipe) transport
#   MCP_TRANSPORT=http python main.py    # streamable HTTP on localhost:3001
#
# WHAT HAPPENS:
#   1. Loads .env (if present) and reads settings from the environment
#   2. Configures logging to STDERR
#   3. Builds the SessionRouter (tool table + per-session upstream client)
#   4. Binds the selected transport and serves until interrupted
#   5. On SIGINT/SIGTERM closes every session, then exits 0
#
# EXIT CODES:
#   0  graceful, interrupt-triggered shutdown (or stdin EOF in stdio mode)
#   1  unrecoverable startup failure (bad settings, port already in use, ...)
# =============================================================================

import asyncio
import logging
import signal
import sys

import uvicorn
from dotenv import load_dotenv

from core.config import GatewaySettings
from core.errors import ConfigError
from gateway.http_app import create_app
from gateway.sessions import build_router
from gateway.stdio import serve_stdio


def configure_logging(level: str = "INFO") -> None:
    """Send all logging to STDERR.

    In stdio mode STDOUT carries the protocol; a log line there would
    corrupt the message stream.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [MCP] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


async def run_stdio(settings: GatewaySettings) -> None:
    logging.info("Starting Shodan MCP Server in Stdio mode")
    router = build_router(settings)
    task = asyncio.ensure_future(serve_stdio(router))

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, task.cancel)

    try:
        await task
    except asyncio.CancelledError:
        logging.info("Interrupted; stdio session closed")


async def run_http(settings: GatewaySettings) -> None:
    logging.info(
        f"Starting Shodan MCP Server in HTTP mode on {settings.http_host}:{settings.http_port}"
    )
    app = create_app(build_router(settings))
    server = uvicorn.Server(uvicorn.Config(
        app,
        host=settings.http_host,
        port=settings.http_port,
        log_level=settings.log_level.lower(),
        lifespan="on",
        timeout_graceful_shutdown=5,
    ))
    await server.serve()
    if not server.started:
        raise RuntimeError(
            f"HTTP server failed to start on {settings.http_host}:{settings.http_port}"
        )


def main() -> int:
    load_dotenv()

    try:
        settings = GatewaySettings.from_env()
    except ConfigError as exc:
        sys.stderr.write(f"Fatal error: {exc}\n")
        return 1

    configure_logging(settings.log_level)
    runner = run_http if settings.use_http else run_stdio

    try:
        asyncio.run(runner(settings))
    except KeyboardInterrupt:
        return 0
    except Exception as exc:
        logging.critical(f"Fatal error: {exc}")
        return 1
    return 0


# =============================================================================
# Script entry point
# =============================================================================
if __name__ == "__main__":
    sys.exit(main())

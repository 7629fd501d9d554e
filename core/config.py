# =============================================================================
# core/config.py  —  Environment-driven settings
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Reads every knob the gateway has from environment variables and turns
#   them into one frozen GatewaySettings object.  main.py calls
#   load_dotenv() first, so a local .env file works too.
#
# VARIABLES:
#   SHODAN_API_KEY      key query parameter (direct mode)
#   SHODAN_BASE_URL     main API base, or a proxy in front of it
#   SHODAN_CVEDB_URL    CVE database base (public, no auth)
#   SHODAN_AUTH_TOKEN   bearer token for proxy mode, ignored if a key is set
#   SHODAN_TIMEOUT      per-request timeout in milliseconds
#   SHODAN_MAX_TOKENS   default output budget for every tool
#   MCP_TRANSPORT       "stdio" (default) or "http"
#   MCP_HTTP_HOST       bind host for the HTTP transport
#   MCP_HTTP_PORT       bind port for the HTTP transport
#   LOG_LEVEL           logging level name
# =============================================================================

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from core.errors import ConfigError

DEFAULT_SHODAN_URL = "https://api.shodan.io"
DEFAULT_CVEDB_URL = "https://cvedb.shodan.io"
DEFAULT_TIMEOUT_MS = 30000
DEFAULT_MAX_TOKENS = 25000
DEFAULT_HTTP_HOST = "localhost"
DEFAULT_HTTP_PORT = 3001

TRANSPORT_STDIO = "stdio"
TRANSPORT_HTTP = "http"

SERVER_NAME = "shodan-mcp-server"
SERVER_VERSION = "1.0.0"
SERVER_DESCRIPTION = (
    "Shodan MCP Server – network reconnaissance, DNS operations, "
    "and vulnerability intelligence"
)


@dataclass(frozen=True)
class GatewaySettings:
    api_key: Optional[str] = None
    auth_token: Optional[str] = None
    base_url: str = DEFAULT_SHODAN_URL
    cvedb_url: str = DEFAULT_CVEDB_URL
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    max_tokens: int = DEFAULT_MAX_TOKENS
    transport: str = TRANSPORT_STDIO
    http_host: str = DEFAULT_HTTP_HOST
    http_port: int = DEFAULT_HTTP_PORT
    log_level: str = "INFO"

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    @property
    def use_http(self) -> bool:
        return self.transport == TRANSPORT_HTTP

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "GatewaySettings":
        """Build settings from ``environ`` (defaults to ``os.environ``).

        Empty strings count as unset, matching how most .env files are
        written (``SHODAN_API_KEY=``).
        """
        env = os.environ if environ is None else environ

        transport = (_get(env, "MCP_TRANSPORT") or TRANSPORT_STDIO).lower()
        if transport not in (TRANSPORT_STDIO, TRANSPORT_HTTP):
            raise ConfigError(
                f"MCP_TRANSPORT must be '{TRANSPORT_STDIO}' or '{TRANSPORT_HTTP}', "
                f"got {transport!r}"
            )

        return cls(
            api_key=_get(env, "SHODAN_API_KEY"),
            auth_token=_get(env, "SHODAN_AUTH_TOKEN"),
            base_url=_get(env, "SHODAN_BASE_URL") or DEFAULT_SHODAN_URL,
            cvedb_url=_get(env, "SHODAN_CVEDB_URL") or DEFAULT_CVEDB_URL,
            timeout_ms=_positive_int(env, "SHODAN_TIMEOUT", DEFAULT_TIMEOUT_MS),
            max_tokens=_positive_int(env, "SHODAN_MAX_TOKENS", DEFAULT_MAX_TOKENS),
            transport=transport,
            http_host=_get(env, "MCP_HTTP_HOST") or DEFAULT_HTTP_HOST,
            http_port=_positive_int(env, "MCP_HTTP_PORT", DEFAULT_HTTP_PORT),
            log_level=(_get(env, "LOG_LEVEL") or "INFO").upper(),
        )


def _get(env: Mapping[str, str], name: str) -> Optional[str]:
    value = env.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = _get(env, name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    return value

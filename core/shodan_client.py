# =============================================================================
# core/shodan_client.py  —  Async upstream client
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Wraps two httpx.AsyncClient instances, one for the main API and one for
#   the public CVE database, behind a small ShodanApi object.  Every request
#   either returns decoded JSON or raises ShodanError.  Nothing else escapes.
#
# AUTH:
#   1. api_key     → appended as ?key= on every main-API request (direct mode)
#   2. auth_token  → "Authorization: Bearer ..." (proxy mode; the proxy
#                    swaps the token for a real key before forwarding)
#   The CVE database needs neither.
#
# LIFETIME:
#   One ShodanApi per protocol engine.  The engine calls aclose() when its
#   session closes, which releases both connection pools.
# =============================================================================

import logging
from typing import Any, Mapping, Optional

import httpx

from core.config import GatewaySettings
from core.errors import ShodanError

logger = logging.getLogger(__name__)


class ShodanApi:
    """JSON-over-HTTP access to the main API and the CVE database."""

    def __init__(
        self,
        base_url: str,
        cvedb_url: str,
        api_key: Optional[str] = None,
        auth_token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if auth_token and not api_key:
            headers["Authorization"] = f"Bearer {auth_token}"

        self._api_key = api_key
        self._timeout = timeout
        self._main = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )
        self._cvedb = httpx.AsyncClient(
            base_url=cvedb_url,
            headers={"Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: GatewaySettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ShodanApi":
        return cls(
            base_url=settings.base_url,
            cvedb_url=settings.cvedb_url,
            api_key=settings.api_key,
            auth_token=settings.auth_token,
            timeout=settings.timeout_seconds,
            transport=transport,
        )

    @property
    def closed(self) -> bool:
        return self._main.is_closed and self._cvedb.is_closed

    async def get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """GET ``path`` on the main API."""
        query = dict(params or {})
        if self._api_key:
            query["key"] = self._api_key
        return await self._request(self._main, path, query)

    async def get_cvedb(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """GET ``path`` on the CVE database."""
        return await self._request(self._cvedb, path, dict(params or {}))

    async def aclose(self) -> None:
        await self._main.aclose()
        await self._cvedb.aclose()

    async def _request(self, client: httpx.AsyncClient, path: str, params: dict) -> Any:
        params = {k: _query_value(v) for k, v in params.items() if v is not None}
        logger.debug("GET %s%s", client.base_url, path)
        try:
            response = await client.get(path, params=params)
        except httpx.TimeoutException:
            raise ShodanError(f"Request timed out after {self._timeout:g}s") from None
        except httpx.HTTPError as exc:
            raise ShodanError(f"Request to {path} failed: {exc}") from exc

        if response.is_error:
            raise _status_error(response)

        try:
            return response.json()
        except ValueError:
            raise ShodanError(
                f"Malformed response from {path}: expected JSON",
                status_code=response.status_code,
                details=response.text[:200],
            ) from None


def _query_value(value: Any) -> Any:
    # Upstream expects lowercase booleans in the query string.
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


def _status_error(response: httpx.Response) -> ShodanError:
    details: Any = None
    reason = response.reason_phrase or "error"
    try:
        details = response.json()
    except ValueError:
        details = response.text[:200] or None
    if isinstance(details, dict) and details.get("error"):
        reason = str(details["error"])
    return ShodanError(
        f"Request failed with status code {response.status_code}: {reason}",
        status_code=response.status_code,
        details=details,
    )


def expect_mapping(payload: Any, what: str) -> dict:
    """Raise ShodanError unless ``payload`` is a JSON object."""
    if not isinstance(payload, dict):
        raise ShodanError(
            f"Malformed {what} response: expected an object, "
            f"got {type(payload).__name__}",
            details=payload,
        )
    return payload

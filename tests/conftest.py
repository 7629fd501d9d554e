"""Shared fixtures: canned upstream payloads and a fake upstream transport."""

import json
from typing import Callable, Optional

import httpx
import pytest

from core.config import GatewaySettings
from core.shodan_client import ShodanApi
from core.token_budget import approximate_tokens
from gateway.engine import ProtocolEngine
from gateway.sessions import SessionRouter, build_router
from tools.registry import build_tool_table

HOST = {
    "ip_str": "8.8.8.8",
    "org": "Google LLC",
    "isp": "Google LLC",
    "asn": "AS15169",
    "last_update": "2024-05-01T10:00:00.000000",
    "country_name": "United States",
    "city": "Mountain View",
    "latitude": 37.4056,
    "longitude": -122.0775,
    "region_code": "CA",
    "ports": [53, 443],
    "hostnames": ["dns.google"],
    "domains": ["dns.google"],
    "tags": [],
    "data": [
        {"port": 53, "transport": "udp", "data": "  DNS recursion enabled  "},
        {
            "port": 443,
            "transport": "tcp",
            "data": "HTTP/1.1 200 OK",
            "http": {"server": "scaffolding on HTTPServer2", "title": "Google Public DNS"},
        },
    ],
}

SEARCH = {
    "total": 200,
    "matches": [
        {
            "ip_str": "1.2.3.4",
            "org": "Example Org",
            "isp": "Example ISP",
            "asn": "AS64500",
            "timestamp": "2024-05-01T00:00:00",
            "port": 80,
            "transport": "tcp",
            "product": "nginx",
            "location": {
                "country_name": "Germany",
                "city": None,
                "region_code": None,
                "latitude": 51.0,
                "longitude": 9.0,
            },
            "http": {"server": "nginx", "title": "Welcome", "robots": "User-agent: *"},
            "hostnames": ["example.de"],
            "domains": ["example.de"],
        }
    ],
    "facets": {"country": [{"value": "DE", "count": 150}, {"value": "US", "count": 50}]},
}

CVE = {
    "cve_id": "CVE-2021-44228",
    "summary": "Apache Log4j2 JNDI features do not protect against attacker controlled LDAP.",
    "published_time": "2021-12-10T10:15:09",
    "cvss_v3": 10.0,
    "cvss_v2": 9.3,
    "epss": 0.5,
    "ranking_epss": 0.25,
    "kev": True,
    "propose_action": "Apply updates per vendor instructions.",
    "ransomware_campaign": "Known",
    "references": ["https://logging.apache.org/log4j/2.x/security.html"],
    "cpes": ["cpe:2.3:a:apache:log4j:2.0:-:*:*:*:*:*:*"],
}

Route = Callable[[httpx.Request], httpx.Response]


def upstream_handler(overrides: Optional[dict[str, Route]] = None) -> Route:
    """Fake upstream keyed by request path; unknown paths answer 404."""
    overrides = overrides or {}

    def handle(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path in overrides:
            return overrides[path](request)
        if path == "/shodan/host/search":
            return httpx.Response(200, json=SEARCH)
        if path.startswith("/shodan/host/"):
            return httpx.Response(200, json=HOST)
        if path == "/dns/resolve":
            names = request.url.params["hostnames"].split(",")
            return httpx.Response(200, json={n: "93.184.216.34" for n in names})
        if path == "/dns/reverse":
            ips = request.url.params["ips"].split(",")
            return httpx.Response(200, json={ip: [] for ip in ips})
        if path.startswith("/cve/"):
            return httpx.Response(200, json=CVE)
        if path == "/cpes":
            return httpx.Response(200, json={"total": 2, "cpes": ["cpe:a", "cpe:b"]})
        if path == "/cves":
            return httpx.Response(200, json={"total": 1, "cves": [CVE]})
        return httpx.Response(404, json={"error": "No information available for that IP."})

    return handle


def failing_route(status: int = 500, error: str = "Internal error") -> Route:
    return lambda request: httpx.Response(status, json={"error": error})


def make_api(handler: Optional[Route] = None, **kwargs) -> ShodanApi:
    return ShodanApi(
        base_url="https://api.shodan.test",
        cvedb_url="https://cvedb.shodan.test",
        api_key=kwargs.pop("api_key", "test-key"),
        transport=httpx.MockTransport(handler or upstream_handler()),
        **kwargs,
    )


def make_engine(
    handler: Optional[Route] = None,
    max_tokens: int = 25000,
    session_id: str = "session-1",
) -> ProtocolEngine:
    return ProtocolEngine(
        session_id=session_id,
        tools=build_tool_table(),
        api=make_api(handler),
        max_tokens=max_tokens,
        estimator=approximate_tokens,
    )


def make_router(handler: Optional[Route] = None, max_tokens: int = 25000) -> SessionRouter:
    settings = GatewaySettings(
        api_key="test-key",
        base_url="https://api.shodan.test",
        cvedb_url="https://cvedb.shodan.test",
        max_tokens=max_tokens,
    )
    return build_router(
        settings,
        transport=httpx.MockTransport(handler or upstream_handler()),
        estimator=approximate_tokens,
    )


def rpc(method: str, params: Optional[dict] = None, request_id: Optional[int] = 1) -> dict:
    message: dict = {"jsonrpc": "2.0", "method": method}
    if params is not None:
        message["params"] = params
    if request_id is not None:
        message["id"] = request_id
    return message


def initialize_request(request_id: int = 1) -> dict:
    return rpc(
        "initialize",
        {
            "protocolVersion": "2025-03-26",
            "capabilities": {},
            "clientInfo": {"name": "pytest", "version": "0"},
        },
        request_id,
    )


def tool_call(name: str, arguments: dict, request_id: int = 2) -> dict:
    return rpc("tools/call", {"name": name, "arguments": arguments}, request_id)


def result_text(response: dict) -> str:
    return response["result"]["content"][0]["text"]


def result_json(response: dict) -> dict:
    return json.loads(result_text(response))


@pytest.fixture
def engine() -> ProtocolEngine:
    return make_engine()


@pytest.fixture
def router() -> SessionRouter:
    return make_router()

# =============================================================================
# tools/registry.py  —  The tool table (ALL tools in one place)
# =============================================================================
#
# WHAT THIS FILE DOES:
#   Declares every tool the gateway exposes as a ToolSpec row: name,
#   description, argument model, handler.  build_tool_table() returns the
#   table once at startup; every protocol engine builds its own pipelines
#   from it.
#
# TOOL NAMING CONVENTIONS:
#   - *_lookup  → fetch one record (or one batch) by identifier
#   - *_search / cves_by_product → query with filters, paginated
#   All tools are read-only and safe to retry.
#
# CONTEXT BUDGET DISCIPLINE:
#   Handlers return the SUMMARIZED report from core/, never the raw upstream
#   payload.  The pipeline then checks the report against the token budget.
#
# The descriptions are what the client's model reads to decide WHEN to call
# a tool, so they describe results, not internals.
# =============================================================================

from dataclasses import replace
from typing import Optional

from core import dns, hosts, vulns
from core.shodan_client import ShodanApi
from tools.pipeline import ToolSpec
from tools.schemas import (
    CpeLookupArgs,
    CveLookupArgs,
    CvesByProductArgs,
    DnsLookupArgs,
    IpLookupArgs,
    ReverseDnsLookupArgs,
    ShodanSearchArgs,
)


# =============================================================================
# Handlers: fetch + summarize, nothing else
# =============================================================================
async def ip_lookup(api: ShodanApi, args: IpLookupArgs) -> dict:
    return hosts.summarize_host(await hosts.fetch_host(api, args.ip))


async def shodan_search(api: ShodanApi, args: ShodanSearchArgs) -> dict:
    raw = await hosts.fetch_search(api, args.query, args.max_results)
    return hosts.summarize_search(raw, args.query)


async def dns_lookup(api: ShodanApi, args: DnsLookupArgs) -> dict:
    raw = await dns.fetch_resolutions(api, args.hostnames)
    return dns.summarize_resolutions(raw, args.hostnames)


async def reverse_dns_lookup(api: ShodanApi, args: ReverseDnsLookupArgs) -> dict:
    raw = await dns.fetch_reverse(api, args.ips)
    return dns.summarize_reverse(raw, args.ips)


async def cve_lookup(api: ShodanApi, args: CveLookupArgs) -> dict:
    return vulns.summarize_cve(await vulns.fetch_cve(api, args.cve))


async def cpe_lookup(api: ShodanApi, args: CpeLookupArgs) -> dict:
    raw = await vulns.fetch_cpes(api, args.product, args.count, args.skip, args.limit)
    return vulns.summarize_cpes(raw, args.count, args.skip, args.limit)


async def cves_by_product(api: ShodanApi, args: CvesByProductArgs) -> dict:
    params = args.upstream_params()
    return vulns.summarize_cves(await vulns.fetch_cves(api, params), params)


# =============================================================================
# The table
# =============================================================================
_TOOLS: tuple[ToolSpec, ...] = (
    ToolSpec(
        name="ip_lookup",
        description=(
            "Retrieve comprehensive information about an IP address from Shodan, including "
            "geolocation, open ports, running services, SSL certificates, hostnames, and "
            "cloud provider details."
        ),
        args_model=IpLookupArgs,
        handler=ip_lookup,
    ),
    ToolSpec(
        name="shodan_search",
        description=(
            "Search Shodan's database of internet-connected devices. Returns detailed "
            "information about matching devices including services, vulnerabilities, and "
            "geographic distribution. Supports advanced search filters and returns "
            "country-based statistics."
        ),
        args_model=ShodanSearchArgs,
        handler=shodan_search,
    ),
    ToolSpec(
        name="dns_lookup",
        description=(
            "Resolve domain names to IP addresses using Shodan's DNS service. "
            "Supports batch resolution of multiple hostnames in a single query."
        ),
        args_model=DnsLookupArgs,
        handler=dns_lookup,
    ),
    ToolSpec(
        name="reverse_dns_lookup",
        description=(
            "Perform reverse DNS lookups to find hostnames associated with IP addresses. "
            "Supports batch lookups of multiple IP addresses in a single query."
        ),
        args_model=ReverseDnsLookupArgs,
        handler=reverse_dns_lookup,
    ),
    ToolSpec(
        name="cve_lookup",
        description=(
            "Query detailed vulnerability information from Shodan's CVEDB. Returns "
            "comprehensive CVE details including CVSS scores (v2/v3), EPSS probability and "
            "ranking, KEV status, proposed mitigations, ransomware associations, and "
            "affected products (CPEs)."
        ),
        args_model=CveLookupArgs,
        handler=cve_lookup,
    ),
    ToolSpec(
        name="cpe_lookup",
        description=(
            "Search for Common Platform Enumeration (CPE) entries by product name in "
            "Shodan's CVEDB. Supports pagination and can return either full CPE details "
            "or just the total count."
        ),
        args_model=CpeLookupArgs,
        handler=cpe_lookup,
    ),
    ToolSpec(
        name="cves_by_product",
        description=(
            "Search for CVEs affecting specific products or CPEs. Supports filtering by "
            "KEV status, sorting by EPSS score, date ranges, and pagination. Provide "
            "either a product name or a CPE 2.3 identifier (not both)."
        ),
        args_model=CvesByProductArgs,
        handler=cves_by_product,
    ),
)


def build_tool_table(overrides: Optional[dict[str, int]] = None) -> dict[str, ToolSpec]:
    """Return ``{name: ToolSpec}`` for every tool, in declaration order.

    Args:
        overrides: Optional per-tool token limits, keyed by tool name.
    """
    overrides = overrides or {}
    unknown = set(overrides) - {spec.name for spec in _TOOLS}
    if unknown:
        raise KeyError(f"Unknown tool(s) in token overrides: {sorted(unknown)}")

    table: dict[str, ToolSpec] = {}
    for spec in _TOOLS:
        if spec.name in overrides:
            spec = replace(spec, max_tokens=overrides[spec.name])
        table[spec.name] = spec
    return table
